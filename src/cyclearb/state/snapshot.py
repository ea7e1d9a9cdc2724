"""Holder of the current reserve snapshot."""

import logging

from cyclearb.core.types import StateSnapshot


logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    Single-writer store for the published StateSnapshot.

    Publishing is one reference assignment, so a reader either sees the
    previous snapshot or the new one, never a mix of both.
    """

    __slots__ = ("_current", "_version")

    def __init__(self, initial: StateSnapshot | None = None) -> None:
        self._current = initial if initial is not None else StateSnapshot.empty()
        self._version = 0

    def current(self) -> StateSnapshot:
        """Get the latest published snapshot."""
        return self._current

    def publish(self, snapshot: StateSnapshot) -> None:
        """Replace the current snapshot."""
        self._current = snapshot
        self._version += 1
        logger.debug(f"Published snapshot v{self._version} at block {snapshot.block_number}")

    @property
    def version(self) -> int:
        """Number of snapshots published so far."""
        return self._version
