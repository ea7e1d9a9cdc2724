"""
Entry point for the cycle arbitrage monitor.

Usage:
    python -m cyclearb
    cyclearb  # if installed via pip
"""

import asyncio
import sys


# Try to use uvloop for better performance
try:
    import uvloop

    UVLOOP_AVAILABLE = True
except ImportError:
    UVLOOP_AVAILABLE = False


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from pydantic import ValidationError

    from cyclearb import __version__
    from cyclearb.config.settings import get_settings
    from cyclearb.core.engine import ArbitrageEngine, cost_params
    from cyclearb.core.errors import ConfigError

    # Print banner
    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     CYCLE ARBITRAGE MONITOR v{__version__:<27}      ║
║                                                               ║
║     Multi-hop DEX Cycle Detection for Mantle                  ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    # Load settings
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Fatal configuration error: {e}")
        print("\nCheck your .env file, for example:")
        print("  RPC_URL=https://rpc.mantle.xyz")
        print("  MAX_HOPS=3")
        return 1

    uvloop_enabled = UVLOOP_AVAILABLE and settings.use_uvloop
    if uvloop_enabled:
        uvloop.install()

    # Print configuration summary
    print("Configuration:")
    print(f"  RPC endpoint:   {settings.rpc_endpoint}")
    print(f"  Pool catalog:   {settings.pool_catalog_path or 'built-in (Mantle)'}")
    print(f"  Base asset:     {settings.base_asset}")
    print(f"  Max hops:       {settings.max_hops}")
    print(f"  Strategy:       {settings.enumeration_strategy}")
    cost = cost_params(settings)
    if settings.gas_price_gwei is None:
        print(f"  Tx cost:        {settings.transaction_cost}")
    else:
        print(f"  Gas price:      {settings.gas_price_gwei:.3f} gwei")
        print(f"  Gas cost (3):   {cost.gas_cost(3):.9f} MNT")
        print(f"  Gas cost (4):   {cost.gas_cost(4):.9f} MNT")
    print(f"  Min liquidity:  {settings.min_liquidity or 'off'}")
    print(f"  Block time:     {settings.block_time_seconds:.1f}s")
    print(f"  Round budget:   {settings.round_budget:.1f}s")
    print(f"  Output:         {settings.opportunity_log_path}")
    print(f"  Execution:      {'Enabled' if settings.execution_enabled else 'Disabled'}")
    print(f"  uvloop:         {'Enabled' if uvloop_enabled else 'Disabled'}")
    print()

    # Run the engine
    async def run_engine() -> int:
        engine = ArbitrageEngine(settings)

        try:
            await engine.setup()
            await engine.run()
            return 0

        except ConfigError as e:
            print(f"\nFatal configuration error: {e}")
            return 1

        except KeyboardInterrupt:
            print("\nInterrupted by user")
            return 0

        except Exception as e:
            print(f"\nFatal error: {e}")
            import traceback

            traceback.print_exc()
            return 1

        finally:
            await engine.shutdown()

    return asyncio.run(run_engine())


if __name__ == "__main__":
    sys.exit(main())
