"""
Constant-Product Cycle Arbitrage Monitor.

An asynchronous, block-aware monitor that detects profitable multi-hop
arbitrage cycles across Uniswap V2 style liquidity pools on Mantle.
"""

__version__ = "1.0.0"
__author__ = "Tim"
