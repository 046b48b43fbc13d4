"""
swapsim - Forked-chain Swap Simulation Harness

在主网分叉上单次模拟 DEX swap 交易，观察余额变动与执行 trace。
"""

__version__ = "0.1.0"
