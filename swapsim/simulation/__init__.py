"""
Simulation Engine - 分叉 swap 模拟模块

提供基于 Foundry Anvil 的主网分叉单次 swap 模拟。
"""

from .models import (
    NetworkHandle,
    ForkInfo,
    FundedAccount,
    BalanceSnapshot,
    BalanceDelta,
    SwapRequest,
    SwapReceipt,
    CallTrace,
    TraceReport,
    SimulationReport,
    MAX_UINT256,
)
from .connector import ChainConnector
from .anvil_fork import AnvilFork, derive_accounts, find_free_port
from .signer import SigningClient, PendingTransaction
from .contracts import ContractBinding, load_abi
from .balances import snapshot_balances
from .swap import SwapExecutor
from .trace import TraceReporter, TraceSource, RpcTraceSource, parse_traces
from .harness import SwapSimulation, SimulationContext

__all__ = [
    # Models
    "NetworkHandle",
    "ForkInfo",
    "FundedAccount",
    "BalanceSnapshot",
    "BalanceDelta",
    "SwapRequest",
    "SwapReceipt",
    "CallTrace",
    "TraceReport",
    "SimulationReport",
    "MAX_UINT256",
    # Components
    "ChainConnector",
    "AnvilFork",
    "derive_accounts",
    "find_free_port",
    "SigningClient",
    "PendingTransaction",
    "ContractBinding",
    "load_abi",
    "snapshot_balances",
    "SwapExecutor",
    "TraceReporter",
    "TraceSource",
    "RpcTraceSource",
    "parse_traces",
    # Workflow
    "SwapSimulation",
    "SimulationContext",
]
