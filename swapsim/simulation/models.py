"""
Simulation Data Models

定义单次分叉模拟过程中使用的数据结构。所有金额均为精确整数（wei / token 最小单位）。
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Dict, Any, List, Tuple
from pydantic import BaseModel, Field, field_validator, ConfigDict


MAX_UINT256 = 2**256 - 1


def _validate_address(v: str) -> str:
    """验证以太坊地址格式"""
    if not v.startswith("0x") or len(v) != 42:
        raise ValueError(f"无效的以太坊地址: {v}")
    try:
        int(v, 16)
    except ValueError:
        raise ValueError(f"无效的以太坊地址: {v}")
    return v


def scale_units(amount: int, decimals: int = 18) -> Decimal:
    """将最小单位整数换算为可读的十进制数（不经过浮点）"""
    return Decimal(amount).scaleb(-decimals)


class NetworkHandle(BaseModel):
    """源链连接"""
    endpoint_url: str = Field(..., description="RPC URL")
    block_number: int = Field(..., ge=0, description="当前区块高度")


class FundedAccount(BaseModel):
    """分叉节点预充值账户"""
    index: int = Field(..., ge=0, description="派生索引")
    address: str = Field(..., description="账户地址")
    private_key: str = Field(..., repr=False, description="私钥（0x 前缀十六进制）")

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return _validate_address(v)


class ForkInfo(BaseModel):
    """Anvil 分叉进程信息"""
    pid: int = Field(..., description="进程 ID")
    port: int = Field(..., description="监听端口")
    rpc_url: str = Field(..., description="RPC URL")
    fork_url: str = Field(..., description="分叉源 URL")
    fork_block: int = Field(..., description="分叉区块号")
    chain_id: int = Field(..., description="分叉链 ID")
    accounts: List[FundedAccount] = Field(default_factory=list, description="预充值账户")
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class BalanceDelta(BaseModel):
    """两次快照之间的余额变动（after - before）"""
    native: int
    token: int


class BalanceSnapshot(BaseModel):
    """某一时刻某地址的原生币与 token 余额"""
    model_config = ConfigDict(frozen=True)

    address: str = Field(..., description="账户地址")
    native: int = Field(..., ge=0, description="原生币余额（wei）")
    token: int = Field(..., ge=0, description="token 余额（最小单位）")
    block_number: Optional[int] = Field(None, description="快照所在区块")
    taken_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __sub__(self, other: "BalanceSnapshot") -> BalanceDelta:
        if not isinstance(other, BalanceSnapshot):
            return NotImplemented
        return BalanceDelta(native=self.native - other.native, token=self.token - other.token)


class SwapRequest(BaseModel):
    """swapExactETHForTokens 调用参数"""
    amount_out_min: int = Field(..., ge=0, description="最少获得的 token 数量")
    path: List[str] = Field(..., min_length=2, description="兑换路径（首个为包装原生币）")
    recipient: str = Field(..., description="接收地址")
    deadline: int = Field(default=MAX_UINT256, ge=0, le=MAX_UINT256, description="截止时间（最大值即不限制）")

    @field_validator("recipient")
    @classmethod
    def validate_recipient(cls, v: str) -> str:
        return _validate_address(v)

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: List[str]) -> List[str]:
        return [_validate_address(addr) for addr in v]

    def as_args(self) -> Tuple[int, List[str], str, int]:
        """按 ABI 参数顺序返回"""
        return (self.amount_out_min, list(self.path), self.recipient, self.deadline)


class SwapReceipt(BaseModel):
    """已上链交易回执"""
    tx_hash: str = Field(..., description="交易哈希")
    block_number: int = Field(..., description="所在区块")
    gas_used: int = Field(..., ge=0, description="消耗的 gas")
    effective_gas_price: int = Field(..., ge=0, description="实际 gas 价格（wei）")
    status: int = Field(..., description="执行状态（1 成功）")

    @property
    def gas_cost(self) -> int:
        return self.gas_used * self.effective_gas_price


class CallTrace(BaseModel):
    """单个调用跟踪"""
    depth: int = Field(..., description="调用深度")
    call_type: str = Field(default="call", description="调用类型")
    from_address: str = Field(default="", description="调用者地址")
    to_address: str = Field(default="", description="被调用地址")
    value: int = Field(default=0, description="转移的原生币数量（wei）")
    input_data: str = Field(default="0x", description="调用数据（calldata）")
    output_data: str = Field(default="0x", description="返回数据")
    gas: int = Field(default=0, description="分配的 gas")
    gas_used: int = Field(default=0, description="消耗的 gas")
    error: Optional[str] = Field(None, description="错误信息（如有）")


class TraceReport(BaseModel):
    """交易执行 trace"""
    tx_hash: str
    raw: Any = Field(..., description="节点返回的原始 trace 结构")
    calls: List[CallTrace] = Field(default_factory=list)


class SimulationReport(BaseModel):
    """单次模拟结果"""
    fork_block: int
    chain_id: int
    signer: str
    spend_wei: int
    swap_call: Dict[str, Any] = Field(default_factory=dict, description="解码后的 swap 调用参数")
    token_symbol: str = "TOKEN"
    token_decimals: int = 18
    expected_amount_out: Optional[int] = Field(None, description="router 报价")
    before: BalanceSnapshot
    after: BalanceSnapshot
    receipt: SwapReceipt
    trace: TraceReport

    @property
    def delta(self) -> BalanceDelta:
        return self.after - self.before

    @property
    def native_conserved(self) -> bool:
        """after.native == before.native - spent - gas_cost"""
        return self.after.native == self.before.native - self.spend_wei - self.receipt.gas_cost
