"""
Swap Simulation Workflow

严格线性的单次模拟流程：

    源链高度 -> 启动分叉 -> 签名客户端 -> 合约绑定 -> 余额快照(前)
    -> 提交 swap -> 余额快照(后) -> 获取 trace

任一步骤失败即终止，current_step 记录失败所在步骤。
"""

import logging
from dataclasses import dataclass
from typing import Callable, ContextManager, Optional

from ..config import Settings
from ..errors import CallRevertedError
from .anvil_fork import AnvilFork
from .balances import snapshot_balances
from .connector import ChainConnector
from .contracts import ContractBinding
from .models import MAX_UINT256, ForkInfo, NetworkHandle, SimulationReport, SwapRequest
from .signer import SigningClient
from .swap import SWAP_FUNCTION, SwapExecutor
from .trace import RpcTraceSource, TraceReporter, TraceSource

logger = logging.getLogger(__name__)


@dataclass
class SimulationContext:
    """分叉启动后流程所需的全部依赖"""
    fork: ForkInfo
    client: SigningClient
    router: ContractBinding
    token: ContractBinding
    trace_source: TraceSource


ForkFactory = Callable[[NetworkHandle], ContextManager[AnvilFork]]


class SwapSimulation:
    """单次 swap 模拟"""

    def __init__(
        self,
        settings: Settings,
        connector: Optional[ChainConnector] = None,
        fork_factory: Optional[ForkFactory] = None,
    ):
        self.settings = settings
        self.connector = connector or ChainConnector(settings.source_rpc_url)
        self.fork_factory = fork_factory or self._default_fork
        self.current_step: Optional[str] = None

    def _default_fork(self, handle: NetworkHandle) -> AnvilFork:
        s = self.settings
        return AnvilFork(
            fork_url=handle.endpoint_url,
            fork_block=handle.block_number,
            anvil_path=s.anvil_binary_path,
            base_port=s.anvil_base_port,
            chain_id=s.fork_chain_id,
            mnemonic=s.fork_mnemonic,
            accounts=s.fork_accounts,
            startup_timeout=s.startup_timeout_seconds,
        )

    def _step(self, name: str) -> None:
        self.current_step = name
        logger.debug(f"步骤: {name}")

    def run(self) -> SimulationReport:
        """执行完整流程，分叉节点在返回前关闭"""
        self._step("chain_connector")
        handle = self.connector.connect()

        self._step("fork_provisioner")
        with self.fork_factory(handle) as fork:
            context = self.bind(fork)
            return self.execute(context)

    def bind(self, fork: AnvilFork) -> SimulationContext:
        """构建签名客户端与合约绑定"""
        s = self.settings

        self._step("signing_client")
        client = SigningClient.from_fork(
            fork.info,
            w3=fork.w3,
            account_index=s.account_index,
            receipt_timeout=s.receipt_timeout_seconds,
        )
        logger.info(f"签名账户: {client.address} (chain {fork.info.chain_id})")

        self._step("contract_bindings")
        router = ContractBinding.from_file(s.router_abi_path, s.router_address, client.w3, name="router")
        token = ContractBinding.from_file(s.token_abi_path, s.token_address, client.w3, name="token")

        return SimulationContext(
            fork=fork.info,
            client=client,
            router=router,
            token=token,
            trace_source=RpcTraceSource(client.w3),
        )

    def build_request(self, recipient: str) -> SwapRequest:
        s = self.settings
        return SwapRequest(
            amount_out_min=s.amount_out_min,
            path=[s.wrapped_native_address, s.token_address],
            recipient=recipient,
            deadline=MAX_UINT256 if s.deadline is None else s.deadline,
        )

    def _token_metadata(self, token: ContractBinding):
        try:
            return token.call("symbol"), token.call("decimals")
        except CallRevertedError as e:
            logger.warning(f"无法读取 token 元数据，按 18 位精度显示: {e}")
            return "TOKEN", 18

    def _quote(self, executor: SwapExecutor, amount_in: int, request: SwapRequest):
        # 报价失败时仍提交交易，由提交结果暴露真实错误
        try:
            return executor.quote(amount_in, request.path)
        except CallRevertedError as e:
            logger.warning(f"router 报价失败，继续提交交易: {e}")
            return None

    def execute(self, context: SimulationContext) -> SimulationReport:
        """在已绑定的分叉上执行快照、swap、trace"""
        s = self.settings
        client = context.client
        address = client.address
        executor = SwapExecutor(client, context.router, gas_limit=s.gas_limit)
        request = self.build_request(address)

        self._step("token_metadata")
        symbol, decimals = self._token_metadata(context.token)

        self._step("balance_before")
        before = snapshot_balances(address, client, context.token, block_number=context.fork.fork_block)

        self._step("swap_quote")
        expected = self._quote(executor, s.spend_wei, request)
        if expected is not None and expected < request.amount_out_min:
            logger.warning(f"报价 {expected} 低于最少获得数量 {request.amount_out_min}，交易将回滚")

        self._step("swap_executor")
        tx = executor.build_transaction(s.spend_wei, request)
        _, swap_args = context.router.decode(tx["data"])
        receipt = executor.execute(s.spend_wei, request)

        self._step("balance_after")
        after = snapshot_balances(address, client, context.token, block_number=receipt.block_number)

        self._step("trace_reporter")
        trace = TraceReporter(context.trace_source).report(receipt.tx_hash)

        report = SimulationReport(
            fork_block=context.fork.fork_block,
            chain_id=context.fork.chain_id,
            signer=address,
            spend_wei=s.spend_wei,
            swap_call={"function": SWAP_FUNCTION, "args": swap_args},
            token_symbol=symbol,
            token_decimals=decimals,
            expected_amount_out=expected,
            before=before,
            after=after,
            receipt=receipt,
            trace=trace,
        )

        if not report.native_conserved:
            logger.warning(
                f"原生币余额变动与 spend + gas 不一致: delta={report.delta.native} "
                f"spend={s.spend_wei} gas_cost={receipt.gas_cost}"
            )
        if report.delta.token < 0:
            logger.warning(f"token 余额减少: {report.delta.token}")

        self.current_step = None
        return report
