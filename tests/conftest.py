"""
Shared fixtures

内存中的分叉替身：签名客户端、token 账本、router 报价与 trace 来源。
"""

from typing import Any, Dict, List

import pytest
from web3 import Web3

from swapsim.config import ABI_DIR, DEFAULT_MNEMONIC, Settings
from swapsim.errors import SubmissionError, TraceUnavailableError
from swapsim.simulation.anvil_fork import derive_accounts
from swapsim.simulation.contracts import ContractBinding, load_abi
from swapsim.simulation.harness import SimulationContext
from swapsim.simulation.models import ForkInfo, SwapReceipt


ROUTER = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
FORK_BLOCK = 19_000_000
GAS_USED = 120_000
GAS_PRICE = 2_000_000_000
RATE = 2_000  # 1 wei -> 2000 DAI 最小单位


class FakePending:
    def __init__(self, receipt: SwapReceipt):
        self.tx_hash = receipt.tx_hash
        self._receipt = receipt

    def wait(self) -> SwapReceipt:
        return self._receipt


class FakeLedger:
    """分叉链上的余额状态"""

    def __init__(self, native: Dict[str, int], token: Dict[str, int]):
        self.native = dict(native)
        self.token = dict(token)
        self.mined: List[str] = []


class FakeClient:
    """按 SigningClient 接口行为的内存客户端"""

    def __init__(self, address: str, ledger: FakeLedger):
        self.address = address
        self.ledger = ledger
        self.sent: List[Dict[str, Any]] = []

    def get_balance(self, address: str) -> int:
        return self.ledger.native.get(address, 0)

    def send_transaction(self, request: Dict[str, Any]) -> FakePending:
        self.sent.append(request)
        value = request["value"]
        cost = value + GAS_USED * GAS_PRICE
        if cost > self.get_balance(self.address):
            raise SubmissionError("insufficient funds for gas * price + value")

        self.ledger.native[self.address] -= cost
        self.ledger.token[self.address] = self.ledger.token.get(self.address, 0) + value * RATE
        tx_hash = "0x" + f"{len(self.ledger.mined) + 1:064x}"
        self.ledger.mined.append(tx_hash)
        return FakePending(
            SwapReceipt(
                tx_hash=tx_hash,
                block_number=FORK_BLOCK + 1,
                gas_used=GAS_USED,
                effective_gas_price=GAS_PRICE,
                status=1,
            )
        )


class FakeToken:
    def __init__(self, ledger: FakeLedger):
        self.ledger = ledger
        self.address = DAI

    def call(self, function_name: str, args=()):
        if function_name == "balanceOf":
            return self.ledger.token.get(args[0], 0)
        if function_name == "symbol":
            return "DAI"
        if function_name == "decimals":
            return 18
        raise AssertionError(f"unexpected call {function_name}")


class QuotingRouter(ContractBinding):
    """离线 router：编码走真实 ABI，报价使用固定汇率"""

    def call(self, function_name: str, args=()):
        if function_name == "getAmountsOut":
            amount_in, path = args
            return [amount_in, amount_in * RATE]
        raise AssertionError(f"unexpected call {function_name}")


class FakeTraceSource:
    def __init__(self, ledger: FakeLedger):
        self.ledger = ledger

    def fetch_trace(self, tx_hash: str):
        if tx_hash not in self.ledger.mined:
            raise TraceUnavailableError(f"节点未找到交易 {tx_hash} 的 trace")
        return [
            {
                "action": {
                    "callType": "call",
                    "from": "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266",
                    "to": ROUTER.lower(),
                    "value": "0x16345785d8a0000",
                    "gas": "0x2dc6c",
                    "input": "0x7ff36ab5",
                },
                "result": {"gasUsed": "0x1d4c0", "output": "0x"},
                "subtraces": 1,
                "traceAddress": [],
                "type": "call",
            },
            {
                "action": {
                    "callType": "call",
                    "from": ROUTER.lower(),
                    "to": WETH.lower(),
                    "value": "0x16345785d8a0000",
                    "gas": "0x2a000",
                    "input": "0xd0e30db0",
                },
                "result": {"gasUsed": "0x5da6", "output": "0x"},
                "subtraces": 0,
                "traceAddress": [0],
                "type": "call",
            },
        ]


@pytest.fixture
def offline_w3() -> Web3:
    """不连接节点的 Web3，仅用于编解码"""
    return Web3()


@pytest.fixture
def router(offline_w3) -> ContractBinding:
    return ContractBinding.from_file(ABI_DIR / "uniswap_v2_router.json", ROUTER, offline_w3, name="router")


@pytest.fixture
def fork_info() -> ForkInfo:
    return ForkInfo(
        pid=4242,
        port=8546,
        rpc_url="http://127.0.0.1:8546",
        fork_url="http://127.0.0.1:8545",
        fork_block=FORK_BLOCK,
        chain_id=31337,
        accounts=derive_accounts(DEFAULT_MNEMONIC, 2),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        source_rpc_url="http://127.0.0.1:8545",
        router_address=ROUTER,
        wrapped_native_address=WETH,
        token_address=DAI,
        spend_wei=10**17,
        amount_out_min=100,
        gas_limit=200_000,
        deadline=None,
    )


@pytest.fixture
def ledger(fork_info) -> FakeLedger:
    signer = fork_info.accounts[0].address
    return FakeLedger(native={signer: 10**18}, token={signer: 5 * 10**18})


@pytest.fixture
def context(fork_info, ledger, offline_w3) -> SimulationContext:
    signer = fork_info.accounts[0].address
    return SimulationContext(
        fork=fork_info,
        client=FakeClient(signer, ledger),
        router=QuotingRouter.from_abi(
            load_abi(ABI_DIR / "uniswap_v2_router.json"), ROUTER, offline_w3, name="router"
        ),
        token=FakeToken(ledger),
        trace_source=FakeTraceSource(ledger),
    )
