"""
Contract Binding Unit Tests
"""

import json
from unittest.mock import MagicMock

import pytest
from web3.exceptions import ContractLogicError

from swapsim.config import ABI_DIR
from swapsim.errors import CallRevertedError, ConnectivityError, EncodingError
from swapsim.simulation.contracts import ContractBinding, load_abi
from swapsim.simulation.models import MAX_UINT256, SwapRequest
from swapsim.simulation.swap import SWAP_FUNCTION, SwapExecutor

from conftest import DAI, ROUTER, WETH


SIGNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


class TestLoadAbi:
    """测试 ABI 文档加载"""

    def test_bundled_documents(self):
        names = {item["name"] for item in load_abi(ABI_DIR / "erc20.json")}
        assert {"balanceOf", "symbol", "decimals"} <= names
        names = {item["name"] for item in load_abi(ABI_DIR / "uniswap_v2_router.json")}
        assert {SWAP_FUNCTION, "getAmountsOut"} <= names

    def test_artifact_with_abi_key(self, tmp_path):
        """测试编译产物格式（带 abi 字段）"""
        abi = load_abi(ABI_DIR / "erc20.json")
        path = tmp_path / "artifact.json"
        path.write_text(json.dumps({"contractName": "ERC20", "abi": abi}))
        assert load_abi(path) == abi

    def test_missing_file(self, tmp_path):
        with pytest.raises(EncodingError):
            load_abi(tmp_path / "missing.json")

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"name": "nope"}))
        with pytest.raises(EncodingError):
            load_abi(path)


class TestEncoding:
    """测试 calldata 编解码"""

    def test_round_trip(self, router):
        """测试编码后解码得到原始参数"""
        args = (100, [WETH, DAI], SIGNER, MAX_UINT256)
        data = router.encode(SWAP_FUNCTION, args)
        assert data.startswith("0x7ff36ab5")

        name, decoded = router.decode(data)
        assert name == SWAP_FUNCTION
        assert decoded["amountOutMin"] == 100
        assert decoded["path"] == [WETH, DAI]
        assert decoded["to"] == SIGNER
        assert decoded["deadline"] == MAX_UINT256

    def test_encoding_is_deterministic(self, router):
        args = (100, [WETH, DAI], SIGNER, MAX_UINT256)
        assert router.encode(SWAP_FUNCTION, args) == router.encode(SWAP_FUNCTION, args)

    def test_wrong_arity(self, router):
        """测试参数数量不匹配"""
        with pytest.raises(EncodingError):
            router.encode(SWAP_FUNCTION, (100, [WETH, DAI], SIGNER))

    def test_wrong_type(self, router):
        """测试参数类型不匹配"""
        with pytest.raises(EncodingError):
            router.encode(SWAP_FUNCTION, ("lots", [WETH, DAI], SIGNER, MAX_UINT256))

    def test_unknown_function(self, router):
        with pytest.raises(EncodingError):
            router.encode("swapEverything", ())

    def test_decode_unknown_selector(self, router):
        with pytest.raises(EncodingError):
            router.decode("0xdeadbeef" + "00" * 32)


class TestSwapTransaction:
    """测试 swap 交易构建"""

    def test_build_transaction(self, router):
        executor = SwapExecutor(client=MagicMock(), router=router, gas_limit=200_000)
        request = SwapRequest(amount_out_min=100, path=[WETH, DAI], recipient=SIGNER)
        tx = executor.build_transaction(10**17, request)

        assert tx["to"] == ROUTER
        assert tx["value"] == 10**17
        assert tx["gas"] == 200_000
        assert router.decode(tx["data"])[1]["deadline"] == MAX_UINT256

    def test_execute_submits_once(self, router):
        """测试执行只提交一次并等待回执"""
        client = MagicMock()
        executor = SwapExecutor(client=client, router=router, gas_limit=150_000)
        request = SwapRequest(amount_out_min=100, path=[WETH, DAI], recipient=SIGNER)

        receipt = executor.execute(10**17, request)

        client.send_transaction.assert_called_once()
        sent = client.send_transaction.call_args[0][0]
        assert sent["gas"] == 150_000
        assert receipt is client.send_transaction.return_value.wait.return_value


class TestReadOnlyCall:
    """测试只读调用的错误映射"""

    def _binding(self):
        contract = MagicMock()
        contract.encode_abi.return_value = "0x70a08231"
        return ContractBinding(contract, name="token"), contract

    def test_returns_value(self):
        binding, contract = self._binding()
        contract.get_function_by_name.return_value.return_value.call.return_value = 42
        assert binding.call("balanceOf", [SIGNER]) == 42
        contract.get_function_by_name.assert_called_with("balanceOf")

    def test_revert_carries_reason(self):
        """测试回滚原因被保留"""
        binding, contract = self._binding()
        contract.get_function_by_name.return_value.return_value.call.side_effect = (
            ContractLogicError("execution reverted: Dai/insufficient-balance")
        )
        with pytest.raises(CallRevertedError) as exc_info:
            binding.call("balanceOf", [SIGNER])
        assert "Dai/insufficient-balance" in exc_info.value.reason
        assert exc_info.value.function_name == "balanceOf"

    def test_transport_failure(self):
        binding, contract = self._binding()
        contract.get_function_by_name.return_value.return_value.call.side_effect = (
            ConnectionError("connection refused")
        )
        with pytest.raises(ConnectivityError):
            binding.call("balanceOf", [SIGNER])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
