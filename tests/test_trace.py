"""
Trace Reporter Unit Tests
"""

from unittest.mock import MagicMock

import pytest

from swapsim.errors import TraceUnavailableError
from swapsim.simulation.trace import RpcTraceSource, TraceReporter, parse_traces

from conftest import FakeLedger, FakeTraceSource


TX_HASH = "0x" + "22" * 32


def rpc_w3(response):
    w3 = MagicMock()
    w3.provider.make_request.return_value = response
    return w3


class TestRpcTraceSource:
    """测试 trace_transaction 请求"""

    def test_returns_result(self):
        w3 = rpc_w3({"jsonrpc": "2.0", "id": 1, "result": [{"type": "call"}]})
        assert RpcTraceSource(w3).fetch_trace(TX_HASH) == [{"type": "call"}]
        w3.provider.make_request.assert_called_once_with("trace_transaction", [TX_HASH])

    def test_method_not_supported(self):
        """测试节点不支持 trace 方法"""
        w3 = rpc_w3({"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}})
        with pytest.raises(TraceUnavailableError) as exc_info:
            RpcTraceSource(w3).fetch_trace(TX_HASH)
        assert "Method not found" in str(exc_info.value)

    def test_unknown_transaction(self):
        """测试未知交易哈希"""
        w3 = rpc_w3({"jsonrpc": "2.0", "id": 1, "result": None})
        with pytest.raises(TraceUnavailableError):
            RpcTraceSource(w3).fetch_trace(TX_HASH)

    def test_transport_failure(self):
        w3 = MagicMock()
        w3.provider.make_request.side_effect = ConnectionError("refused")
        with pytest.raises(TraceUnavailableError):
            RpcTraceSource(w3).fetch_trace(TX_HASH)


class TestTraceReporter:
    """测试 trace 整理"""

    def test_flattens_call_tree(self):
        ledger = FakeLedger(native={}, token={})
        ledger.mined.append(TX_HASH)
        report = TraceReporter(FakeTraceSource(ledger)).report(TX_HASH)

        assert report.tx_hash == TX_HASH
        assert len(report.raw) == 2
        root, child = report.calls
        assert root.depth == 0
        assert child.depth == 1
        assert root.value == 10**17
        assert root.gas_used == 120_000
        assert child.call_type == "call"

    def test_never_submitted(self):
        """测试从未提交的交易哈希"""
        ledger = FakeLedger(native={}, token={})
        with pytest.raises(TraceUnavailableError):
            TraceReporter(FakeTraceSource(ledger)).report(TX_HASH)

    def test_parse_create_and_error(self):
        calls = parse_traces([
            {
                "action": {"from": "0xaa", "value": "0x0", "gas": 100, "init": "0x6080"},
                "result": {"address": "0xbb", "gasUsed": "0x10"},
                "traceAddress": [0, 1],
                "type": "create",
            },
            {
                "action": {"callType": "staticcall", "from": "0xaa", "to": "0xcc", "input": "0x"},
                "result": None,
                "error": "Reverted",
                "traceAddress": [1],
                "type": "call",
            },
        ])
        assert calls[0].call_type == "create"
        assert calls[0].to_address == "0xbb"
        assert calls[0].input_data == "0x6080"
        assert calls[0].depth == 2
        assert calls[0].gas_used == 16
        assert calls[1].error == "Reverted"
        assert calls[1].gas_used == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
