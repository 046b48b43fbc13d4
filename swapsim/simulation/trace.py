"""
Trace Reporter

通过节点的 trace_transaction 诊断方法获取交易的底层执行记录。
"""

import logging
from typing import Any, Dict, List, Protocol

from web3 import Web3

from ..errors import TraceUnavailableError
from .models import CallTrace, TraceReport

logger = logging.getLogger(__name__)


class TraceSource(Protocol):
    """trace 获取能力"""

    def fetch_trace(self, tx_hash: str) -> Any:
        ...


class RpcTraceSource:
    """基于 JSON-RPC trace_transaction 的 trace 来源"""

    method = "trace_transaction"

    def __init__(self, w3: Web3):
        self._w3 = w3

    def fetch_trace(self, tx_hash: str) -> Any:
        try:
            response = self._w3.provider.make_request(self.method, [tx_hash])
        except Exception as e:
            raise TraceUnavailableError(f"{self.method} 请求失败: {e}") from e

        if "error" in response:
            error = response["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise TraceUnavailableError(f"节点无法提供 {tx_hash} 的 trace: {message}")

        result = response.get("result")
        if not result:
            raise TraceUnavailableError(f"节点未找到交易 {tx_hash} 的 trace")
        return result


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def parse_traces(raw: List[Dict[str, Any]]) -> List[CallTrace]:
    """将 parity 格式的 trace 展平为 CallTrace 列表"""
    traces = []
    for entry in raw:
        action = entry.get("action") or {}
        result = entry.get("result") or {}
        traces.append(
            CallTrace(
                depth=len(entry.get("traceAddress") or []),
                call_type=action.get("callType") or entry.get("type", "call"),
                from_address=action.get("from", ""),
                to_address=action.get("to") or result.get("address", ""),
                value=_to_int(action.get("value")),
                input_data=action.get("input") or action.get("init") or "0x",
                output_data=result.get("output", "0x"),
                gas=_to_int(action.get("gas")),
                gas_used=_to_int(result.get("gasUsed")),
                error=entry.get("error"),
            )
        )
    return traces


class TraceReporter:
    """获取并整理交易 trace"""

    def __init__(self, source: TraceSource):
        self.source = source

    def report(self, tx_hash: str) -> TraceReport:
        """
        Raises:
            TraceUnavailableError: 节点不支持或交易未知
        """
        raw = self.source.fetch_trace(tx_hash)
        calls = parse_traces(raw) if isinstance(raw, list) else []
        logger.info(f"已获取 trace: {tx_hash} ({len(calls)} 个调用)")
        return TraceReport(tx_hash=tx_hash, raw=raw, calls=calls)
