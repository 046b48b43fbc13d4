"""
Console Report

以可读格式打印模拟结果。金额显示使用 Decimal 换算，不经过浮点。
"""

import json
from typing import Any

from .simulation.models import SimulationReport, scale_units


class Colors:
    """终端颜色输出"""
    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


def print_header(text: str) -> None:
    print(f"\n{Colors.BLUE}{Colors.BOLD}=== {text} ==={Colors.RESET}")


def print_success(text: str) -> None:
    print(f"{Colors.GREEN}✓ {text}{Colors.RESET}")


def print_error(text: str) -> None:
    print(f"{Colors.RED}✗ {text}{Colors.RESET}")


def print_warning(text: str) -> None:
    print(f"{Colors.YELLOW}⚠ {text}{Colors.RESET}")


def format_amount(amount: int, symbol: str, decimals: int = 18) -> str:
    """格式化金额，例如 0.100000000000000000 ETH"""
    return f"{scale_units(amount, decimals):.{decimals}f} {symbol}"


def _json_default(value: Any) -> str:
    return str(value)


def print_report(report: SimulationReport, native_symbol: str = "ETH") -> None:
    """打印完整报告"""
    symbol, decimals = report.token_symbol, report.token_decimals
    delta = report.delta

    print_header("模拟环境")
    print(f"分叉区块:   {report.fork_block}")
    print(f"链 ID:      {report.chain_id}")
    print(f"签名账户:   {report.signer}")

    print_header("Swap 调用")
    print(f"函数:       {report.swap_call.get('function')}")
    for name, value in report.swap_call.get("args", {}).items():
        print(f"  {name}: {value}")
    print(f"花费:       {format_amount(report.spend_wei, native_symbol)}")
    if report.expected_amount_out is not None:
        print(f"报价:       {format_amount(report.expected_amount_out, symbol, decimals)}")

    print_header("余额")
    print(f"{native_symbol} Balance Before: {format_amount(report.before.native, native_symbol)}")
    print(f"{symbol} Balance Before: {format_amount(report.before.token, symbol, decimals)}")
    print(f"{native_symbol} Balance After:  {format_amount(report.after.native, native_symbol)}")
    print(f"{symbol} Balance After:  {format_amount(report.after.token, symbol, decimals)}")
    print(f"{native_symbol} Balance Change: {format_amount(delta.native, native_symbol)}")
    print(f"{symbol} Balance Change: {format_amount(delta.token, symbol, decimals)}")

    print_header("交易")
    print(f"Transaction Hash: {report.receipt.tx_hash}")
    print(f"区块:       {report.receipt.block_number}")
    print(f"Gas Used:   {report.receipt.gas_used}")
    print(f"Gas Cost:   {format_amount(report.receipt.gas_cost, native_symbol)}")
    if report.native_conserved:
        print_success("原生币变动 = 花费 + gas 费用")
    else:
        print_warning("原生币变动与花费 + gas 费用不一致")

    print_header(f"调用栈 ({len(report.trace.calls)} 个调用)")
    for call in report.trace.calls:
        indent = "  " * call.depth
        line = (
            f"{indent}[{call.call_type}] {call.from_address} -> {call.to_address} "
            f"value={call.value} gas_used={call.gas_used}"
        )
        if call.error:
            print_error(f"{line} error={call.error}")
        else:
            print(line)

    print_header("Transaction Trace")
    print(json.dumps(report.trace.raw, indent=2, default=_json_default))
