#!/usr/bin/env python3
"""
swapsim Environment Check Script

检查运行分叉模拟所需的环境：
1. Python 版本 >= 3.10
2. Foundry/Anvil 是否安装
3. 必要的 Python 包
4. 源链 RPC 可达性与 trace 支持
5. ABI 文档
"""

import importlib
import importlib.util
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List, Tuple


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


def check_python_version() -> Tuple[bool, str]:
    """检查 Python 版本"""
    version = sys.version_info
    label = f"Python {version.major}.{version.minor}.{version.micro}"
    if version >= (3, 10):
        return True, label
    return False, f"{label} (需要 >= 3.10)"


def check_command_exists(command: str) -> Tuple[bool, str]:
    """检查命令是否存在"""
    path = shutil.which(command)
    if path is None:
        return False, f"{command}: 未找到"
    try:
        result = subprocess.run([path, "--version"], capture_output=True, text=True, timeout=5)
        version = result.stdout.strip().split("\n")[0]
        return True, f"{command}: {version or '已安装'}"
    except (OSError, subprocess.TimeoutExpired):
        return True, f"{command}: 已安装"


def check_python_package(package: str, import_name: str) -> Tuple[bool, str]:
    """检查 Python 包是否已安装"""
    if importlib.util.find_spec(import_name) is None:
        return False, f"{package}: 未安装"
    mod = importlib.import_module(import_name)
    return True, f"{package}: {getattr(mod, '__version__', '已安装')}"


def check_rpc(rpc_url: str, method: str, params: list) -> Tuple[bool, str]:
    """发送一次 JSON-RPC 请求"""
    import httpx

    try:
        response = httpx.post(
            rpc_url,
            json={"jsonrpc": "2.0", "method": method, "params": params, "id": 1},
            timeout=10,
        )
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        return False, f"{method} 请求失败: {e}"

    if "error" in data:
        return False, f"{method} 返回错误: {data['error']}"
    return True, f"{method} -> {str(data.get('result'))[:40]}"


def main():
    # 需先安装本项目: pip install -e .
    try:
        from swapsim.config import get_settings
    except ImportError:
        print_error("swapsim 未安装，请先运行: pip install -e .")
        return 1

    settings = get_settings()
    print_header("swapsim 环境检查")

    all_passed = True
    results: List[Tuple[bool, str]] = []

    def record(passed: bool, msg: str, required: bool = True) -> None:
        nonlocal all_passed
        results.append((passed, msg))
        if passed:
            print_success(msg)
        elif required:
            print_error(msg)
            all_passed = False
        else:
            print_warning(msg)

    print_header("1. Python 版本检查")
    record(*check_python_version())

    print_header("2. Foundry/Anvil 检查")
    record(*check_command_exists(settings.anvil_binary_path))
    record(*check_command_exists("cast"), required=False)

    print_header("3. Python 依赖检查")
    for package, import_name in [
        ("web3", "web3"),
        ("eth-account", "eth_account"),
        ("pydantic", "pydantic"),
        ("pydantic-settings", "pydantic_settings"),
        ("httpx", "httpx"),
    ]:
        record(*check_python_package(package, import_name))

    print_header("4. 源链 RPC 检查")
    record(*check_rpc(settings.source_rpc_url, "eth_blockNumber", []))

    print_header("5. ABI 文档检查")
    for path in [settings.router_abi_path, settings.token_abi_path]:
        record(Path(path).exists(), f"{path}")

    print_header("检查总结")
    passed_count = sum(1 for p, _ in results if p)
    total_count = len(results)

    if all_passed:
        print_success(f"所有核心检查通过! ({passed_count}/{total_count})")
        print()
        print("运行模拟: swapsim")
        return 0

    print_error(f"部分检查失败 ({passed_count}/{total_count})")
    print()
    print("请安装缺失的依赖:")
    print("  - Foundry: curl -L https://foundry.paradigm.xyz | bash")
    print("  - Python 包: pip install -e .")
    return 1


if __name__ == "__main__":
    sys.exit(main())
