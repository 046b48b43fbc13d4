"""
AnvilFork - 本地分叉节点

基于 Foundry Anvil 启动指定区块高度的主网分叉，并派生预充值账户。
"""

import atexit
import logging
import socket
import subprocess
import tempfile
import time
from typing import IO, List, Optional

import httpx
from eth_account import Account
from web3 import Web3

from ..config import DEFAULT_MNEMONIC
from ..errors import ForkStartupError
from .models import ForkInfo, FundedAccount

logger = logging.getLogger(__name__)

# Anvil 默认派生路径
DERIVATION_PATH = "m/44'/60'/0'/0/{index}"


def find_free_port(start_port: int = 8545, max_attempts: int = 100) -> int:
    """查找可用端口"""
    for port in range(start_port, start_port + max_attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            if s.connect_ex(("127.0.0.1", port)) != 0:
                return port
    raise OSError(f"无法在 {start_port}-{start_port + max_attempts} 范围内找到可用端口")


def derive_accounts(mnemonic: str, count: int) -> List[FundedAccount]:
    """按 anvil 的派生规则从助记词派生账户"""
    Account.enable_unaudited_hdwallet_features()
    accounts = []
    for index in range(count):
        acct = Account.from_mnemonic(mnemonic, account_path=DERIVATION_PATH.format(index=index))
        accounts.append(
            FundedAccount(
                index=index,
                address=acct.address,
                private_key=Web3.to_hex(acct.key),
            )
        )
    return accounts


class AnvilFork:
    """
    Anvil 分叉节点

    生命周期：
    1. 查找空闲端口并启动 anvil 进程
    2. 等待 RPC 就绪，校验分叉区块
    3. 派生预充值账户
    4. stop() 或进程退出时终止 anvil
    """

    def __init__(
        self,
        fork_url: str,
        fork_block: int,
        anvil_path: str = "anvil",
        base_port: int = 8545,
        chain_id: int = 31337,
        mnemonic: str = DEFAULT_MNEMONIC,
        accounts: int = 10,
        startup_timeout: int = 30,
    ):
        """
        Args:
            fork_url: 源链 RPC URL
            fork_block: 分叉区块号
            anvil_path: anvil 可执行文件路径
            base_port: 起始端口
            chain_id: 分叉链 ID
            mnemonic: 预充值账户助记词
            accounts: 预充值账户数量
            startup_timeout: 启动超时时间（秒）
        """
        self.fork_url = fork_url
        self.fork_block = fork_block
        self.anvil_path = anvil_path
        self.base_port = base_port
        self.chain_id = chain_id
        self.mnemonic = mnemonic
        self.accounts = accounts
        self.startup_timeout = startup_timeout

        self._process: Optional[subprocess.Popen] = None
        self._stderr: Optional[IO[str]] = None
        self._info: Optional[ForkInfo] = None
        self._w3: Optional[Web3] = None

    @property
    def is_running(self) -> bool:
        """检查 anvil 进程是否运行中"""
        return self._process is not None and self._process.poll() is None

    @property
    def info(self) -> ForkInfo:
        if self._info is None:
            raise RuntimeError("Anvil 进程未启动")
        return self._info

    @property
    def w3(self) -> Web3:
        """分叉节点的 Web3 实例"""
        if self._w3 is None:
            raise RuntimeError("Anvil 进程未启动")
        return self._w3

    def build_command(self, port: int) -> List[str]:
        """构建 anvil 启动命令"""
        return [
            self.anvil_path,
            "--fork-url",
            self.fork_url,
            "--fork-block-number",
            str(self.fork_block),
            "--port",
            str(port),
            "--host",
            "127.0.0.1",
            "--chain-id",
            str(self.chain_id),
            "--mnemonic",
            self.mnemonic,
            "--accounts",
            str(self.accounts),
        ]

    def start(self) -> ForkInfo:
        """
        启动 Anvil 分叉节点

        Returns:
            ForkInfo: 进程信息

        Raises:
            ForkStartupError: 端口、进程或状态复制失败
        """
        if self.is_running:
            return self.info

        try:
            port = find_free_port(self.base_port)
        except OSError as e:
            raise ForkStartupError(str(e)) from e

        rpc_url = f"http://127.0.0.1:{port}"
        cmd = self.build_command(port)
        logger.info(f"启动 Anvil: 分叉 {self.fork_url} @ {self.fork_block} -> {rpc_url}")

        # stdout 会随每次 RPC 调用增长，直接丢弃
        self._stderr = tempfile.TemporaryFile(mode="w+")
        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=self._stderr,
                text=True,
            )
        except OSError as e:
            self._close_stderr()
            raise ForkStartupError(f"无法启动 anvil ({self.anvil_path}): {e}") from e

        atexit.register(self.stop)

        try:
            self._wait_for_ready(rpc_url)
            self._w3 = Web3(Web3.HTTPProvider(rpc_url))
            self._verify_fork()
        except ForkStartupError:
            self.stop()
            raise

        self._info = ForkInfo(
            pid=self._process.pid,
            port=port,
            rpc_url=rpc_url,
            fork_url=self.fork_url,
            fork_block=self.fork_block,
            chain_id=self.chain_id,
            accounts=derive_accounts(self.mnemonic, self.accounts),
        )

        logger.info(f"Anvil 已启动: {rpc_url} (PID: {self._process.pid})")
        return self._info

    def _read_stderr(self) -> Optional[str]:
        if self._stderr is None:
            return None
        self._stderr.seek(0)
        lines = self._stderr.read().strip().splitlines()
        return "\n".join(lines[-20:]) or None

    def _close_stderr(self) -> None:
        if self._stderr is not None:
            self._stderr.close()
            self._stderr = None

    def _wait_for_ready(self, rpc_url: str) -> None:
        """等待 anvil RPC 就绪"""
        deadline = time.monotonic() + self.startup_timeout

        while time.monotonic() < deadline:
            if self._process.poll() is not None:
                raise ForkStartupError(
                    f"anvil 进程提前退出 (code {self._process.returncode})",
                    stderr=self._read_stderr(),
                )
            try:
                response = httpx.post(
                    rpc_url,
                    json={
                        "jsonrpc": "2.0",
                        "method": "eth_blockNumber",
                        "params": [],
                        "id": 1,
                    },
                    timeout=1,
                )
                if response.status_code == 200 and "result" in response.json():
                    logger.debug("Anvil 就绪")
                    return
            except (httpx.HTTPError, ValueError):
                pass
            time.sleep(0.1)

        raise ForkStartupError(
            f"Anvil 启动超时 ({self.startup_timeout}s): {rpc_url}",
            stderr=self._read_stderr(),
        )

    def _verify_fork(self) -> None:
        """校验分叉节点的区块高度与链 ID"""
        try:
            block_number = self._w3.eth.block_number
            chain_id = self._w3.eth.chain_id
        except Exception as e:
            raise ForkStartupError(f"无法查询分叉节点状态: {e}", stderr=self._read_stderr()) from e

        if block_number != self.fork_block:
            raise ForkStartupError(
                f"分叉区块不一致: 期望 {self.fork_block}, 实际 {block_number}"
            )
        if chain_id != self.chain_id:
            raise ForkStartupError(f"分叉链 ID 不一致: 期望 {self.chain_id}, 实际 {chain_id}")

    def stop(self) -> None:
        """停止 anvil 进程"""
        if self._process is not None:
            try:
                self._process.terminate()
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
            self._process = None
            logger.info("Anvil 进程已停止")

        self._close_stderr()
        self._info = None
        self._w3 = None

    def __enter__(self):
        """上下文管理器入口"""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """上下文管理器退出"""
        self.stop()
