"""
Signing Client

将私钥绑定到分叉链 ID，所有写交易在本地签名后经 eth_sendRawTransaction 提交。
"""

import logging
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import Web3Exception

from ..errors import ConnectivityError, SigningError, SubmissionError
from .models import ForkInfo, SwapReceipt

logger = logging.getLogger(__name__)


def _to_receipt(receipt: Dict[str, Any]) -> SwapReceipt:
    return SwapReceipt(
        tx_hash=Web3.to_hex(receipt["transactionHash"]),
        block_number=receipt["blockNumber"],
        gas_used=receipt["gasUsed"],
        effective_gas_price=receipt.get("effectiveGasPrice", 0),
        status=receipt["status"],
    )


class PendingTransaction:
    """已提交、等待上链的交易"""

    def __init__(self, w3: Web3, tx_hash: str, timeout: int = 120):
        self._w3 = w3
        self.tx_hash = tx_hash
        self.timeout = timeout

    def wait(self) -> SwapReceipt:
        """
        等待交易上链

        Raises:
            SubmissionError: 等待超时或交易执行失败（status == 0）
        """
        try:
            raw = self._w3.eth.wait_for_transaction_receipt(self.tx_hash, timeout=self.timeout)
        except Web3Exception as e:
            raise SubmissionError(f"等待交易 {self.tx_hash} 回执失败: {e}") from e

        receipt = _to_receipt(raw)
        if receipt.status != 1:
            raise SubmissionError(
                f"交易 {receipt.tx_hash} 执行回滚 (gas used {receipt.gas_used})"
            )
        logger.info(f"交易已上链: {receipt.tx_hash} (区块 {receipt.block_number})")
        return receipt


class SigningClient:
    """绑定私钥的分叉链客户端"""

    def __init__(self, w3: Web3, private_key: str, chain_id: int, receipt_timeout: int = 120):
        try:
            self._account: LocalAccount = Account.from_key(private_key)
        except Exception as e:
            raise SigningError(f"无效的私钥: {e}") from e

        self.w3 = w3
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout

    @classmethod
    def from_fork(
        cls,
        fork: ForkInfo,
        w3: Optional[Web3] = None,
        account_index: int = 0,
        receipt_timeout: int = 120,
    ) -> "SigningClient":
        """使用分叉节点的某个预充值账户构建客户端"""
        if account_index >= len(fork.accounts):
            raise SigningError(
                f"账户索引 {account_index} 超出范围（共 {len(fork.accounts)} 个账户）"
            )
        account = fork.accounts[account_index]
        w3 = w3 or Web3(Web3.HTTPProvider(fork.rpc_url))
        return cls(w3, account.private_key, fork.chain_id, receipt_timeout=receipt_timeout)

    @property
    def address(self) -> str:
        return self._account.address

    def get_balance(self, address: str) -> int:
        """查询原生币余额（wei）"""
        try:
            return self.w3.eth.get_balance(Web3.to_checksum_address(address))
        except Exception as e:
            raise ConnectivityError(f"查询 {address} 余额失败: {e}") from e

    def fill_transaction(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """补全 from / nonce / chainId / gasPrice"""
        tx = dict(request)
        tx["from"] = self.address
        tx.setdefault("chainId", self.chain_id)
        try:
            if "nonce" not in tx:
                tx["nonce"] = self.w3.eth.get_transaction_count(self.address, "pending")
            if "gasPrice" not in tx and "maxFeePerGas" not in tx:
                tx["gasPrice"] = self.w3.eth.gas_price
        except Exception as e:
            raise ConnectivityError(f"补全交易字段失败: {e}") from e
        return tx

    def send_transaction(self, request: Dict[str, Any]) -> PendingTransaction:
        """
        签名并提交交易

        Args:
            request: 交易字段（to/value/data/gas 等）

        Returns:
            PendingTransaction: 可等待上链的交易

        Raises:
            SubmissionError: 节点拒绝交易
        """
        tx = self.fill_transaction(request)
        try:
            signed = self._account.sign_transaction(tx)
        except Exception as e:
            raise SigningError(f"交易签名失败: {e}") from e

        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except (Web3Exception, ValueError) as e:
            raise SubmissionError(f"交易被节点拒绝: {e}") from e
        except OSError as e:
            raise ConnectivityError(f"提交交易失败: {e}") from e

        tx_hash = Web3.to_hex(tx_hash)
        logger.info(f"交易已提交: {tx_hash}")
        return PendingTransaction(self.w3, tx_hash, timeout=self.receipt_timeout)
