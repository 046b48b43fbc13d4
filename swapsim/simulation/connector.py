"""
Chain Connector

读取源链当前区块高度，作为分叉的目标区块。
"""

import logging
from typing import Optional

from web3 import Web3

from ..errors import ConnectivityError
from .models import NetworkHandle

logger = logging.getLogger(__name__)


class ChainConnector:
    """源链 RPC 连接"""

    def __init__(self, endpoint_url: str, w3: Optional[Web3] = None, timeout: int = 10):
        self.endpoint_url = endpoint_url
        self._w3 = w3 or Web3(
            Web3.HTTPProvider(endpoint_url, request_kwargs={"timeout": timeout})
        )

    def get_block_number(self) -> int:
        """获取当前区块高度"""
        try:
            block_number = self._w3.eth.get_block_number()
        except Exception as e:
            raise ConnectivityError(f"无法从 {self.endpoint_url} 读取区块高度: {e}") from e

        if not isinstance(block_number, int) or block_number < 0:
            raise ConnectivityError(
                f"{self.endpoint_url} 返回了无效的区块高度: {block_number!r}"
            )
        return block_number

    def connect(self) -> NetworkHandle:
        """读取一次区块高度并返回连接信息"""
        block_number = self.get_block_number()
        logger.info(f"源链 {self.endpoint_url} 当前区块: {block_number}")
        return NetworkHandle(endpoint_url=self.endpoint_url, block_number=block_number)
