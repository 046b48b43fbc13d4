"""
Contract Bindings

从 ABI 文档加载合约接口，提供 calldata 编解码与只读调用。
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

from web3 import Web3
from web3.contract.contract import Contract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from ..errors import CallRevertedError, ConnectivityError, EncodingError

logger = logging.getLogger(__name__)


def load_abi(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """读取 ABI 文档，支持纯数组或带 abi 字段的编译产物"""
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise EncodingError(f"无法读取 ABI 文档 {path}: {e}") from e

    if isinstance(document, dict) and "abi" in document:
        document = document["abi"]
    if not isinstance(document, list):
        raise EncodingError(f"ABI 文档格式错误（应为数组）: {path}")
    return document


class ContractBinding:
    """已部署合约的调用绑定"""

    def __init__(self, contract: Contract, name: str = "contract"):
        self._contract = contract
        self.name = name

    @classmethod
    def from_abi(
        cls, abi: List[Dict[str, Any]], address: str, w3: Web3, name: str = "contract"
    ) -> "ContractBinding":
        try:
            contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        except (Web3Exception, ValueError, TypeError) as e:
            raise EncodingError(f"无法构建 {name} 合约绑定: {e}") from e
        return cls(contract, name=name)

    @classmethod
    def from_file(
        cls, path: Union[str, Path], address: str, w3: Web3, name: str = "contract"
    ) -> "ContractBinding":
        """从本地 ABI 文件构建绑定"""
        binding = cls.from_abi(load_abi(path), address, w3, name=name)
        logger.debug(f"已加载 {name} ABI: {path} @ {binding.address}")
        return binding

    @property
    def address(self) -> str:
        return self._contract.address

    def encode(self, function_name: str, args: Sequence[Any]) -> str:
        """
        按函数签名编码 calldata

        Raises:
            EncodingError: 函数不存在或参数类型/数量不匹配
        """
        try:
            return self._contract.encode_abi(function_name, args=list(args))
        except (Web3Exception, ValueError, TypeError) as e:
            raise EncodingError(f"{self.name}.{function_name} 参数编码失败: {e}") from e

    def decode(self, call_data: Union[str, bytes]) -> Tuple[str, Dict[str, Any]]:
        """解码 calldata，返回函数名与按参数名索引的参数"""
        try:
            func, params = self._contract.decode_function_input(call_data)
        except (Web3Exception, ValueError, TypeError) as e:
            raise EncodingError(f"{self.name} calldata 解码失败: {e}") from e
        return func.fn_name, dict(params)

    def call(self, function_name: str, args: Sequence[Any] = ()) -> Any:
        """
        在当前链状态上执行只读调用

        Raises:
            EncodingError: 参数不匹配
            CallRevertedError: 合约回滚
            ConnectivityError: 节点不可达
        """
        # 先在本地校验参数，节点错误与编码错误分开
        self.encode(function_name, args)
        try:
            return self._contract.get_function_by_name(function_name)(*args).call()
        except ContractLogicError as e:
            raise CallRevertedError(function_name, getattr(e, "message", None) or str(e)) from e
        except BadFunctionCallOutput as e:
            raise CallRevertedError(function_name, f"返回数据无效（地址可能无合约代码）: {e}") from e
        except Exception as e:
            raise ConnectivityError(f"{self.name}.{function_name} 调用失败: {e}") from e
