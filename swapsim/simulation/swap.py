"""
Swap Executor

构建并提交 swapExactETHForTokens 交易。gas 上限固定，不做估算，失败不重试。
"""

import logging
from typing import Any, Dict, List, Optional

from .contracts import ContractBinding
from .models import SwapReceipt, SwapRequest
from .signer import SigningClient

logger = logging.getLogger(__name__)

SWAP_FUNCTION = "swapExactETHForTokens"


class SwapExecutor:
    """原生币 -> token 兑换执行器"""

    def __init__(self, client: SigningClient, router: ContractBinding, gas_limit: int = 200_000):
        self.client = client
        self.router = router
        self.gas_limit = gas_limit

    def build_transaction(self, amount_in: int, request: SwapRequest) -> Dict[str, Any]:
        """构建交易字段（不提交）"""
        return {
            "to": self.router.address,
            "value": amount_in,
            "data": self.router.encode(SWAP_FUNCTION, request.as_args()),
            "gas": self.gas_limit,
        }

    def quote(self, amount_in: int, path: List[str]) -> Optional[int]:
        """通过 getAmountsOut 估算可获得的 token 数量"""
        amounts = self.router.call("getAmountsOut", [amount_in, path])
        return amounts[-1] if amounts else None

    def execute(self, amount_in: int, request: SwapRequest) -> SwapReceipt:
        """
        提交兑换交易并等待上链

        Args:
            amount_in: 花费的原生币数量（wei）
            request: swap 参数

        Returns:
            SwapReceipt: 交易回执

        Raises:
            EncodingError, SubmissionError: 编码或提交失败，直接终止
        """
        tx = self.build_transaction(amount_in, request)
        logger.info(
            f"提交 {SWAP_FUNCTION}: value={amount_in} gas={self.gas_limit} "
            f"min_out={request.amount_out_min} path={request.path}"
        )
        return self.client.send_transaction(tx).wait()
