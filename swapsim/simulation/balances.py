"""
Balance Snapshotter

读取地址的原生币余额与 token 余额。
"""

import logging
from typing import Optional

from .contracts import ContractBinding
from .models import BalanceSnapshot
from .signer import SigningClient

logger = logging.getLogger(__name__)


def snapshot_balances(
    address: str,
    client: SigningClient,
    token: ContractBinding,
    block_number: Optional[int] = None,
) -> BalanceSnapshot:
    """
    获取余额快照

    两次独立查询，不保证原子性；调用方需保证在流程中同一逻辑时点调用。
    """
    native = client.get_balance(address)
    token_balance = token.call("balanceOf", [address])
    snapshot = BalanceSnapshot(
        address=address,
        native=native,
        token=token_balance,
        block_number=block_number,
    )
    logger.debug(f"余额快照 {address}: native={native} token={token_balance}")
    return snapshot
