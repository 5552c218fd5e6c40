"""
Token transfer extraction.

Diffs a transaction's pre/post token-balance snapshots for one wallet and
turns every non-zero change into a TokenTransfer.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from ..constants import DEFAULT_TOKEN_DECIMALS
from .models import Direction, LedgerTransaction, TokenBalance, TokenTransfer

logger = logging.getLogger(__name__)


@dataclass
class BalanceChange:
    """Net change of one token account owned by the wallet."""
    mint: str
    diff: Decimal
    decimals: int
    is_new_account: bool = False

    @property
    def direction(self) -> Direction:
        return Direction.BUY if self.diff > 0 else Direction.SELL


def _decimals(post: Optional[TokenBalance], pre: Optional[TokenBalance]) -> int:
    for snapshot in (post, pre):
        if snapshot is not None and snapshot.decimals is not None:
            return int(snapshot.decimals)
    return DEFAULT_TOKEN_DECIMALS


def diff_token_balances(tx: LedgerTransaction, wallet: str) -> List[BalanceChange]:
    """
    Non-zero token balance changes for `wallet`, in snapshot order.

    Pre snapshots are matched to post snapshots by account index; a post
    snapshot with no pre counterpart owned by the wallet is a new holding
    (a created account, or one whose owner changed) and counts as a buy of
    its full amount.
    """
    post_by_index: Dict[int, TokenBalance] = {b.account_index: b for b in tx.post_token_balances}
    pre_indexes = {b.account_index for b in tx.pre_token_balances if b.owner == wallet}

    changes: List[BalanceChange] = []

    for pre in tx.pre_token_balances:
        if pre.owner != wallet:
            continue

        post = post_by_index.get(pre.account_index)
        if post is None or post.mint != pre.mint:
            continue

        diff = post.amount - pre.amount
        if diff == 0:
            continue

        changes.append(BalanceChange(mint=pre.mint, diff=diff, decimals=_decimals(post, pre)))

    for post in tx.post_token_balances:
        if post.owner != wallet or post.account_index in pre_indexes:
            continue

        amount = post.amount
        if amount > 0:
            changes.append(
                BalanceChange(mint=post.mint, diff=amount, decimals=_decimals(post, None), is_new_account=True)
            )

    return changes


class TransferExtractor:
    """Builds TokenTransfer entries, resolving token identity for each mint."""

    def __init__(self, resolver):
        self.resolver = resolver

    async def extract(self, tx: LedgerTransaction, wallet: str) -> List[TokenTransfer]:
        transfers: List[TokenTransfer] = []

        for change in diff_token_balances(tx, wallet):
            metadata = await self.resolver.resolve(change.mint)
            transfers.append(
                TokenTransfer(
                    mint=change.mint,
                    symbol=metadata.symbol,
                    name=metadata.name,
                    amount=float(abs(change.diff)),
                    decimals=change.decimals,
                    direction=change.direction,
                )
            )
            if change.is_new_account:
                logger.debug(f"New token account for {wallet[:8]}: {change.mint[:8]}")

        return transfers
