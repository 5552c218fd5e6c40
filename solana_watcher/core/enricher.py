"""
Record enrichment.

Joins a TransactionRecord with token metadata and prices into an
EnrichedRecord: per-token USD and SOL values, new-position flags, swap
summary, transaction type, risk score and behavioural patterns.
"""

import logging
import time
import uuid
from typing import List, Optional

from ..config import RiskThresholds
from ..constants import BASE_FEE_SOL
from ..utils.helpers import format_token_amount, iso_from_unix, round_sol
from .cache import WatcherCaches
from .metadata import MetadataResolver
from .models import (
    AccountUpdate,
    ActivityKind,
    Direction,
    EnrichedRecord,
    Pattern,
    RiskLevel,
    SwapActivity,
    SwapType,
    TokenMetadata,
    TokenTransaction,
    TransactionRecord,
    TransactionSummary,
    TransactionType,
    WalletSnapshot,
)
from .price_client import JupiterPriceClient

logger = logging.getLogger("solana_watcher.enricher")

SWAP_TYPES = {
    ActivityKind.SWAP: SwapType.TOKEN_SWAP,
    ActivityKind.BUY: SwapType.SOL_TO_TOKEN,
    ActivityKind.SELL: SwapType.TOKEN_TO_SOL,
}


def determine_transaction_type(
    token_transactions: List[TokenTransaction],
    swap: Optional[SwapActivity],
    sol_change: float,
) -> TransactionType:
    if swap is not None and swap.swap_type == SwapType.TOKEN_SWAP:
        return TransactionType.COMPLEX_SWAP
    if token_transactions:
        return TransactionType.TOKEN_TRADE
    if swap is not None:
        return TransactionType.DEFI_INTERACTION
    if sol_change != 0:
        return TransactionType.SIMPLE_TRANSFER
    return TransactionType.DEFI_INTERACTION


def calculate_risk_score(
    token_transactions: List[TokenTransaction],
    total_usd_value: float,
    thresholds: RiskThresholds,
) -> int:
    score = 0

    if total_usd_value > thresholds.high_value_usd:
        score += 3
    elif total_usd_value > thresholds.medium_value_usd:
        score += 2
    elif total_usd_value > thresholds.low_value_usd:
        score += 1

    # Unknown or zero price
    score += sum(1 for tx in token_transactions if not tx.price_per_token)

    if len(token_transactions) > thresholds.multi_token_count:
        score += 1

    return score


def risk_level_for(score: int, thresholds: RiskThresholds) -> RiskLevel:
    if score >= thresholds.high_score:
        return RiskLevel.HIGH
    if score >= thresholds.medium_score:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def detect_trading_patterns(
    token_transactions: List[TokenTransaction],
    sol_change: float,
    thresholds: RiskThresholds,
) -> List[Pattern]:
    patterns: List[Pattern] = []

    if len(token_transactions) > 1:
        patterns.append(Pattern.MULTI_TOKEN_TRADE)

    if any(tx.is_new_position for tx in token_transactions):
        patterns.append(Pattern.NEW_POSITION)

    if sol_change < -thresholds.large_sol_spend:
        patterns.append(Pattern.LARGE_SOL_SPEND)

    buys = sum(1 for tx in token_transactions if tx.action == Direction.BUY)
    sells = sum(1 for tx in token_transactions if tx.action == Direction.SELL)

    if buys > 0 and sells > 0:
        patterns.append(Pattern.BUY_SELL_MIX)
    elif buys > 0:
        patterns.append(Pattern.ACCUMULATION)
    elif sells > 0:
        patterns.append(Pattern.DISTRIBUTION)

    return patterns


def new_record_id(timestamp: float) -> str:
    return f"tx_{int(timestamp * 1000)}_{uuid.uuid4().hex[:9]}"


class Enricher:
    def __init__(
        self,
        resolver: MetadataResolver,
        price_client: JupiterPriceClient,
        caches: WatcherCaches,
        thresholds: Optional[RiskThresholds] = None,
    ):
        self.resolver = resolver
        self.price_client = price_client
        self.caches = caches
        self.thresholds = thresholds or RiskThresholds()

    async def _price_of(self, metadata: TokenMetadata) -> Optional[float]:
        """Current price: TTL'd quote first, then whatever metadata captured."""
        info = await self.price_client.get_price(metadata.mint)
        if info is not None and info.price_usd > 0:
            return info.price_usd
        return metadata.price or None

    async def enrich(self, record: TransactionRecord, update: AccountUpdate) -> EnrichedRecord:
        sol_price = await self.price_client.get_sol_price()
        token_transactions: List[TokenTransaction] = []
        total_usd = 0.0

        for transfer in record.transfers:
            metadata = await self.resolver.resolve(transfer.mint)
            price = await self._price_of(metadata)
            usd_value = transfer.amount * (price or 0.0)
            total_usd += usd_value

            is_new = self.caches.mark_position(update.address, transfer.mint, record.timestamp)

            token_transactions.append(
                TokenTransaction(
                    action=transfer.direction,
                    token=metadata,
                    amount=transfer.amount,
                    amount_formatted=format_token_amount(transfer.amount, transfer.decimals),
                    is_new_position=is_new,
                    usd_value=usd_value,
                    sol_equivalent=usd_value / sol_price if sol_price else None,
                    price_per_token=price,
                )
            )

        swap = await self._swap_activity(record)
        transaction_type = determine_transaction_type(token_transactions, swap, record.sol_change)
        risk_score = calculate_risk_score(token_transactions, total_usd, self.thresholds)
        risk_level = risk_level_for(risk_score, self.thresholds)

        enriched = EnrichedRecord(
            record_id=new_record_id(time.time()),
            signature=record.signature,
            timestamp=record.timestamp,
            timestamp_iso=iso_from_unix(record.timestamp),
            success=record.success,
            wallet=WalletSnapshot(
                address=update.address,
                balance_sol=update.sol_balance,
                sol_change=round_sol(record.sol_change),
                slot=update.slot,
            ),
            token_transactions=token_transactions,
            swap_activity=swap,
            summary=TransactionSummary(
                total_tokens_involved=len(token_transactions),
                total_usd_value=total_usd,
                net_sol_change=record.sol_change,
                transaction_type=transaction_type,
                risk_score=risk_score,
                risk_level=risk_level,
                fee_estimate_sol=BASE_FEE_SOL if record.sol_change != 0 else 0.0,
            ),
            detected_patterns=detect_trading_patterns(token_transactions, record.sol_change, self.thresholds),
        )

        logger.debug(
            f"Enriched {record.signature[:16]}: {transaction_type.value}, "
            f"${total_usd:.2f}, risk {risk_level.value}"
        )
        return enriched

    async def _swap_activity(self, record: TransactionRecord) -> Optional[SwapActivity]:
        activity = record.activity
        if activity is None:
            return None

        swap = SwapActivity(
            swap_type=SWAP_TYPES[activity.kind],
            protocol=activity.protocol,
            from_amount=activity.from_amount,
            to_amount=activity.to_amount,
        )

        if activity.from_mint:
            swap.from_token = await self.resolver.resolve(activity.from_mint)
            price = await self._price_of(swap.from_token)
            swap.from_usd_value = abs(activity.from_amount or 0.0) * (price or 0.0)

        if activity.to_mint:
            swap.to_token = await self.resolver.resolve(activity.to_mint)
            price = await self._price_of(swap.to_token)
            swap.to_usd_value = abs(activity.to_amount or 0.0) * (price or 0.0)

        return swap
