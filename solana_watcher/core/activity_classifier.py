"""
DeFi activity classification.

Combines token balance diffs with log-message rules to infer a single
best-guess activity (swap, buy or sell) per transaction. The log rules are an
ordered table so they can be tested and extended on their own.
"""

import re
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from ..constants import INFRA_PROGRAMS, KNOWN_PROGRAMS
from .models import ActivityKind, DeFiActivity, LedgerTransaction
from .transfer_extractor import diff_token_balances

logger = logging.getLogger(__name__)

UNKNOWN_PROTOCOL = "Unknown"

_INVOKE_RE = re.compile(r"Program (\w+) invoke \[(\d+)\]")


@dataclass(frozen=True)
class LogRule:
    """Log pattern that implies an activity kind."""
    name: str
    pattern: re.Pattern
    kind: ActivityKind

    def matches(self, log_text: str) -> bool:
        return self.pattern.search(log_text) is not None


DEFAULT_LOG_RULES = (
    LogRule("swap", re.compile(r"Swap|Instruction:\s*Swap|Route", re.I), ActivityKind.SWAP),
    LogRule("buy", re.compile(r"Instruction:\s*Buy", re.I), ActivityKind.BUY),
    LogRule("sell", re.compile(r"Instruction:\s*Sell", re.I), ActivityKind.SELL),
)


def detect_protocol(logs: Sequence[str]) -> str:
    """
    Protocol label of the first known program invoked by the transaction.

    Top-level invocations win over CPI calls; infrastructure programs
    (system, token, ATA, compute budget) are ignored.
    """
    invoked = []
    for line in logs:
        match = _INVOKE_RE.search(line)
        if match and match.group(1) not in INFRA_PROGRAMS:
            invoked.append((int(match.group(2)), match.group(1)))

    for _, program_id in sorted(invoked, key=lambda item: item[0]):
        label = KNOWN_PROGRAMS.get(program_id)
        if label:
            return label
    return UNKNOWN_PROTOCOL


class ActivityClassifier:
    """
    Infer at most one DeFiActivity for a wallet's view of a transaction.

    Decision order:
    1. Two or more mints changed with at least one decrease and one increase: SWAP
    2. Exactly one mint changed: BUY or SELL, from buy/sell log rules and the
       direction of SOL and token flow
    3. Otherwise the first log rule that matches, with no token detail
    """

    def __init__(self, rules: Sequence[LogRule] = DEFAULT_LOG_RULES):
        self.rules = tuple(rules)

    def _matched(self, log_text: str) -> List[LogRule]:
        return [rule for rule in self.rules if rule.matches(log_text)]

    def classify(self, tx: LedgerTransaction, wallet: str, sol_change: float) -> Optional[DeFiActivity]:
        log_text = " ".join(tx.log_messages)
        matched = self._matched(log_text)
        matched_kinds = {rule.kind for rule in matched}
        has_buy = ActivityKind.BUY in matched_kinds
        has_sell = ActivityKind.SELL in matched_kinds

        # Net diff per mint, first-seen order
        diffs: Dict[str, Decimal] = {}
        for change in diff_token_balances(tx, wallet):
            diffs[change.mint] = diffs.get(change.mint, Decimal(0)) + change.diff
        diffs = {mint: diff for mint, diff in diffs.items() if diff != 0}

        protocol = detect_protocol(tx.log_messages)

        if len(diffs) >= 2:
            sold = next(((m, d) for m, d in diffs.items() if d < 0), None)
            bought = next(((m, d) for m, d in diffs.items() if d > 0), None)
            if sold and bought:
                return DeFiActivity(
                    kind=ActivityKind.SWAP,
                    protocol=protocol,
                    from_mint=sold[0],
                    to_mint=bought[0],
                    from_amount=float(abs(sold[1])),
                    to_amount=float(bought[1]),
                )

        elif len(diffs) == 1:
            mint, diff = next(iter(diffs.items()))

            if has_buy or (not has_sell and sol_change < 0 and diff > 0):
                return DeFiActivity(
                    kind=ActivityKind.BUY,
                    protocol=protocol,
                    to_mint=mint,
                    to_amount=float(abs(diff)),
                )

            if has_sell or (not has_buy and sol_change > 0 and diff < 0):
                return DeFiActivity(
                    kind=ActivityKind.SELL,
                    protocol=protocol,
                    from_mint=mint,
                    from_amount=float(abs(diff)),
                )

        if matched:
            logger.debug(f"Activity from log rule '{matched[0].name}' for {tx.signature[:16]}")
            return DeFiActivity(kind=matched[0].kind, protocol=protocol)

        return None
