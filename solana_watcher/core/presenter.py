"""Human-readable and JSON rendering of wallet activity."""

import json
import sys
from datetime import datetime
from typing import List, Optional, TextIO

from ..utils.helpers import format_token_amount
from .models import AccountUpdate, Direction, EnrichedRecord

RULE = "=" * 120


def _signed(value: float, digits: int = 6) -> str:
    return f"{'+' if value >= 0 else ''}{value:.{digits}f}"


def render_report(record: EnrichedRecord) -> str:
    lines: List[str] = [
        "",
        RULE,
        "WALLET TRACKER LOG",
        RULE,
        f"Transaction: {record.signature[:20]}...",
        f"Wallet: {record.wallet.address}",
        f"Time: {record.timestamp_iso}",
        f"☑️ Status: {'SUCCESS' if record.success else 'FAILED'}",
        f"SOL Change: {_signed(record.wallet.sol_change)} SOL",
        f"Total USD Value: ${record.summary.total_usd_value:.2f}",
        f"Risk Level: {record.summary.risk_level.value}",
    ]

    if record.token_transactions:
        lines.append("")
        lines.append("TOKEN TRANSACTIONS:")
        for i, tx in enumerate(record.token_transactions):
            icon = "🟢" if tx.action == Direction.BUY else "🔴"
            price_info = f" @ ${tx.price_per_token:.6f}" if tx.price_per_token else ""
            usd_info = f" (${tx.usd_value:.2f})" if tx.usd_value else ""
            new_badge = " 🆕" if tx.is_new_position else ""
            token = tx.token

            lines.append(
                f"  {icon} {tx.action.value}: {tx.amount_formatted} {token.symbol}{price_info}{usd_info}{new_badge}"
            )
            lines.append(f"     Token: {token.name}")
            lines.append(f"     Token Mint: {token.mint}")
            if token.logo_uri:
                lines.append(f"     Logo: {token.logo_uri}")
            if token.website:
                lines.append(f"     🌐 Website: {token.website}")
            if token.market_cap:
                lines.append(f"     📈 Market Cap: ${token.market_cap / 1e6:.2f}M")
            if i < len(record.token_transactions) - 1:
                lines.append("")

    swap = record.swap_activity
    if swap is not None:
        lines.append("")
        lines.append("🔄 SWAP ACTIVITY:")
        lines.append(f"  Type: {swap.swap_type.value}")
        lines.append(f"  Protocol: {swap.protocol}")
        if swap.from_token and swap.to_token:
            sold = format_token_amount(abs(swap.from_amount or 0), swap.from_token.decimals)
            bought = format_token_amount(abs(swap.to_amount or 0), swap.to_token.decimals)
            lines.append(f"  {sold} {swap.from_token.symbol} → {bought} {swap.to_token.symbol}")

    if record.detected_patterns:
        lines.append("")
        lines.append("DETECTED PATTERNS:")
        for pattern in record.detected_patterns:
            lines.append(f"  • {pattern.value.replace('_', ' ')}")

    summary = record.summary
    lines.append("")
    lines.append(
        f"📋 SUMMARY: {summary.transaction_type.value.replace('_', ' ')} | "
        f"{summary.total_tokens_involved} tokens | {summary.risk_level.value} risk"
    )
    lines.append(RULE)
    lines.append("")
    return "\n".join(lines)


def render_balance_update(update: AccountUpdate, now: Optional[datetime] = None) -> str:
    clock = (now or datetime.now()).strftime("%H:%M:%S")
    return f"[{clock}] Balance Update: {update.sol_balance:.6f} SOL"


class ReportPresenter:
    """Writes reports (or one JSON object per line) to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None, json_output: bool = False):
        self.stream = stream or sys.stdout
        self.json_output = json_output

    def _write(self, text: str) -> None:
        print(text, file=self.stream, flush=True)

    def present(self, record: EnrichedRecord) -> None:
        if self.json_output:
            self._write(json.dumps(record.to_dict(), ensure_ascii=False))
        else:
            self._write(render_report(record))

    def present_balance(self, update: AccountUpdate) -> None:
        if self.json_output:
            self._write(json.dumps({
                "type": "balance_update",
                "address": update.address,
                "balance_sol": update.sol_balance,
                "slot": update.slot,
                "timestamp": update.timestamp,
            }))
        else:
            self._write(render_balance_update(update))
