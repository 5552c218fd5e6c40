"""Tests for report rendering"""

import io
import json
from datetime import datetime

from solana_watcher.core.models import (
    AccountUpdate,
    Direction,
    EnrichedRecord,
    Pattern,
    RiskLevel,
    SwapActivity,
    SwapType,
    TokenMetadata,
    TokenTransaction,
    TransactionSummary,
    TransactionType,
    WalletSnapshot,
)
from solana_watcher.core.presenter import ReportPresenter, render_balance_update, render_report

from conftest import MINT_A, MINT_B, WALLET, make_signature


def make_record(with_swap=True):
    bonk = TokenMetadata(
        mint=MINT_A,
        name="Bonk",
        symbol="BONK",
        logo_uri="https://img.test/bonk.png",
        website="https://bonk.test",
        market_cap=1_250_000_000,
    )
    other = TokenMetadata.fallback(MINT_B)
    return EnrichedRecord(
        record_id="tx_1_abc",
        signature=make_signature(),
        timestamp=1_700_000_000.0,
        timestamp_iso="2023-11-14T22:13:20.000Z",
        success=True,
        wallet=WalletSnapshot(address=WALLET, balance_sol=1.5, sol_change=-0.5, slot=9),
        token_transactions=[
            TokenTransaction(
                action=Direction.BUY,
                token=bonk,
                amount=1000.0,
                amount_formatted="1.00K",
                is_new_position=True,
                usd_value=25.0,
                sol_equivalent=0.25,
                price_per_token=0.025,
            ),
            TokenTransaction(
                action=Direction.SELL,
                token=other,
                amount=3.0,
                amount_formatted="3.0000",
                is_new_position=False,
            ),
        ],
        swap_activity=SwapActivity(
            swap_type=SwapType.TOKEN_SWAP,
            protocol="Jupiter",
            from_token=other,
            to_token=bonk,
            from_amount=3.0,
            to_amount=1000.0,
        ) if with_swap else None,
        summary=TransactionSummary(
            total_tokens_involved=2,
            total_usd_value=25.0,
            net_sol_change=-0.5,
            transaction_type=TransactionType.COMPLEX_SWAP,
            risk_score=2,
            risk_level=RiskLevel.MEDIUM,
            fee_estimate_sol=0.000005,
        ),
        detected_patterns=[Pattern.MULTI_TOKEN_TRADE, Pattern.BUY_SELL_MIX],
    )


class TestRenderReport:
    def test_header_and_summary(self):
        report = render_report(make_record())
        lines = report.splitlines()

        assert "=" * 120 in lines
        assert "WALLET TRACKER LOG" in lines
        assert f"Transaction: {make_signature()[:20]}..." in lines
        assert f"Wallet: {WALLET}" in lines
        assert "☑️ Status: SUCCESS" in lines
        assert "SOL Change: -0.500000 SOL" in lines
        assert "Total USD Value: $25.00" in lines
        assert "Risk Level: MEDIUM" in lines
        assert "📋 SUMMARY: COMPLEX SWAP | 2 tokens | MEDIUM risk" in lines

    def test_token_lines(self):
        report = render_report(make_record())
        assert "  🟢 BUY: 1.00K BONK @ $0.025000 ($25.00) 🆕" in report
        assert f"  🔴 SELL: 3.0000 {MINT_B[:8]}" in report
        assert "     Logo: https://img.test/bonk.png" in report
        assert "     🌐 Website: https://bonk.test" in report
        assert "     📈 Market Cap: $1250.00M" in report

    def test_swap_and_patterns(self):
        report = render_report(make_record())
        assert "🔄 SWAP ACTIVITY:" in report
        assert "  Type: TOKEN_SWAP" in report
        assert "  Protocol: Jupiter" in report
        assert f"  3.0000 {MINT_B[:8]} → 1.00K BONK" in report
        assert "  • MULTI TOKEN TRADE" in report
        assert "  • BUY SELL MIX" in report

    def test_no_swap_block_without_activity(self):
        assert "SWAP ACTIVITY" not in render_report(make_record(with_swap=False))


class TestReportPresenter:
    def test_json_output(self):
        stream = io.StringIO()
        ReportPresenter(stream, json_output=True).present(make_record())
        data = json.loads(stream.getvalue())
        assert data["record_id"] == "tx_1_abc"
        assert data["detected_patterns"] == ["MULTI_TOKEN_TRADE", "BUY_SELL_MIX"]

    def test_balance_update(self):
        update = AccountUpdate(
            address=WALLET, lamports=2_000_000_000, owner="System Program", executable=False,
            rent_epoch=0, slot=1, signature=None, timestamp="2024-05-01T12:00:00.000Z",
        )
        line = render_balance_update(update, now=datetime(2024, 5, 1, 12, 30, 5))
        assert line == "[12:30:05] Balance Update: 2.000000 SOL"

        stream = io.StringIO()
        ReportPresenter(stream).present_balance(update)
        assert "Balance Update: 2.000000 SOL" in stream.getvalue()
