"""
Unit tests for DeFi activity classification

Tests:
1. Swap / buy / sell decision rules
2. Log rule fallback
3. Protocol attribution
"""

import re

from solana_watcher.core.activity_classifier import (
    DEFAULT_LOG_RULES,
    ActivityClassifier,
    LogRule,
    detect_protocol,
)
from solana_watcher.core.models import ActivityKind

from conftest import MINT_A, MINT_B, OTHER_WALLET, WALLET, make_address, make_tx, token_balance

PUMP_FUN = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
JUPITER = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
COMPUTE_BUDGET = "ComputeBudget111111111111111111111111111111"
TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


class TestLogRules:
    """Data-driven log rules"""

    def test_rule_order(self):
        assert [r.kind for r in DEFAULT_LOG_RULES] == [ActivityKind.SWAP, ActivityKind.BUY, ActivityKind.SELL]

    def test_rules_are_case_insensitive(self):
        buy = DEFAULT_LOG_RULES[1]
        assert buy.matches("Program log: instruction: buy")
        assert not buy.matches("Program log: Instruction: Sell")

    def test_custom_rules(self):
        rules = [LogRule("sell-first", re.compile("dump", re.I), ActivityKind.SELL)]
        tx = make_tx(logs=["Program log: DUMP it"])
        activity = ActivityClassifier(rules).classify(tx, WALLET, 0.0)
        assert activity.kind == ActivityKind.SELL


class TestClassify:
    """ActivityClassifier.classify()"""

    def test_buy_scenario(self):
        """SOL down 0.5, token 0 -> 1000, 'Instruction: Buy' in logs"""
        tx = make_tx(
            pre_lamports=2_000_000_000,
            post_lamports=1_500_000_000,
            pre_tokens=[token_balance(2, MINT_A, WALLET, "0")],
            post_tokens=[token_balance(2, MINT_A, WALLET, "1000")],
            logs=[f"Program {PUMP_FUN} invoke [1]", "Program log: Instruction: Buy"],
        )
        activity = ActivityClassifier().classify(tx, WALLET, -0.5)

        assert activity.kind == ActivityKind.BUY
        assert activity.to_mint == MINT_A
        assert activity.to_amount == 1000.0
        assert activity.from_mint is None
        assert activity.protocol == "Pump.fun"

    def test_swap_scenario(self):
        """One mint down 500, another up 300"""
        tx = make_tx(
            pre_tokens=[
                token_balance(2, MINT_A, WALLET, "500"),
                token_balance(3, MINT_B, WALLET, "0"),
            ],
            post_tokens=[
                token_balance(2, MINT_A, WALLET, "0"),
                token_balance(3, MINT_B, WALLET, "300"),
            ],
        )
        activity = ActivityClassifier().classify(tx, WALLET, 0.0)

        assert activity.kind == ActivityKind.SWAP
        assert activity.from_mint == MINT_A
        assert activity.to_mint == MINT_B
        assert activity.from_amount == 500.0
        assert activity.to_amount == 300.0

    def test_buy_inferred_from_flows_without_logs(self):
        tx = make_tx(
            pre_tokens=[token_balance(2, MINT_A, WALLET, "1")],
            post_tokens=[token_balance(2, MINT_A, WALLET, "2")],
        )
        activity = ActivityClassifier().classify(tx, WALLET, -0.1)
        assert activity.kind == ActivityKind.BUY

    def test_account_handed_to_wallet_is_buy(self):
        tx = make_tx(
            pre_tokens=[token_balance(3, MINT_A, OTHER_WALLET, "100")],
            post_tokens=[token_balance(3, MINT_A, WALLET, "100")],
            logs=["Program log: Instruction: Buy"],
        )
        activity = ActivityClassifier().classify(tx, WALLET, -0.2)
        assert activity.kind == ActivityKind.BUY
        assert activity.to_mint == MINT_A
        assert activity.to_amount == 100.0

    def test_sell_inferred_from_flows(self):
        tx = make_tx(
            pre_tokens=[token_balance(2, MINT_A, WALLET, "10")],
            post_tokens=[token_balance(2, MINT_A, WALLET, "4")],
        )
        activity = ActivityClassifier().classify(tx, WALLET, 0.3)
        assert activity.kind == ActivityKind.SELL
        assert activity.from_mint == MINT_A
        assert activity.from_amount == 6.0

    def test_sell_log_blocks_buy_inference(self):
        tx = make_tx(
            pre_tokens=[token_balance(2, MINT_A, WALLET, "1")],
            post_tokens=[token_balance(2, MINT_A, WALLET, "2")],
            logs=["Program log: Instruction: Sell"],
        )
        activity = ActivityClassifier().classify(tx, WALLET, -0.1)
        assert activity.kind == ActivityKind.SELL

    def test_log_only_activity_has_no_token_detail(self):
        tx = make_tx(logs=["Program log: Instruction: Route"])
        activity = ActivityClassifier().classify(tx, WALLET, 0.0)
        assert activity.kind == ActivityKind.SWAP
        assert activity.from_mint is None
        assert activity.to_mint is None

    def test_two_increases_fall_back_to_logs(self):
        tx = make_tx(
            post_tokens=[
                token_balance(2, MINT_A, WALLET, "1"),
                token_balance(3, MINT_B, WALLET, "2"),
            ],
            logs=["Program log: Instruction: Buy"],
        )
        activity = ActivityClassifier().classify(tx, WALLET, -1.0)
        assert activity.kind == ActivityKind.BUY
        assert activity.to_mint is None

    def test_nothing_detected(self):
        tx = make_tx(logs=["Program log: Instruction: Transfer"])
        assert ActivityClassifier().classify(tx, WALLET, -0.01) is None


class TestDetectProtocol:
    """Protocol attribution from invoke logs"""

    def test_infra_programs_are_skipped(self):
        logs = [
            f"Program {COMPUTE_BUDGET} invoke [1]",
            f"Program {JUPITER} invoke [1]",
            f"Program {TOKEN_PROGRAM} invoke [2]",
        ]
        assert detect_protocol(logs) == "Jupiter"

    def test_top_level_invocation_wins(self):
        logs = [
            f"Program {make_address(50)} invoke [1]",
            f"Program {PUMP_FUN} invoke [2]",
            f"Program {JUPITER} invoke [1]",
        ]
        assert detect_protocol(logs) == "Jupiter"

    def test_unknown(self):
        assert detect_protocol([f"Program {make_address(50)} invoke [1]"]) == "Unknown"
        assert detect_protocol([]) == "Unknown"
