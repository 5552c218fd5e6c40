"""Tests for TransactionFetcher and SOL delta computation"""

import asyncio

from solana_watcher.core.activity_classifier import ActivityClassifier
from solana_watcher.core.models import ActivityKind, Direction
from solana_watcher.core.transaction_fetcher import TransactionFetcher, compute_sol_change
from solana_watcher.core.transfer_extractor import TransferExtractor
from solana_watcher.exceptions import LookupException

from conftest import BLOCK_TIME, MINT_A, OTHER_WALLET, WALLET, make_signature, make_tx, token_balance


def make_fetcher(ledger, resolver):
    return TransactionFetcher(ledger, TransferExtractor(resolver), ActivityClassifier())


class TestComputeSolChange:
    def test_delta_from_wallet_index(self):
        tx = make_tx(pre_lamports=2_000_000_000, post_lamports=1_500_000_000)
        assert compute_sol_change(tx, WALLET) == -0.5

    def test_wallet_absent_is_zero(self):
        tx = make_tx(pre_lamports=2_000_000_000, post_lamports=1_500_000_000)
        assert compute_sol_change(tx, OTHER_WALLET) == 0.0


class TestTransactionFetcher:
    """TransactionFetcher.fetch()"""

    def test_short_signature_skips_lookup(self, ledger, resolver):
        """A 40-character signature is rejected before any lookup"""
        result = asyncio.run(make_fetcher(ledger, resolver).fetch("x" * 40, WALLET))
        assert result is None
        assert ledger.calls == []

    def test_not_found_returns_none(self, ledger, resolver):
        result = asyncio.run(make_fetcher(ledger, resolver).fetch(make_signature(), WALLET))
        assert result is None
        assert ledger.calls == [("get_transaction", make_signature())]

    def test_lookup_failure_returns_none(self, ledger, resolver):
        signature = make_signature()
        ledger.transactions[signature] = LookupException("ledger lookup timed out")
        assert asyncio.run(make_fetcher(ledger, resolver).fetch(signature, WALLET)) is None

    def test_composes_record(self, ledger, resolver):
        signature = make_signature()
        ledger.transactions[signature] = make_tx(
            signature=signature,
            pre_lamports=2_000_000_000,
            post_lamports=1_500_000_000,
            pre_tokens=[token_balance(2, MINT_A, WALLET, "0")],
            post_tokens=[token_balance(2, MINT_A, WALLET, "1000")],
            logs=["Program log: Instruction: Buy"],
        )

        record = asyncio.run(make_fetcher(ledger, resolver).fetch(signature, WALLET))

        assert record.signature == signature
        assert record.success is True
        assert record.sol_change == -0.5
        assert record.timestamp == float(BLOCK_TIME)
        assert len(record.transfers) == 1
        assert record.transfers[0].direction == Direction.BUY
        assert record.transfers[0].amount == 1000.0
        assert record.activity.kind == ActivityKind.BUY

    def test_failed_transaction_is_flagged(self, ledger, resolver):
        signature = make_signature()
        ledger.transactions[signature] = make_tx(signature=signature, err={"InstructionError": [0, "Custom"]})
        record = asyncio.run(make_fetcher(ledger, resolver).fetch(signature, WALLET))
        assert record.success is False

    def test_missing_block_time_uses_now(self, ledger, resolver):
        signature = make_signature()
        ledger.transactions[signature] = make_tx(signature=signature, block_time=None)
        record = asyncio.run(make_fetcher(ledger, resolver).fetch(signature, WALLET))
        assert record.timestamp > BLOCK_TIME
