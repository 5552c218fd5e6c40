import logging
import time
from typing import Optional

from ..constants import MIN_SIGNATURE_LENGTH
from ..utils.helpers import lamports_to_sol
from .activity_classifier import ActivityClassifier
from .ledger import LedgerClient
from .models import LedgerTransaction, TransactionRecord
from .transfer_extractor import TransferExtractor

logger = logging.getLogger("solana_watcher.fetcher")


def compute_sol_change(tx: LedgerTransaction, wallet: str) -> float:
    """Wallet SOL delta from the static account list; 0 if the wallet is not in it."""
    try:
        index = tx.account_keys.index(wallet)
    except ValueError:
        return 0.0
    if index >= len(tx.pre_balances) or index >= len(tx.post_balances):
        return 0.0
    return lamports_to_sol(tx.post_balances[index] - tx.pre_balances[index])


class TransactionFetcher:
    """Looks up a signature and composes the wallet's TransactionRecord."""

    def __init__(self, ledger: LedgerClient, extractor: TransferExtractor, classifier: ActivityClassifier):
        self.ledger = ledger
        self.extractor = extractor
        self.classifier = classifier

    async def fetch(self, signature: str, wallet: str) -> Optional[TransactionRecord]:
        """
        Never raises: invalid signatures, missing transactions and lookup
        failures all come back as None with a log line.
        """
        if not signature or len(signature) < MIN_SIGNATURE_LENGTH:
            logger.warning(f"⚠️ Invalid signature ({len(signature or '')} chars), skipping lookup")
            return None

        try:
            tx = await self.ledger.get_transaction(signature)
            if tx is None:
                logger.info(f"Transaction not found: {signature[:16]}...")
                return None

            sol_change = compute_sol_change(tx, wallet)
            transfers = await self.extractor.extract(tx, wallet)
            activity = self.classifier.classify(tx, wallet, sol_change)

            return TransactionRecord(
                signature=signature,
                success=tx.success,
                sol_change=sol_change,
                timestamp=float(tx.block_time) if tx.block_time else time.time(),
                transfers=transfers,
                activity=activity,
            )

        except Exception as e:
            logger.error(f"❌ Failed to fetch transaction {signature[:16]}...: {e}")
            return None
