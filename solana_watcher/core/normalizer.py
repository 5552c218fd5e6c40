"""
Account update normalization.

Turns raw update-stream events into AccountUpdate objects and reports SOL
balance changes between successive updates.

Accepted event shapes:
    {"ping": {...}}                                   keep-alive, dropped
    {"account": {"account": {...}, "slot": 1}, ...}   nested stream payload
    {"account": {"address": ..., "slot": 1, ...}}     flat payload
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey

from ..constants import SYSTEM_PROGRAM, SYSTEM_PROGRAM_LABEL
from ..exceptions import InvalidUpdateException, WatcherException
from ..utils.helpers import encode_signature, iso_from_unix, lamports_to_sol, utc_now_iso
from .cache import WatcherCaches
from .models import AccountUpdate

logger = logging.getLogger("solana_watcher.normalizer")

IGNORED_EVENT_KEYS = ("createdAt", "filters")


def _is_empty(event: Dict[str, Any]) -> bool:
    return all(value is None or key in IGNORED_EVENT_KEYS for key, value in event.items())


def _to_address(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview, list)):
        return str(Pubkey(bytes(value)))
    return str(Pubkey.from_string(str(value)))


def _to_timestamp(value: Any) -> str:
    if isinstance(value, datetime):
        return iso_from_unix(value.timestamp())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return iso_from_unix(float(value))
    if isinstance(value, str) and value:
        return value
    return utc_now_iso()


class AccountUpdateNormalizer:
    def __init__(self, caches: WatcherCaches):
        self.caches = caches

    def normalize(self, event: Any) -> Optional[AccountUpdate]:
        """Canonical AccountUpdate, or None for pings, empty and invalid events."""
        if not isinstance(event, dict) or event.get("ping") or _is_empty(event):
            return None

        payload = event.get("account")
        if not isinstance(payload, dict):
            return None

        slot = payload.get("slot")
        account = payload.get("account") if isinstance(payload.get("account"), dict) else payload
        if not account:
            return None

        try:
            return self._build(account, slot, event.get("createdAt") or account.get("createdAt"))
        except WatcherException as e:
            logger.warning(f"⚠️ Skipping account update: {e}")
        except Exception as e:
            logger.error(f"❌ Error parsing account data: {e}")
        return None

    def _build(self, account: Dict[str, Any], slot: Any, created_at: Any) -> AccountUpdate:
        raw_address = account.get("address", account.get("pubkey"))
        raw_lamports = account.get("lamports")
        raw_owner = account.get("owner")

        if raw_address is None or raw_lamports is None or raw_owner is None:
            raise InvalidUpdateException(
                "incomplete account data",
                address=raw_address is not None,
                lamports=raw_lamports is not None,
                owner=raw_owner is not None,
            )

        try:
            address = _to_address(raw_address)
            owner = _to_address(raw_owner)
            lamports = int(raw_lamports)
        except (TypeError, ValueError) as e:
            raise InvalidUpdateException(f"malformed account data: {e}") from e

        if owner == str(SYSTEM_PROGRAM):
            owner = SYSTEM_PROGRAM_LABEL

        raw_signature = account.get("signature", account.get("txnSignature"))
        signature = encode_signature(raw_signature) if raw_signature else None

        if slot is None:
            slot = account.get("slot")

        return AccountUpdate(
            address=address,
            lamports=lamports,
            owner=owner,
            executable=bool(account.get("executable", False)),
            rent_epoch=int(account.get("rentEpoch", account.get("rent_epoch")) or 0),
            slot=int(slot) if slot is not None else None,
            signature=signature,
            timestamp=_to_timestamp(created_at),
        )

    def detect_balance_change(self, update: AccountUpdate) -> Optional[float]:
        """SOL change since the previous update (per address, or shared), logged when non-zero."""
        previous = self.caches.swap_balance(update.address, update.lamports)
        if previous is None or previous == update.lamports:
            return None

        change = lamports_to_sol(update.lamports - previous)
        label = "📈 BALANCE INCREASE" if change > 0 else "📉 BALANCE DECREASE"
        logger.info(f"{label}: {'+' if change > 0 else ''}{change:.6f} SOL ({update.address[:8]})")
        return change
