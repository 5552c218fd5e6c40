"""
Ledger RPC access.

Thin wrapper over solana-py's AsyncClient that adds a per-call timeout,
retry with backoff and a circuit breaker. Every failure surfaces as a
LookupException so callers only have one error type to handle.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solders.pubkey import Pubkey
from solders.signature import Signature

from ..config import Settings
from ..exceptions import LookupException
from ..utils.retry import CircuitBreaker, async_retry
from .models import LedgerTransaction

logger = logging.getLogger(__name__)


def _extract_value(response: Any) -> Optional[Any]:
    """Pull the JSON `result` out of a solders response (or an already-decoded dict)."""
    if response is None:
        return None
    if isinstance(response, dict):
        payload = response
    elif hasattr(response, "to_json"):
        payload = json.loads(response.to_json())
    else:
        return getattr(response, "value", None)
    if "result" in payload:
        return payload.get("result")
    return payload.get("value", payload)


class LedgerClient:
    """
    Transaction and account lookups against one RPC endpoint.

    Usage:
        ledger = LedgerClient(settings)
        tx = await ledger.get_transaction(signature)
        data = await ledger.get_account_data(mint)
        await ledger.close()
    """

    def __init__(self, settings: Settings, client: Optional[AsyncClient] = None):
        self.settings = settings
        self.commitment = Commitment(settings.RPC_COMMITMENT)
        self.client = client or AsyncClient(settings.RPC_URL, commitment=self.commitment)
        self.breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=30.0, name="ledger")
        self._attempt = async_retry(
            max_attempts=settings.RPC_MAX_ATTEMPTS,
            delay=settings.RPC_RETRY_DELAY_SEC,
            exceptions=(LookupException,),
        )(self._call_once)

    async def _call(self, method: str, *args, **kwargs) -> Any:
        """One logical lookup: a single breaker check and a single outcome, however many retries."""
        if not self.breaker.can_execute():
            raise LookupException("ledger circuit breaker open", method=method)

        try:
            result = await self._attempt(method, *args, **kwargs)
        except LookupException:
            self.breaker.record_failure()
            raise

        self.breaker.record_success()
        return result

    async def _call_once(self, method: str, *args, **kwargs) -> Any:
        try:
            rpc_method = getattr(self.client, method)
            return await asyncio.wait_for(
                rpc_method(*args, **kwargs),
                timeout=self.settings.RPC_TIMEOUT_SEC,
            )
        except asyncio.TimeoutError as e:
            raise LookupException("ledger lookup timed out", method=method) from e
        except Exception as e:
            logger.warning(f"RPC {method} failed: {e}")
            raise LookupException(f"ledger lookup failed: {e}", method=method) from e

    async def get_transaction(self, signature: str) -> Optional[LedgerTransaction]:
        """Fetch a confirmed transaction. Returns None when the ledger has no record of it."""
        response = await self._call(
            "get_transaction",
            Signature.from_string(signature),
            encoding="json",
            commitment=self.commitment,
            max_supported_transaction_version=0,
        )
        result = _extract_value(response)
        if not result:
            return None
        return LedgerTransaction.from_rpc(signature, result)

    async def get_account_data(self, address: str) -> Optional[bytes]:
        """Raw data of an account, or None if it does not exist."""
        response = await self._call("get_account_info", Pubkey.from_string(address))
        value = getattr(response, "value", None)
        if value is None:
            return None
        return bytes(value.data)

    def get_status(self) -> Dict[str, Any]:
        return self.breaker.get_status()

    async def close(self):
        await self.client.close()
