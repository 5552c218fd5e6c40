"""
Token metadata resolution.

Resolves a mint's identity from three sources, best effort:

1. The SPL mint account (decimals, supply, authorities)
2. The Metaplex metadata account derived from the mint (name, symbol, URI)
3. The off-chain JSON behind the URI (image, description, website)

Price fields come from the price client. Results are cached per mint, and a
failed resolution caches fallback metadata so the same mint is not retried on
every transaction.
"""

import logging
import struct
from typing import Any, Dict, Optional, Tuple

import aiohttp
from solders.pubkey import Pubkey

from ..config import Settings
from ..constants import (
    DEFAULT_TOKEN_DECIMALS,
    METADATA_HEADER_SIZE,
    METADATA_PROGRAM,
    MINT_ACCOUNT_SIZE,
    MINT_AUTHORITY_OFFSET,
    MINT_DECIMALS_OFFSET,
    MINT_FREEZE_AUTHORITY_OFFSET,
    MINT_INITIALIZED_OFFSET,
    MINT_SUPPLY_OFFSET,
)
from ..exceptions import MetadataException
from ..utils.helpers import short
from .cache import WatcherCaches
from .ledger import LedgerClient
from .models import MintInfo, TokenMetadata
from .price_client import JupiterPriceClient

logger = logging.getLogger(__name__)


def derive_metadata_address(mint: str) -> Pubkey:
    """Metaplex metadata PDA for a mint: seeds ["metadata", program, mint]."""
    mint_pk = Pubkey.from_string(mint)
    address, _bump = Pubkey.find_program_address(
        [b"metadata", bytes(METADATA_PROGRAM), bytes(mint_pk)],
        METADATA_PROGRAM,
    )
    return address


def _read_coption_pubkey(data: bytes, offset: int) -> Optional[str]:
    (tag,) = struct.unpack_from("<I", data, offset)
    if tag == 0:
        return None
    return str(Pubkey(data[offset + 4:offset + 36]))


def parse_mint_account(data: bytes) -> MintInfo:
    """Decode an SPL mint account (82-byte base layout, Token-2022 extensions ignored)."""
    if len(data) < MINT_ACCOUNT_SIZE:
        raise MetadataException("mint account too short", size=len(data))

    (raw_supply,) = struct.unpack_from("<Q", data, MINT_SUPPLY_OFFSET)
    decimals = data[MINT_DECIMALS_OFFSET]

    return MintInfo(
        decimals=decimals,
        supply=raw_supply / (10 ** decimals),
        mint_authority=_read_coption_pubkey(data, MINT_AUTHORITY_OFFSET),
        freeze_authority=_read_coption_pubkey(data, MINT_FREEZE_AUTHORITY_OFFSET),
        is_initialized=bool(data[MINT_INITIALIZED_OFFSET]),
    )


def parse_metadata_account(data: bytes) -> Tuple[str, str, str]:
    """
    Read (name, symbol, uri) from a Metaplex metadata account.

    Skips key + update authority + mint, then reads three u32
    length-prefixed UTF-8 strings. Null padding is stripped.
    """
    offset = METADATA_HEADER_SIZE
    fields = []
    try:
        for _ in range(3):
            (length,) = struct.unpack_from("<I", data, offset)
            offset += 4
            if offset + length > len(data):
                raise MetadataException("metadata string overruns account", offset=offset, length=length)
            raw = data[offset:offset + length]
            offset += length
            fields.append(raw.decode("utf-8", errors="replace").replace("\x00", "").strip())
    except struct.error as e:
        raise MetadataException("metadata account too short", size=len(data)) from e

    name, symbol, uri = fields
    return name, symbol, uri


class MetadataResolver:
    """
    Resolves TokenMetadata per mint, backed by the shared metadata cache.

    Concurrent resolutions for the same mint share one lookup.
    """

    def __init__(
        self,
        settings: Settings,
        ledger: LedgerClient,
        price_client: JupiterPriceClient,
        caches: WatcherCaches,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.settings = settings
        self.ledger = ledger
        self.price_client = price_client
        self.caches = caches
        self.session = session
        self._owns_session = session is None

    async def resolve(self, mint: str) -> TokenMetadata:
        cached = self.caches.metadata.get(mint)
        if cached is not None:
            return cached
        return await self.caches.metadata_flight.run(mint, lambda: self._resolve_and_cache(mint))

    async def _resolve_and_cache(self, mint: str) -> TokenMetadata:
        try:
            metadata = await self._resolve(mint)
            logger.info(f"✅ Token metadata fetched: {metadata.name} ({metadata.symbol})")
        except Exception as e:
            logger.warning(f"⚠️ Metadata lookup failed for {short(mint)}: {e}, using fallback")
            metadata = TokenMetadata.fallback(mint)

        self.caches.metadata.set(mint, metadata)
        return metadata

    async def _resolve(self, mint: str) -> TokenMetadata:
        logger.debug(f"🔍 Fetching metadata for token: {mint}")

        mint_data = await self.ledger.get_account_data(mint)
        if mint_data:
            mint_info = parse_mint_account(mint_data)
        else:
            mint_info = MintInfo(
                decimals=DEFAULT_TOKEN_DECIMALS, supply=0.0, mint_authority=None, freeze_authority=None
            )

        onchain = await self._fetch_onchain_metadata(mint)
        price = await self.price_client.get_price(mint)

        return TokenMetadata(
            mint=mint,
            name=onchain.get("name") or f"Token {short(mint)}",
            symbol=onchain.get("symbol") or short(mint),
            decimals=mint_info.decimals,
            supply=mint_info.supply,
            freeze_authority=mint_info.freeze_authority,
            mint_authority=mint_info.mint_authority,
            is_mutable=mint_info.mint_authority is not None,
            logo_uri=onchain.get("image"),
            description=onchain.get("description"),
            website=onchain.get("external_url"),
            price=price.price_usd if price else None,
            price_change_24h=price.price_change_24h if price else None,
            market_cap=price.market_cap if price else None,
            volume_24h=price.volume_24h if price else None,
            holder_count=int(price.supply // 1000) if price and price.supply else None,
        )

    async def _fetch_onchain_metadata(self, mint: str) -> Dict[str, Any]:
        """Name/symbol from the metadata account plus the off-chain JSON fields. Empty on failure."""
        try:
            data = await self.ledger.get_account_data(str(derive_metadata_address(mint)))
            if not data:
                return {}
            name, symbol, uri = parse_metadata_account(data)
        except Exception as e:
            logger.debug(f"No on-chain metadata for {short(mint)}: {e}")
            return {}

        result: Dict[str, Any] = {"name": name, "symbol": symbol, "uri": uri}
        if uri.startswith(("http://", "https://")):
            result.update(await self._fetch_json_metadata(uri))
        return result

    async def _fetch_json_metadata(self, uri: str) -> Dict[str, Any]:
        try:
            session = self._get_session()
            timeout = aiohttp.ClientTimeout(total=self.settings.API_TIMEOUT_SEC)
            async with session.get(uri, timeout=timeout) as resp:
                if resp.status != 200:
                    logger.debug(f"Metadata JSON {uri[:60]} returned {resp.status}")
                    return {}
                payload = await resp.json(content_type=None)
        except Exception as e:
            logger.debug(f"Could not fetch JSON metadata from {uri[:60]}: {e}")
            return {}

        if not isinstance(payload, dict):
            return {}
        return {
            key: payload[key]
            for key in ("image", "description", "external_url")
            if payload.get(key)
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    async def close(self):
        if self._owns_session and self.session is not None and not self.session.closed:
            await self.session.close()
