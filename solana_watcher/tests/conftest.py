"""Shared fakes and builders for the watcher tests."""

import base58
import pytest
from solders.pubkey import Pubkey

from solana_watcher.config import Settings
from solana_watcher.core.cache import WatcherCaches
from solana_watcher.core.metadata import MetadataResolver
from solana_watcher.core.models import LedgerTransaction, TokenPriceInfo

BLOCK_TIME = 1_700_000_000


def make_address(seed: int) -> str:
    return str(Pubkey(bytes([seed]) * 32))


def make_signature(seed: int = 7) -> str:
    return base58.b58encode(bytes([seed]) * 64).decode("ascii")


WALLET = make_address(1)
OTHER_WALLET = make_address(2)
MINT_A = make_address(10)
MINT_B = make_address(11)


def token_balance(index, mint, owner, amount, decimals=6):
    return {
        "accountIndex": index,
        "mint": mint,
        "owner": owner,
        "uiTokenAmount": {
            "uiAmountString": None if amount is None else str(amount),
            "decimals": decimals,
        },
    }


def make_tx(
    signature=None,
    wallet=WALLET,
    pre_lamports=1_000_000_000,
    post_lamports=1_000_000_000,
    pre_tokens=(),
    post_tokens=(),
    logs=(),
    block_time=BLOCK_TIME,
    err=None,
):
    """LedgerTransaction built through the same path as a real RPC result."""
    result = {
        "slot": 250_000_000,
        "blockTime": block_time,
        "transaction": {"message": {"accountKeys": [wallet, make_address(99)]}},
        "meta": {
            "err": err,
            "preBalances": [pre_lamports, 0],
            "postBalances": [post_lamports, 0],
            "preTokenBalances": list(pre_tokens),
            "postTokenBalances": list(post_tokens),
            "logMessages": list(logs),
        },
    }
    return LedgerTransaction.from_rpc(signature or make_signature(), result)


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLedger:
    """Ledger stand-in. Values that are exceptions are raised on lookup."""

    def __init__(self):
        self.transactions = {}
        self.accounts = {}
        self.calls = []

    async def get_transaction(self, signature):
        self.calls.append(("get_transaction", signature))
        value = self.transactions.get(signature)
        if isinstance(value, Exception):
            raise value
        return value

    async def get_account_data(self, address):
        self.calls.append(("get_account_data", address))
        value = self.accounts.get(address)
        if isinstance(value, Exception):
            raise value
        return value

    async def close(self):
        pass


class FakePriceClient:
    def __init__(self, prices=None, sol_price=100.0):
        self.prices = dict(prices or {})
        self.sol_price = sol_price
        self.calls = []

    async def get_price(self, mint):
        self.calls.append(mint)
        price = self.prices.get(mint)
        if price is None:
            return None
        if isinstance(price, TokenPriceInfo):
            return price
        return TokenPriceInfo(price_usd=price)

    async def get_sol_price(self):
        return self.sol_price

    async def close(self):
        pass


@pytest.fixture
def settings():
    return Settings(
        RPC_URL="http://localhost:8899",
        RPC_MAX_ATTEMPTS=1,
        RPC_RETRY_DELAY_SEC=0.0,
        PRICE_API_URL="https://price.test/v3",
        METADATA_CACHE_MAXSIZE=100,
        METADATA_CACHE_TTL_SEC=0,
        MAX_CONCURRENT_RUNS=0,
        DEDUP_SIGNATURES=True,
        OUTPUT_JSON=False,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def caches(clock):
    return WatcherCaches(metadata_maxsize=100, price_ttl=300, dedup_ttl=300, clock=clock)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def prices():
    return FakePriceClient()


@pytest.fixture
def resolver(settings, ledger, prices, caches):
    return MetadataResolver(settings, ledger, prices, caches)
