from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional

from solana_watcher.constants import DEFAULT_TOKEN_DECIMALS
from solana_watcher.utils.helpers import lamports_to_sol, round_sol, short, to_decimal


class Direction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class ActivityKind(str, Enum):
    SWAP = "SWAP"
    BUY = "BUY"
    SELL = "SELL"


class SwapType(str, Enum):
    TOKEN_SWAP = "TOKEN_SWAP"
    SOL_TO_TOKEN = "SOL_TO_TOKEN"
    TOKEN_TO_SOL = "TOKEN_TO_SOL"


class TransactionType(str, Enum):
    SIMPLE_TRANSFER = "SIMPLE_TRANSFER"
    TOKEN_TRADE = "TOKEN_TRADE"
    COMPLEX_SWAP = "COMPLEX_SWAP"
    DEFI_INTERACTION = "DEFI_INTERACTION"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Pattern(str, Enum):
    MULTI_TOKEN_TRADE = "MULTI_TOKEN_TRADE"
    NEW_POSITION = "NEW_POSITION"
    LARGE_SOL_SPEND = "LARGE_SOL_SPEND"
    BUY_SELL_MIX = "BUY_SELL_MIX"
    ACCUMULATION = "ACCUMULATION"
    DISTRIBUTION = "DISTRIBUTION"


# -------------------------------------------------------------------------
# Inbound: account updates and ledger transactions
# -------------------------------------------------------------------------

@dataclass
class AccountUpdate:
    address: str
    lamports: int
    owner: str
    executable: bool
    rent_epoch: int
    slot: Optional[int]
    signature: Optional[str]
    timestamp: str  # ISO-8601

    @property
    def sol_balance(self) -> float:
        return round_sol(lamports_to_sol(self.lamports))


@dataclass
class TokenBalance:
    """One entry of a transaction's pre/post token-balance list."""
    account_index: int
    mint: str
    owner: Optional[str]
    ui_amount: str
    decimals: Optional[int] = None

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> Optional["TokenBalance"]:
        if not isinstance(data, dict):
            return None
        index = data.get("accountIndex")
        mint = data.get("mint")
        ui = data.get("uiTokenAmount")
        if index is None or not mint or not isinstance(ui, dict):
            return None
        ui_amount = ui.get("uiAmountString")
        if ui_amount is None and ui.get("uiAmount") is not None:
            ui_amount = str(ui["uiAmount"])
        return cls(
            account_index=int(index),
            mint=str(mint),
            owner=data.get("owner"),
            ui_amount=ui_amount or "0",
            decimals=ui.get("decimals"),
        )

    @property
    def amount(self):
        return to_decimal(self.ui_amount)


@dataclass
class LedgerTransaction:
    """Transaction as returned by the ledger, validated once at the lookup boundary."""
    signature: str
    success: bool
    account_keys: list[str] = field(default_factory=list)
    pre_balances: list[int] = field(default_factory=list)
    post_balances: list[int] = field(default_factory=list)
    pre_token_balances: list[TokenBalance] = field(default_factory=list)
    post_token_balances: list[TokenBalance] = field(default_factory=list)
    log_messages: list[str] = field(default_factory=list)
    block_time: Optional[int] = None
    slot: Optional[int] = None

    @classmethod
    def from_rpc(cls, signature: str, result: dict[str, Any]) -> "LedgerTransaction":
        """Build from a getTransaction result (json or jsonParsed encoding)."""
        transaction = result.get("transaction") or {}
        meta = result.get("meta")
        # Some serializers nest meta next to the inner transaction
        if meta is None and isinstance(transaction, dict) and "meta" in transaction:
            meta = transaction.get("meta")
            transaction = transaction.get("transaction") or {}
        meta = meta or {}

        message = (transaction.get("message") or {}) if isinstance(transaction, dict) else {}
        keys = []
        for key in message.get("accountKeys") or []:
            if isinstance(key, dict):
                key = key.get("pubkey")
            keys.append(str(key) if key is not None else "")

        def balances(name: str) -> list[TokenBalance]:
            parsed = (TokenBalance.from_rpc(b) for b in meta.get(name) or [])
            return [b for b in parsed if b is not None]

        return cls(
            signature=signature,
            success=meta.get("err") is None,
            account_keys=keys,
            pre_balances=[int(b) for b in meta.get("preBalances") or []],
            post_balances=[int(b) for b in meta.get("postBalances") or []],
            pre_token_balances=balances("preTokenBalances"),
            post_token_balances=balances("postTokenBalances"),
            log_messages=[str(line) for line in meta.get("logMessages") or []],
            block_time=result.get("blockTime"),
            slot=result.get("slot"),
        )


# -------------------------------------------------------------------------
# Decoded activity
# -------------------------------------------------------------------------

@dataclass
class TokenTransfer:
    mint: str
    symbol: str
    name: str
    amount: float
    decimals: int
    direction: Direction


@dataclass
class DeFiActivity:
    kind: ActivityKind
    protocol: str = "Unknown"
    from_mint: Optional[str] = None
    to_mint: Optional[str] = None
    from_amount: Optional[float] = None
    to_amount: Optional[float] = None


@dataclass
class TransactionRecord:
    signature: str
    success: bool
    sol_change: float
    timestamp: float
    transfers: list[TokenTransfer] = field(default_factory=list)
    activity: Optional[DeFiActivity] = None


# -------------------------------------------------------------------------
# Token identity and price
# -------------------------------------------------------------------------

@dataclass
class TokenPriceInfo:
    price_usd: float
    price_change_24h: Optional[float] = None
    market_cap: Optional[float] = None
    volume_24h: Optional[float] = None
    supply: Optional[float] = None


@dataclass
class WalletTokenPosition:
    """Marks that a wallet has been seen holding a mint during this process."""
    wallet: str
    mint: str
    first_seen: float
    transaction_count: int = 1


@dataclass
class MintInfo:
    decimals: int
    supply: float
    mint_authority: Optional[str]
    freeze_authority: Optional[str]
    is_initialized: bool = True


@dataclass
class TokenMetadata:
    mint: str
    name: str
    symbol: str
    decimals: int = DEFAULT_TOKEN_DECIMALS
    supply: Optional[float] = None
    freeze_authority: Optional[str] = None
    mint_authority: Optional[str] = None
    is_mutable: Optional[bool] = None
    logo_uri: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    price: Optional[float] = None
    price_change_24h: Optional[float] = None
    market_cap: Optional[float] = None
    volume_24h: Optional[float] = None
    holder_count: Optional[int] = None
    is_fallback: bool = False

    @classmethod
    def fallback(cls, mint: str) -> "TokenMetadata":
        return cls(
            mint=mint,
            name=f"Token {short(mint)}",
            symbol=short(mint),
            decimals=DEFAULT_TOKEN_DECIMALS,
            is_fallback=True,
        )


# -------------------------------------------------------------------------
# Enriched output
# -------------------------------------------------------------------------

@dataclass
class TokenTransaction:
    action: Direction
    token: TokenMetadata
    amount: float
    amount_formatted: str
    is_new_position: bool
    usd_value: Optional[float] = None
    sol_equivalent: Optional[float] = None
    price_per_token: Optional[float] = None


@dataclass
class SwapActivity:
    swap_type: SwapType
    protocol: str
    from_token: Optional[TokenMetadata] = None
    to_token: Optional[TokenMetadata] = None
    from_amount: Optional[float] = None
    to_amount: Optional[float] = None
    from_usd_value: Optional[float] = None
    to_usd_value: Optional[float] = None


@dataclass
class WalletSnapshot:
    address: str
    balance_sol: float
    sol_change: float
    slot: Optional[int] = None


@dataclass
class TransactionSummary:
    total_tokens_involved: int
    total_usd_value: float
    net_sol_change: float
    transaction_type: TransactionType
    risk_score: int
    risk_level: RiskLevel
    fee_estimate_sol: float


@dataclass
class EnrichedRecord:
    record_id: str
    signature: str
    timestamp: float
    timestamp_iso: str
    success: bool
    wallet: WalletSnapshot
    token_transactions: list[TokenTransaction]
    swap_activity: Optional[SwapActivity]
    summary: TransactionSummary
    detected_patterns: list[Pattern] = field(default_factory=list)

    @property
    def is_first_time_token(self) -> bool:
        return any(tx.is_new_position for tx in self.token_transactions)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["is_first_time_token"] = self.is_first_time_token
        return _plain(data)


def _plain(value: Any) -> Any:
    """Replace enums with their values so the result is JSON-serializable."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value
