import base64
import binascii
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

import base58

from ..constants import LAMPORTS_PER_SOL, SOL_BALANCE_PRECISION
from ..exceptions import InvalidSignatureException

SIGNATURE_BYTES = 64


def to_decimal(value: Any) -> Decimal:
    """Parse a UI amount (string or number). Missing or unparseable values are zero."""
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    if not parsed.is_finite():
        return Decimal(0)
    return parsed


def to_num(value: Any) -> float:
    return float(to_decimal(value))


def lamports_to_sol(lamports: Union[int, str]) -> float:
    return int(lamports) / LAMPORTS_PER_SOL


def round_sol(sol: float) -> float:
    return round(sol, SOL_BALANCE_PRECISION)


def encode_signature(raw: Union[bytes, bytearray, memoryview, list, str]) -> str:
    """
    Return the base-58 form of a transaction signature.

    Accepts the raw signature bytes, base64 text of those bytes, or a
    signature that is already base-58. Leading zero bytes become leading '1'.
    """
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise InvalidSignatureException("empty signature")
        try:
            if len(base58.b58decode(text)) == SIGNATURE_BYTES:
                return text
        except ValueError:
            pass
        try:
            decoded = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidSignatureException("signature is neither base58 nor base64", signature=text[:16]) from e
        return encode_signature(decoded)

    try:
        data = bytes(raw)
    except (TypeError, ValueError) as e:
        raise InvalidSignatureException("signature bytes are not decodable") from e
    if not data:
        raise InvalidSignatureException("empty signature")
    return base58.b58encode(data).decode("ascii")


def format_token_amount(amount: float, decimals: int) -> str:
    if amount >= 1e9:
        return f"{amount / 1e9:.2f}B"
    elif amount >= 1e6:
        return f"{amount / 1e6:.2f}M"
    elif amount >= 1e3:
        return f"{amount / 1e3:.2f}K"
    return f"{amount:.{max(0, min(4, decimals))}f}"


def iso_from_unix(ts: float) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T12:00:00.000Z"""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    return iso_from_unix(datetime.now(tz=timezone.utc).timestamp())


def short(address: Optional[str], n: int = 8) -> str:
    return (address or "")[:n]
