"""
Unit tests for helper functions

Covers signature encoding, amount parsing and formatting.
"""

import base64
from decimal import Decimal

import base58
import pytest

from solana_watcher.exceptions import InvalidSignatureException
from solana_watcher.utils.helpers import (
    encode_signature,
    format_token_amount,
    iso_from_unix,
    lamports_to_sol,
    round_sol,
    to_decimal,
    to_num,
)


class TestEncodeSignature:
    """Base-58 signature encoding"""

    def test_leading_zero_bytes_become_leading_ones(self):
        """One leading '1' per leading zero byte"""
        raw = bytes([0, 0, 0, 5]) + bytes([9]) * 60
        encoded = encode_signature(raw)
        assert encoded.startswith("111")
        assert encoded[3] != "1"

    def test_zero_prefixed_by_nonzero_byte(self):
        """A non-zero first byte means no leading '1'"""
        encoded = encode_signature(bytes([1]) + bytes(32))
        assert not encoded.startswith("1")
        assert base58.b58decode(encoded) == bytes([1]) + bytes(32)

    def test_deterministic(self):
        raw = bytes(range(64))
        assert encode_signature(raw) == encode_signature(bytearray(raw))

    def test_base64_input_is_decoded_first(self):
        raw = bytes([3]) * 64
        assert encode_signature(base64.b64encode(raw).decode()) == base58.b58encode(raw).decode()

    def test_base58_input_passes_through(self):
        sig = base58.b58encode(bytes([4]) * 64).decode()
        assert encode_signature(sig) == sig

    def test_list_of_ints(self):
        assert encode_signature([0, 1, 2]) == base58.b58encode(bytes([0, 1, 2])).decode()

    def test_empty_raises(self):
        with pytest.raises(InvalidSignatureException):
            encode_signature(b"")
        with pytest.raises(InvalidSignatureException):
            encode_signature("   ")

    def test_garbage_text_raises(self):
        with pytest.raises(InvalidSignatureException):
            encode_signature("not a signature!")


class TestAmounts:
    """UI amount parsing and lamport conversion"""

    def test_missing_or_garbage_is_zero(self):
        assert to_decimal(None) == 0
        assert to_decimal("") == 0
        assert to_decimal("abc") == 0
        assert to_decimal("NaN") == 0
        assert to_num(True) == 0.0

    def test_decimal_precision(self):
        """0.3 - 0.1 is exactly 0.2 when parsed as Decimal"""
        assert to_decimal("0.3") - to_decimal("0.1") == Decimal("0.2")

    def test_lamports(self):
        assert lamports_to_sol(1_500_000_000) == 1.5
        assert lamports_to_sol("250000000") == 0.25
        assert round_sol(0.1234567891) == 0.123457


class TestFormatting:
    """Token amount formatting"""

    @pytest.mark.parametrize("amount,decimals,expected", [
        (2_500_000_000, 6, "2.50B"),
        (1_000_000, 6, "1.00M"),
        (1_500, 6, "1.50K"),
        (999.123456, 6, "999.1235"),
        (12.5, 2, "12.50"),
        (7, 0, "7"),
    ])
    def test_format_token_amount(self, amount, decimals, expected):
        assert format_token_amount(amount, decimals) == expected

    def test_iso_from_unix(self):
        assert iso_from_unix(1_700_000_000) == "2023-11-14T22:13:20.000Z"
        assert iso_from_unix(1_700_000_000.25) == "2023-11-14T22:13:20.250Z"
