"""
Fixed-point Amount codec - human decimal strings <-> u128 attos (10^-18 units)
"""
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from errors import FormatError
from encoding.bcs import MAX_U128, encode_fixed128_le

AMOUNT_DECIMALS = 18

_DIGITS = re.compile(r"^[0-9]*$")
_NUMBER = re.compile(r"^[0-9]+$")


def decimal_to_attos(text: str, decimals: int = AMOUNT_DECIMALS) -> int:
    """
    Parse a human decimal string into a scaled unsigned integer.

    "1.5" -> 1_500_000_000_000_000_000 with the default 18 decimals. An empty
    string is zero; "_" separators are ignored; a leading "+" is accepted.

    Raises:
        FormatError: negative input, non-digit characters, more fractional
            digits than ``decimals``, or a result above 2^128-1
    """
    if not isinstance(text, str):
        raise FormatError(f"amount must be a string, got {type(text).__name__}")
    raw = text.strip().replace("_", "")
    if not raw:
        return 0
    if raw.startswith("-"):
        raise FormatError("Amount cannot be negative")
    if raw.startswith("+"):
        raw = raw[1:]

    integer_part, _, fractional = raw.partition(".")
    integer_part = integer_part or "0"
    if not _DIGITS.match(integer_part) or not _DIGITS.match(fractional):
        raise FormatError(f"Invalid amount: {text!r}")
    if len(fractional) > decimals:
        raise FormatError(f"Too many decimal places for Amount (max {decimals}): {text!r}")

    digits = (integer_part + fractional.ljust(decimals, "0")).lstrip("0") or "0"
    value = int(digits)
    if value > MAX_U128:
        raise FormatError(f"Amount exceeds u128 range: {text!r}")
    return value


def attos_to_decimal(value: int, decimals: int = AMOUNT_DECIMALS) -> str:
    """Inverse of decimal_to_attos; trailing fractional zeros are dropped"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise FormatError(f"attos must be an integer, got {type(value).__name__}")
    if value < 0:
        raise FormatError("Amount cannot be negative")
    base = 10 ** decimals
    whole, frac = divmod(value, base)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0") if decimals else ""
    return f"{whole}.{frac_text}" if frac_text else str(whole)


def encode_amount(text: str) -> bytes:
    return encode_fixed128_le(decimal_to_attos(text))


@dataclass(frozen=True)
class Amount:
    """Non-negative quantity held as u128 attos"""
    attos: int

    def __post_init__(self):
        if isinstance(self.attos, bool) or not isinstance(self.attos, int):
            raise FormatError("Amount attos must be an integer")
        if self.attos < 0 or self.attos > MAX_U128:
            raise FormatError(f"Amount out of u128 range: {self.attos}")

    @classmethod
    def parse(cls, text: str) -> "Amount":
        return cls(decimal_to_attos(text))

    @classmethod
    def from_attos(cls, attos: int) -> "Amount":
        return cls(attos)

    def to_bcs(self) -> bytes:
        return encode_fixed128_le(self.attos)

    def __str__(self) -> str:
        return attos_to_decimal(self.attos)


# Loose decoding of externally sourced amounts. The chain's GraphQL layer may
# serialize an Amount as a plain string, a JSON number, or an object with a
# sub-field depending on the scalar implementation, so the raw value is first
# classified into one known shape and then decoded by that shape's decoder.

class AmountShape(str, Enum):
    ATTOS_FIELD = "attos_field"
    TOKENS_FIELD = "tokens_field"
    VALUE_FIELD = "value_field"
    TEXT = "text"
    NUMBER = "number"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RawAmount:
    shape: AmountShape
    payload: Any = None


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def classify_amount(value: Any) -> RawAmount:
    if value is None or isinstance(value, bool):
        return RawAmount(AmountShape.UNKNOWN, value)
    if isinstance(value, dict):
        for key, shape in (
            ("attos", AmountShape.ATTOS_FIELD),
            ("tokens", AmountShape.TOKENS_FIELD),
            ("value", AmountShape.VALUE_FIELD),
        ):
            if _is_scalar(value.get(key)):
                return RawAmount(shape, value[key])
        return RawAmount(AmountShape.UNKNOWN, value)
    if isinstance(value, str):
        return RawAmount(AmountShape.TEXT, value)
    if isinstance(value, (int, float)):
        return RawAmount(AmountShape.NUMBER, value)
    return RawAmount(AmountShape.UNKNOWN, value)


def _scalar_text(value: Any) -> Optional[str]:
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _decode_attos_field(payload: Any) -> Optional[int]:
    text = _scalar_text(payload)
    if text is None:
        return None
    text = text.strip()
    if not _NUMBER.match(text):
        return None
    value = int(text)
    return value if value <= MAX_U128 else None


def _decode_text(payload: Any) -> Optional[int]:
    """
    Decode a decimal string. Integers with more than 18 digits and no decimal
    point are taken as already scaled to attos. That cut-off is a guess about
    the upstream serializer and is ambiguous for values near it.
    """
    text = _scalar_text(payload)
    if text is None:
        return None
    raw = text.strip().replace("_", "")
    if not raw or raw.startswith("-"):
        return None
    if raw.endswith("."):
        raw = raw[:-1]
    if raw.startswith("+"):
        raw = raw[1:]

    if "." not in raw and _NUMBER.match(raw) and len(raw) > AMOUNT_DECIMALS:
        value = int(raw)
        return value if value <= MAX_U128 else None

    integer_part, _, fractional = raw.partition(".")
    integer_part = integer_part or "0"
    if not _NUMBER.match(integer_part) or not _DIGITS.match(fractional):
        return None
    # this path truncates extra fractional digits instead of rejecting them
    frac = fractional.ljust(AMOUNT_DECIMALS, "0")[:AMOUNT_DECIMALS]
    value = int((integer_part + frac).lstrip("0") or "0")
    return value if value <= MAX_U128 else None


_DECODERS = {
    AmountShape.ATTOS_FIELD: _decode_attos_field,
    AmountShape.TOKENS_FIELD: _decode_text,
    AmountShape.VALUE_FIELD: _decode_text,
    AmountShape.TEXT: _decode_text,
    AmountShape.NUMBER: _decode_text,
}


def decode_raw_amount(raw: RawAmount) -> Optional[int]:
    decoder = _DECODERS.get(raw.shape)
    if decoder is None:
        return None
    return decoder(raw.payload)


def loose_amount_to_attos(value: Any) -> Optional[int]:
    """Best-effort attos from an externally shaped value; None when it cannot be parsed"""
    return decode_raw_amount(classify_amount(value))
