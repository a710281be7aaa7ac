"""
Canonical encoding of linad chain requests
"""

from .bcs import (
    MAX_U128,
    BcsReader,
    concat,
    decode_length_prefixed_bytes,
    decode_uleb128,
    encode_fixed128_le,
    encode_length_prefixed_bytes,
    encode_string,
    encode_u8,
    encode_uleb128,
    encode_variant,
)
from .amounts import (
    Amount,
    AmountShape,
    RawAmount,
    attos_to_decimal,
    classify_amount,
    decimal_to_attos,
    decode_raw_amount,
    encode_amount,
    loose_amount_to_attos,
)
from .identity import (
    AccountOwner,
    encode_account_owner,
    encode_signature,
    encode_signature_hex,
    normalize_hex,
)
from .requests import (
    REQUEST_TYPES,
    ApproveRequest,
    CreateTokenRequest,
    IntentRequest,
    Side,
    TradeRequest,
    build_approve_request,
    build_create_token_request,
    build_intent_request,
    build_trade_request,
    decode_approve_request,
    decode_create_token_request,
    decode_intent_request,
    decode_trade_request,
    encode_approve_request,
    encode_create_token_request,
    encode_intent_request,
    encode_trade_request,
)

__all__ = [
    "MAX_U128",
    "BcsReader",
    "concat",
    "decode_length_prefixed_bytes",
    "decode_uleb128",
    "encode_fixed128_le",
    "encode_length_prefixed_bytes",
    "encode_string",
    "encode_u8",
    "encode_uleb128",
    "encode_variant",
    "Amount",
    "AmountShape",
    "RawAmount",
    "attos_to_decimal",
    "classify_amount",
    "decimal_to_attos",
    "decode_raw_amount",
    "encode_amount",
    "loose_amount_to_attos",
    "AccountOwner",
    "encode_account_owner",
    "encode_signature",
    "encode_signature_hex",
    "normalize_hex",
    "REQUEST_TYPES",
    "ApproveRequest",
    "CreateTokenRequest",
    "IntentRequest",
    "Side",
    "TradeRequest",
    "build_approve_request",
    "build_create_token_request",
    "build_intent_request",
    "build_trade_request",
    "decode_approve_request",
    "decode_create_token_request",
    "decode_intent_request",
    "decode_trade_request",
    "encode_approve_request",
    "encode_create_token_request",
    "encode_intent_request",
    "encode_trade_request",
]
