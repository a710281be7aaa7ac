"""
Request builders - signed request payloads for the token factory and matching engine

Each request knows its hash domain name (TYPE_NAME) and its canonical byte
layout. Field order is the wire contract; the chain reads fields positionally.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from errors import FormatError
from encoding.amounts import Amount
from encoding.bcs import (
    BcsReader,
    concat,
    encode_string,
    encode_u8,
    encode_variant,
)
from encoding.identity import ADDRESS20_TAG, ADDRESS32_TAG, AccountOwner


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    @property
    def index(self) -> int:
        return 0 if self is Side.BUY else 1

    @classmethod
    def from_index(cls, index: int) -> "Side":
        if index == 0:
            return cls.BUY
        if index == 1:
            return cls.SELL
        raise FormatError(f"Unknown trade side variant {index}")

    @classmethod
    def parse(cls, value: Any) -> "Side":
        if isinstance(value, Side):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise FormatError(f"Unknown trade side {value!r}")


def _check_text(name: str, value: Any) -> None:
    if not isinstance(value, str):
        raise FormatError(f"{name} must be a string, got {type(value).__name__}")


@dataclass(frozen=True)
class TradeRequest:
    owner: AccountOwner
    symbol: str
    side: Side
    amount: Amount
    min_out: Amount

    TYPE_NAME = "TradeRequest"

    def __post_init__(self):
        _check_text("symbol", self.symbol)

    def to_bcs(self) -> bytes:
        return concat(
            self.owner.to_bcs(),
            encode_string(self.symbol),
            encode_variant(self.side.index),
            self.amount.to_bcs(),
            self.min_out.to_bcs(),
        )

    def to_graphql(self) -> Dict[str, Any]:
        return {
            "owner": self.owner.to_hex(),
            "symbol": self.symbol,
            "side": self.side.value,
            "amount": str(self.amount),
            "minOut": str(self.min_out),
        }


@dataclass(frozen=True)
class ApproveRequest:
    owner: AccountOwner
    spender: AccountOwner
    allowance: Amount

    TYPE_NAME = "ApproveRequest"

    def to_bcs(self) -> bytes:
        return concat(self.owner.to_bcs(), self.spender.to_bcs(), self.allowance.to_bcs())

    def to_graphql(self) -> Dict[str, Any]:
        return {
            "owner": self.owner.to_hex(),
            "spender": self.spender.to_hex(),
            "allowance": str(self.allowance),
        }


@dataclass(frozen=True)
class CreateTokenRequest:
    owner: AccountOwner
    name: str
    symbol: str
    decimals: int
    supply: Amount

    TYPE_NAME = "CreateTokenRequest"

    def __post_init__(self):
        _check_text("name", self.name)
        _check_text("symbol", self.symbol)
        # decimals travels as a single u8
        encode_u8(self.decimals)

    def to_bcs(self) -> bytes:
        return concat(
            self.owner.to_bcs(),
            encode_string(self.name),
            encode_string(self.symbol),
            encode_u8(self.decimals),
            self.supply.to_bcs(),
        )

    def to_graphql(self) -> Dict[str, Any]:
        return {
            "owner": self.owner.to_hex(),
            "metadata": {"name": self.name, "symbol": self.symbol, "decimals": self.decimals},
            "initialSupply": str(self.supply),
        }


@dataclass(frozen=True)
class IntentRequest:
    """Limit-order intent; the limit price travels as an unparsed string"""
    owner: AccountOwner
    symbol: str
    side: Side
    amount: Amount
    limit_price: str

    TYPE_NAME = "Intent"

    def __post_init__(self):
        _check_text("symbol", self.symbol)
        _check_text("limit_price", self.limit_price)

    def to_bcs(self) -> bytes:
        return concat(
            self.owner.to_bcs(),
            encode_string(self.symbol),
            encode_variant(self.side.index),
            self.amount.to_bcs(),
            encode_string(self.limit_price),
        )

    def to_graphql(self) -> Dict[str, Any]:
        return {
            "owner": self.owner.to_hex(),
            "symbol": self.symbol,
            "side": self.side.value,
            "amount": str(self.amount),
            "limitPrice": self.limit_price,
        }


REQUEST_TYPES = {
    cls.TYPE_NAME: cls
    for cls in (TradeRequest, ApproveRequest, CreateTokenRequest, IntentRequest)
}


def build_trade_request(owner: str, symbol: str, side, amount: str, min_out: str) -> TradeRequest:
    return TradeRequest(
        owner=AccountOwner.parse(owner),
        symbol=symbol,
        side=Side.parse(side),
        amount=Amount.parse(amount),
        min_out=Amount.parse(min_out),
    )


def build_approve_request(owner: str, spender: str, allowance: str) -> ApproveRequest:
    return ApproveRequest(
        owner=AccountOwner.parse(owner),
        spender=AccountOwner.parse(spender),
        allowance=Amount.parse(allowance),
    )


def build_create_token_request(
    owner: str, name: str, symbol: str, decimals: int, supply: str
) -> CreateTokenRequest:
    return CreateTokenRequest(
        owner=AccountOwner.parse(owner),
        name=name,
        symbol=symbol,
        decimals=decimals,
        supply=Amount.parse(supply),
    )


def build_intent_request(owner: str, symbol: str, side, amount: str, limit_price: str) -> IntentRequest:
    return IntentRequest(
        owner=AccountOwner.parse(owner),
        symbol=symbol,
        side=Side.parse(side),
        amount=Amount.parse(amount),
        limit_price=limit_price,
    )


def encode_trade_request(owner: str, symbol: str, side, amount: str, min_out: str) -> bytes:
    return build_trade_request(owner, symbol, side, amount, min_out).to_bcs()


def encode_approve_request(owner: str, spender: str, allowance: str) -> bytes:
    return build_approve_request(owner, spender, allowance).to_bcs()


def encode_create_token_request(owner: str, name: str, symbol: str, decimals: int, supply: str) -> bytes:
    return build_create_token_request(owner, name, symbol, decimals, supply).to_bcs()


def encode_intent_request(owner: str, symbol: str, side, amount: str, limit_price: str) -> bytes:
    return build_intent_request(owner, symbol, side, amount, limit_price).to_bcs()


# Decoders, mainly for inspecting payloads produced elsewhere

def _read_owner(reader: BcsReader) -> AccountOwner:
    tag = reader.read_variant()
    if tag == ADDRESS20_TAG:
        return AccountOwner(tag, reader.read_fixed_bytes(20))
    if tag == ADDRESS32_TAG:
        return AccountOwner(tag, reader.read_fixed_bytes(32))
    raise FormatError(f"Unsupported AccountOwner variant {tag}")


def _read_amount(reader: BcsReader) -> Amount:
    return Amount(reader.read_u128())


def decode_trade_request(data: bytes) -> TradeRequest:
    reader = BcsReader(data)
    request = TradeRequest(
        owner=_read_owner(reader),
        symbol=reader.read_string(),
        side=Side.from_index(reader.read_variant()),
        amount=_read_amount(reader),
        min_out=_read_amount(reader),
    )
    reader.finish()
    return request


def decode_approve_request(data: bytes) -> ApproveRequest:
    reader = BcsReader(data)
    request = ApproveRequest(
        owner=_read_owner(reader),
        spender=_read_owner(reader),
        allowance=_read_amount(reader),
    )
    reader.finish()
    return request


def decode_create_token_request(data: bytes) -> CreateTokenRequest:
    reader = BcsReader(data)
    request = CreateTokenRequest(
        owner=_read_owner(reader),
        name=reader.read_string(),
        symbol=reader.read_string(),
        decimals=reader.read_u8(),
        supply=_read_amount(reader),
    )
    reader.finish()
    return request


def decode_intent_request(data: bytes) -> IntentRequest:
    reader = BcsReader(data)
    request = IntentRequest(
        owner=_read_owner(reader),
        symbol=reader.read_string(),
        side=Side.from_index(reader.read_variant()),
        amount=_read_amount(reader),
        limit_price=reader.read_string(),
    )
    reader.finish()
    return request
