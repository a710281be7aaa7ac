"""
Account identity codec - AccountOwner variants and packed EVM signatures
"""
from dataclasses import dataclass

from errors import FormatError, InvalidAddressLength, InvalidSignatureLength
from encoding.bcs import concat, encode_variant

ADDRESS20_TAG = 2
ADDRESS32_TAG = 1
EVM_SECP256K1_TAG = 2

SIGNATURE_LENGTH = 65
EVM_ADDRESS_LENGTH = 20


def normalize_hex(value: str) -> str:
    """Trim, lower-case and drop an optional 0x prefix"""
    if not isinstance(value, str):
        raise FormatError(f"expected hex string, got {type(value).__name__}")
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    return text


def hex_to_bytes(value: str) -> bytes:
    text = normalize_hex(value)
    if len(text) % 2:
        raise FormatError("Invalid hex string length")
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise FormatError(f"Invalid hex string: {e}")


@dataclass(frozen=True)
class AccountOwner:
    """Address20 (tag 2, EVM style) or Address32 (tag 1)"""
    tag: int
    raw: bytes

    @classmethod
    def parse(cls, value: str) -> "AccountOwner":
        text = normalize_hex(value)
        if len(text) == 40:
            return cls(ADDRESS20_TAG, hex_to_bytes(text))
        if len(text) == 64:
            return cls(ADDRESS32_TAG, hex_to_bytes(text))
        raise InvalidAddressLength(
            f"Owner must be 20-byte or 32-byte hex, got {len(text)} hex chars"
        )

    @property
    def is_evm(self) -> bool:
        return self.tag == ADDRESS20_TAG

    def to_bcs(self) -> bytes:
        return concat(encode_variant(self.tag), self.raw)

    def to_hex(self) -> str:
        return "0x" + self.raw.hex()

    def __str__(self) -> str:
        return self.to_hex()


def encode_account_owner(value: str) -> bytes:
    return AccountOwner.parse(value).to_bcs()


def encode_signature(raw_signature_hex: str, address_hex: str) -> bytes:
    """
    Pack an r||s||v signature for the chain verifier:
    tag 2 (EvmSecp256k1) + 65 signature bytes + 20 address bytes.

    A recovery byte of 0/1 is rewritten to 27/28; any other value is kept.
    """
    signature = bytearray(hex_to_bytes(raw_signature_hex))
    if len(signature) != SIGNATURE_LENGTH:
        raise InvalidSignatureLength(
            f"EVM signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}"
        )
    if signature[64] in (0, 1):
        signature[64] += 27

    address = hex_to_bytes(address_hex)
    if len(address) != EVM_ADDRESS_LENGTH:
        raise InvalidAddressLength(
            f"EVM address must be {EVM_ADDRESS_LENGTH} bytes, got {len(address)}"
        )
    return concat(encode_variant(EVM_SECP256K1_TAG), bytes(signature), address)


def encode_signature_hex(raw_signature_hex: str, address_hex: str) -> str:
    """Lower-case hex, no 0x prefix, as the chain service expects"""
    return encode_signature(raw_signature_hex, address_hex).hex()
