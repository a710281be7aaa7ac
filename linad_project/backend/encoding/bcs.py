"""
Canonical (BCS) byte encoder and positional reader

Fields are written in argument order; the on-chain deserializer reads them
positionally, so nothing here sorts or reorders.
"""
from typing import Tuple

from errors import FormatError

MAX_U128 = (1 << 128) - 1
MAX_SEQUENCE_LENGTH = (1 << 31) - 1


def _require_int(value, what: str) -> int:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise FormatError(f"{what} must be an integer, got {type(value).__name__}")
    return value


def encode_uleb128(value: int) -> bytes:
    """Little-endian base-128, continuation bit 0x80 on all but the last byte"""
    value = _require_int(value, "length")
    if value < 0:
        raise FormatError(f"length must be non-negative, got {value}")
    if value > MAX_SEQUENCE_LENGTH:
        raise FormatError(f"length {value} exceeds BCS sequence limit")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def encode_length_prefixed_bytes(data: bytes) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise FormatError(f"expected bytes, got {type(data).__name__}")
    data = bytes(data)
    return encode_uleb128(len(data)) + data


def encode_string(text: str) -> bytes:
    if not isinstance(text, str):
        raise FormatError(f"expected str, got {type(text).__name__}")
    return encode_length_prefixed_bytes(text.encode("utf-8"))


def encode_variant(tag: int) -> bytes:
    tag = _require_int(tag, "variant tag")
    if tag < 0 or tag > 255:
        raise FormatError(f"variant tag {tag} out of range 0..255")
    return bytes([tag])


def encode_u8(value: int) -> bytes:
    value = _require_int(value, "u8")
    if value < 0 or value > 255:
        raise FormatError(f"u8 value {value} out of range")
    return bytes([value])


def encode_fixed128_le(value: int) -> bytes:
    value = _require_int(value, "u128")
    if value < 0 or value > MAX_U128:
        raise FormatError(f"u128 value out of range: {value}")
    return value.to_bytes(16, "little")


def concat(*chunks: bytes) -> bytes:
    return b"".join(chunks)


class BcsReader:
    """Reads canonical values back from a byte buffer, front to back"""

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def _take(self, count: int) -> bytes:
        if count > self.remaining:
            raise FormatError(
                f"unexpected end of input: need {count} bytes at offset {self.offset}, have {self.remaining}"
            )
        chunk = self.data[self.offset:self.offset + count]
        self.offset += count
        return chunk

    def read_uleb128(self) -> int:
        value = 0
        shift = 0
        while True:
            byte = self._take(1)[0]
            value |= (byte & 0x7F) << shift
            if not byte & 0x80:
                break
            shift += 7
            if shift > 31:
                raise FormatError("ULEB128 length too long")
        if value > MAX_SEQUENCE_LENGTH:
            raise FormatError(f"length {value} exceeds BCS sequence limit")
        return value

    def read_bytes(self) -> bytes:
        return self._take(self.read_uleb128())

    def read_fixed_bytes(self, count: int) -> bytes:
        return self._take(count)

    def read_string(self) -> str:
        raw = self.read_bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError(f"invalid UTF-8 in string: {e}")

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_variant(self) -> int:
        return self.read_u8()

    def read_u128(self) -> int:
        return int.from_bytes(self._take(16), "little")

    def finish(self) -> None:
        if self.remaining:
            raise FormatError(f"{self.remaining} trailing bytes after payload")


def decode_length_prefixed_bytes(data: bytes) -> bytes:
    reader = BcsReader(data)
    value = reader.read_bytes()
    reader.finish()
    return value


def decode_uleb128(data: bytes) -> Tuple[int, int]:
    """Returns (value, bytes consumed)"""
    reader = BcsReader(data)
    value = reader.read_uleb128()
    return value, reader.offset
