"""Borsh primitives used by the program's instruction and event layouts.

Types are named with short strings, shared by instruction and event specs:

- ``u8`` / ``u32`` / ``u64`` / ``i64``: little-endian fixed-width integers
- ``bool``: one byte, 0 or 1
- ``string``: u32 length + UTF-8 bytes
- ``pubkey``: 32 raw address bytes
- ``bytes``: u32 length + raw bytes (``Vec<u8>``)
- ``option<T>``: presence byte (0/1) + ``T`` when present
- ``vec<T>``: u32 count + each ``T``

`encode_value` writes one value, `BorshReader` consumes a buffer sequentially.
"""

from __future__ import annotations

import struct
from typing import Any

from solders.pubkey import Pubkey

from stablind.errors import DecodeError, EncodeError

PUBKEY_LEN = 32

# type → (struct format, min, max)
_INT_FORMATS: dict[str, tuple[str, int, int]] = {
    "u8": ("<B", 0, 2**8 - 1),
    "u32": ("<I", 0, 2**32 - 1),
    "u64": ("<Q", 0, 2**64 - 1),
    "i64": ("<q", -(2**63), 2**63 - 1),
}

_SCALARS = frozenset({*_INT_FORMATS, "bool", "string", "bytes", "pubkey"})

AddressLike = Pubkey | str | bytes


def _inner(typ: str, wrapper: str) -> str | None:
    """Return ``T`` for ``wrapper<T>``, else None."""
    if typ.startswith(wrapper + "<") and typ.endswith(">"):
        return typ[len(wrapper) + 1 : -1].strip()
    return None


def is_known_type(typ: str) -> bool:
    """True if `typ` is a supported (possibly nested) Borsh type name."""
    typ = typ.strip()
    if typ in _SCALARS:
        return True
    for wrapper in ("option", "vec"):
        inner = _inner(typ, wrapper)
        if inner is not None:
            return is_known_type(inner)
    return False


def to_pubkey(value: AddressLike) -> Pubkey:
    """Normalize a base58 string, 32 raw bytes or a Pubkey into a Pubkey."""
    if isinstance(value, Pubkey):
        return value
    if isinstance(value, (bytes, bytearray)):
        if len(value) != PUBKEY_LEN:
            raise EncodeError(f"address must be {PUBKEY_LEN} bytes, got {len(value)}")
        return Pubkey.from_bytes(bytes(value))
    if isinstance(value, str):
        try:
            return Pubkey.from_string(value)
        except Exception as exc:  # solders raises its own parse error types
            raise EncodeError(f"invalid base58 address: {value!r}") from exc
    raise EncodeError(f"cannot interpret {type(value).__name__} as an address")


# ---------- encoding ----------


def encode_value(typ: str, value: Any) -> bytes:
    """Serialize one value according to its Borsh type name."""
    typ = typ.strip()

    if typ in _INT_FORMATS:
        fmt, lo, hi = _INT_FORMATS[typ]
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodeError(f"{typ} expects an int, got {type(value).__name__}")
        if not lo <= value <= hi:
            raise EncodeError(f"{value} is out of range for {typ}")
        return struct.pack(fmt, value)

    if typ == "bool":
        if not isinstance(value, bool):
            raise EncodeError(f"bool expects a bool, got {type(value).__name__}")
        return b"\x01" if value else b"\x00"

    if typ == "string":
        if not isinstance(value, str):
            raise EncodeError(f"string expects a str, got {type(value).__name__}")
        raw = value.encode("utf-8")
        return struct.pack("<I", len(raw)) + raw

    if typ == "bytes":
        if not isinstance(value, (bytes, bytearray)):
            raise EncodeError(f"bytes expects bytes, got {type(value).__name__}")
        return struct.pack("<I", len(value)) + bytes(value)

    if typ == "pubkey":
        return bytes(to_pubkey(value))

    inner = _inner(typ, "option")
    if inner is not None:
        if value is None:
            return b"\x00"
        return b"\x01" + encode_value(inner, value)

    inner = _inner(typ, "vec")
    if inner is not None:
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, (list, tuple)):
            raise EncodeError(f"{typ} expects a list, got {type(value).__name__}")
        parts = [encode_value(inner, item) for item in value]
        return struct.pack("<I", len(parts)) + b"".join(parts)

    raise EncodeError(f"unsupported Borsh type: {typ!r}")


def encode_fields(fields: list[tuple[str, str]], values: dict[str, Any]) -> bytes:
    """Serialize `values` in the declared `(name, type)` order, without padding."""
    missing = [name for name, _ in fields if name not in values]
    if missing:
        raise EncodeError(f"missing fields: {', '.join(missing)}")
    extra = sorted(set(values) - {name for name, _ in fields})
    if extra:
        raise EncodeError(f"unexpected fields: {', '.join(extra)}")
    return b"".join(encode_value(typ, values[name]) for name, typ in fields)


# ---------- decoding ----------


class BorshReader:
    """Sequential cursor over a Borsh buffer.

    Every read checks the remaining length first; running out of bytes raises
    `DecodeError` and leaves no partially built value behind.
    """

    __slots__ = ("_buf", "_pos")

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._buf = bytes(data)
        self._pos = offset

    @property
    def offset(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._buf):
            raise DecodeError(f"need {n} bytes at offset {self._pos}, only {self.remaining} left")
        chunk = self._buf[self._pos : end]
        self._pos = end
        return chunk

    def read(self, typ: str) -> Any:
        """Consume and return one value of the given type."""
        typ = typ.strip()

        if typ in _INT_FORMATS:
            fmt = _INT_FORMATS[typ][0]
            return struct.unpack(fmt, self.take(struct.calcsize(fmt)))[0]

        if typ == "bool":
            flag = self.take(1)[0]
            if flag > 1:
                raise DecodeError(f"invalid bool byte {flag} at offset {self._pos - 1}")
            return flag == 1

        if typ == "string":
            raw = self.take(self.read("u32"))
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DecodeError(f"invalid UTF-8 string ending at offset {self._pos}") from exc

        if typ == "bytes":
            return self.take(self.read("u32"))

        if typ == "pubkey":
            return Pubkey.from_bytes(self.take(PUBKEY_LEN))

        inner = _inner(typ, "option")
        if inner is not None:
            flag = self.take(1)[0]
            if flag == 0:
                return None
            if flag != 1:
                raise DecodeError(f"invalid option flag {flag} at offset {self._pos - 1}")
            return self.read(inner)

        inner = _inner(typ, "vec")
        if inner is not None:
            count = self.read("u32")
            return [self.read(inner) for _ in range(count)]

        raise DecodeError(f"unsupported Borsh type: {typ!r}")
