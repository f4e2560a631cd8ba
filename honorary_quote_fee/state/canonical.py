"""
Byte-level building blocks for everything the distributor hashes, signs or stores.

- ``domain_sep_bytes``: ``b"hqf:<label>:v<version>\\x00"`` prefix per record kind.
- uvarint (unsigned LEB128, minimal form only) and uvarint-length-prefixed
  bytes / UTF-8 strings for record fields.
- ``canonical_json_bytes``: sorted, whitespace-free, float-free JSON for
  signed admin messages and ledger digests.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Tuple

DOMAIN_PREFIX = b"hqf:"

# ceil(128 / 7): the longest minimal encoding of a u128.
MAX_UVARINT_BYTES = 19


def _check_text(s: str) -> None:
    # Lone surrogates cannot be encoded as UTF-8 and JSON encoders disagree on them.
    if any(0xD800 <= ord(ch) <= 0xDFFF for ch in s):
        raise TypeError("surrogate code points cannot be canonically encoded")


def _check_json_value(value: Any, path: str = "$") -> None:
    if isinstance(value, float):
        raise TypeError(f"{path}: floats have no canonical encoding")
    if isinstance(value, str):
        _check_text(value)
    elif isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"{path}: object keys must be str, got {type(key).__name__}")
            _check_text(key)
            _check_json_value(item, f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_json_value(item, f"{path}[{i}]")


def canonical_json_bytes(value: Any) -> bytes:
    """UTF-8 JSON with sorted keys and no whitespace. Floats and NaN are rejected."""
    _check_json_value(value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode(
        "utf-8"
    )


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    if not isinstance(label, str) or not label:
        raise TypeError("domain label must be a non-empty str")
    if not label.isascii() or "\x00" in label:
        raise ValueError(f"domain label must be ASCII without NUL: {label!r}")
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ValueError(f"domain version must be an int >= 1: {version!r}")
    return b"%s%s:v%d\x00" % (DOMAIN_PREFIX, label.encode("ascii"), version)


# -- uvarint -----------------------------------------------------------------

def encode_uvarint(value: int) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"uvarint must be a non-negative int, got {value!r}")
    out = bytearray()
    while value > 0x7F:
        out.append(0x80 | (value & 0x7F))
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_uvarint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Read one uvarint at *offset*; returns ``(value, next_offset)``.

    Only the minimal encoding of each value is accepted.
    """
    value = 0
    for i in range(MAX_UVARINT_BYTES):
        pos = offset + i
        if pos >= len(data):
            raise ValueError(f"truncated uvarint at offset {offset}")
        byte = data[pos]
        value |= (byte & 0x7F) << (7 * i)
        if byte < 0x80:
            if i and byte == 0:
                raise ValueError(f"non-minimal uvarint at offset {offset}")
            return value, pos + 1
    raise ValueError(f"uvarint longer than {MAX_UVARINT_BYTES} bytes at offset {offset}")


# -- length-prefixed fields --------------------------------------------------

def encode_bytes(value: bytes) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError("value must be bytes")
    return encode_uvarint(len(value)) + bytes(value)


def decode_bytes(data: bytes, offset: int = 0) -> Tuple[bytes, int]:
    size, start = decode_uvarint(data, offset)
    end = start + size
    if end > len(data):
        raise ValueError(f"field of {size} bytes runs past end of input")
    return bytes(data[start:end]), end


def encode_str(value: str) -> bytes:
    if not isinstance(value, str):
        raise TypeError("value must be a str")
    _check_text(value)
    return encode_bytes(value.encode("utf-8"))


def decode_str(data: bytes, offset: int = 0) -> Tuple[str, int]:
    raw, end = decode_bytes(data, offset)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError(f"field at offset {offset} is not valid UTF-8") from exc
    return text, end
