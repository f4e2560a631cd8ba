"""
Versioned binary records (v1).

Each record is ``domain_sep_bytes(<kind>, version) || fields`` where fields are
encoded in schema order: strings and byte blobs length-prefixed, integers as
unsigned LEB128, booleans as a uvarint 0/1, optional integers as a 0/1 tag
followed by the value. Decoding rejects unknown versions, trailing bytes and
non-canonical encodings, so ``encode(decode(b)) == b`` for every accepted ``b``.

The ledger stores Policy / HonoraryPosition / DistributionProgress under the
pool key in this format; crank instructions use the same scheme.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple, Type, TypeVar

from ..core.types import CrankParams, DistributionProgress, HonoraryPosition, PageEntry, Policy
from .canonical import (
    decode_str,
    decode_uvarint,
    domain_sep_bytes,
    encode_str,
    encode_uvarint,
    sha256_hex,
)


RECORD_SCHEMA_VERSION = 1

# Field kinds: "str", "uint", "bool", "opt_uint".
Schema = Tuple[Tuple[str, str], ...]

POLICY_SCHEMA: Schema = (
    ("pool", "str"),
    ("authority", "str"),
    ("quote_mint", "str"),
    ("base_mint", "str"),
    ("creator_destination", "str"),
    ("investor_fee_share_bps", "uint"),
    ("y0", "uint"),
    ("daily_cap_quote", "uint"),
    ("min_payout", "uint"),
)

HONORARY_POSITION_SCHEMA: Schema = (
    ("position", "str"),
    ("quote_treasury", "str"),
    ("base_fee_check", "str"),
    ("owner", "str"),
)

PROGRESS_SCHEMA: Schema = (
    ("day_anchor_time", "opt_uint"),
    ("day_open", "bool"),
    ("page_cursor", "uint"),
    ("claimed_quote_today", "uint"),
    ("distributed_to_investors_today", "uint"),
    ("dust_carry", "uint"),
    ("locked_total_today", "uint"),
    ("pages_processed_total", "uint"),
    ("days_closed", "uint"),
)

_CRANK_HEADER_SCHEMA: Schema = (
    ("expected_page_cursor", "uint"),
    ("max_page_cursor", "uint"),
    ("is_last_page", "bool"),
)

_LABELS: Dict[type, Tuple[str, Schema]] = {
    Policy: ("policy", POLICY_SCHEMA),
    HonoraryPosition: ("honorary_position", HONORARY_POSITION_SCHEMA),
    DistributionProgress: ("progress", PROGRESS_SCHEMA),
}

R = TypeVar("R", Policy, HonoraryPosition, DistributionProgress)


def _encode_field(kind: str, name: str, value: Any) -> bytes:
    if kind == "str":
        if not isinstance(value, str):
            raise TypeError(f"{name} must be a str")
        return encode_str(value)
    if kind == "uint":
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"{name} must be an int")
        return encode_uvarint(value)
    if kind == "bool":
        if not isinstance(value, bool):
            raise TypeError(f"{name} must be a bool")
        return encode_uvarint(1 if value else 0)
    if kind == "opt_uint":
        if value is None:
            return encode_uvarint(0)
        return encode_uvarint(1) + _encode_field("uint", name, value)
    raise ValueError(f"unknown field kind: {kind}")


def _decode_field(kind: str, name: str, data: bytes, pos: int) -> Tuple[Any, int]:
    if kind == "str":
        return decode_str(data, pos)
    if kind == "uint":
        return decode_uvarint(data, pos)
    if kind == "bool":
        v, pos = decode_uvarint(data, pos)
        if v not in (0, 1):
            raise ValueError(f"{name}: invalid bool tag {v}")
        return v == 1, pos
    if kind == "opt_uint":
        tag, pos = decode_uvarint(data, pos)
        if tag == 0:
            return None, pos
        if tag != 1:
            raise ValueError(f"{name}: invalid option tag {tag}")
        return decode_uvarint(data, pos)
    raise ValueError(f"unknown field kind: {kind}")


def _encode_fields(schema: Schema, values: Mapping[str, Any]) -> bytes:
    return b"".join(_encode_field(kind, name, values[name]) for name, kind in schema)


def _decode_fields(schema: Schema, data: bytes, pos: int) -> Tuple[Dict[str, Any], int]:
    out: Dict[str, Any] = {}
    for name, kind in schema:
        out[name], pos = _decode_field(kind, name, data, pos)
    return out, pos


def _strip_header(label: str, data: bytes) -> int:
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("record must be bytes")
    header = domain_sep_bytes(label, version=RECORD_SCHEMA_VERSION)
    if not bytes(data[: len(header)]) == header:
        raise ValueError(f"not a {label} v{RECORD_SCHEMA_VERSION} record")
    return len(header)


def encode_record(record: R) -> bytes:
    """Encode a Policy, HonoraryPosition or DistributionProgress."""
    entry = _LABELS.get(type(record))
    if entry is None:
        raise TypeError(f"unsupported record type: {type(record).__name__}")
    label, schema = entry
    body = _encode_fields(schema, record_to_dict(record))
    return domain_sep_bytes(label, version=RECORD_SCHEMA_VERSION) + body


def decode_record(cls: Type[R], data: bytes) -> R:
    entry = _LABELS.get(cls)
    if entry is None:
        raise TypeError(f"unsupported record type: {cls.__name__}")
    label, schema = entry
    pos = _strip_header(label, data)
    values, pos = _decode_fields(schema, bytes(data), pos)
    if pos != len(data):
        raise ValueError(f"trailing bytes after {label} record")
    return cls(**values)


def record_to_dict(record: R) -> Dict[str, Any]:
    _, schema = _LABELS[type(record)]
    return {name: getattr(record, name) for name, _ in schema}


def record_from_dict(cls: Type[R], d: Mapping[str, Any]) -> R:
    """Build a record from a plain dict. Raises KeyError on missing fields."""
    _, schema = _LABELS[cls]
    kwargs: Dict[str, Any] = {}
    for name, kind in schema:
        val = d[name]
        if kind == "bool" and not isinstance(val, bool):
            raise TypeError(f"{name!r} must be bool, got {type(val).__name__}")
        if kind in ("uint", "opt_uint") and val is not None:
            if not isinstance(val, int) or isinstance(val, bool):
                raise TypeError(f"{name!r} must be int, got {type(val).__name__}")
            val = int(val)  # normalize int subclasses
        if kind == "str" and not isinstance(val, str):
            raise TypeError(f"{name!r} must be str, got {type(val).__name__}")
        kwargs[name] = val
    return cls(**kwargs)


def record_digest(record: R) -> str:
    """Stable sha256 of the encoded record (0x-prefixed)."""
    return sha256_hex(encode_record(record))


# -- Crank instructions ------------------------------------------------------

def encode_crank_params(params: CrankParams) -> bytes:
    out = bytearray(domain_sep_bytes("crank", version=RECORD_SCHEMA_VERSION))
    out += _encode_fields(_CRANK_HEADER_SCHEMA, {
        "expected_page_cursor": params.expected_page_cursor,
        "max_page_cursor": params.max_page_cursor,
        "is_last_page": params.is_last_page,
    })
    out += encode_uvarint(len(params.page))
    for entry in params.page:
        out += encode_str(entry.vesting_ref)
        out += encode_str(entry.destination)
    return bytes(out)


def decode_crank_params(data: bytes, *, max_entries: int = 1024) -> CrankParams:
    pos = _strip_header("crank", data)
    data = bytes(data)
    header, pos = _decode_fields(_CRANK_HEADER_SCHEMA, data, pos)
    count, pos = decode_uvarint(data, pos)
    if count > max_entries:
        raise ValueError(f"crank page too large: {count} > {max_entries}")
    entries: list[PageEntry] = []
    for _ in range(count):
        vesting_ref, pos = decode_str(data, pos)
        destination, pos = decode_str(data, pos)
        entries.append(PageEntry(vesting_ref=vesting_ref, destination=destination))
    if pos != len(data):
        raise ValueError("trailing bytes after crank record")
    return CrankParams(page=tuple(entries), **header)
