"""Ledger account snapshots and canonical encoding primitives.

The versioned record codec lives in ``state.codec`` and is imported directly
(it depends on ``core.types``).
"""

from .accounts import (
    CollectFeeMode,
    PoolAccount,
    PositionAccount,
    TokenAccount,
    VestingContract,
    honorary_owner_address,
)
from .canonical import (
    canonical_json_bytes,
    decode_str,
    decode_uvarint,
    domain_sep_bytes,
    encode_str,
    encode_uvarint,
    sha256_hex,
)

__all__ = [
    "CollectFeeMode",
    "PoolAccount",
    "PositionAccount",
    "TokenAccount",
    "VestingContract",
    "honorary_owner_address",
    "canonical_json_bytes",
    "decode_str",
    "decode_uvarint",
    "domain_sep_bytes",
    "encode_str",
    "encode_uvarint",
    "sha256_hex",
]
