"""
BLS authority signatures for admin operations.

When ``DistributorConfig.require_authority_signature`` is set, the policy
authority is a BLS12-381 public key (48-byte hex) and admin calls must carry a
G2 signature over::

    sha256(domain_sep_bytes("admin_sig:<chain_id>") || canonical_json({"action": ..., "fields": {...}}))

The chain id in the domain label keeps a signature from being replayed on
another deployment.
"""

from __future__ import annotations

import hashlib
from typing import Any, Mapping, Optional, Tuple

from ..state.canonical import canonical_json_bytes, domain_sep_bytes

try:
    from py_ecc.bls import G2Basic
    from py_ecc.optimized_bls12_381 import curve_order as CURVE_ORDER

    _BLS_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    G2Basic = None  # type: ignore[assignment]
    CURVE_ORDER = None
    _BLS_AVAILABLE = False


class SigningUnavailable(RuntimeError):
    pass


def _require_bls() -> None:
    if not _BLS_AVAILABLE:
        raise SigningUnavailable("authority signatures need py_ecc (pip install py-ecc)")


def _unhex(value: str, *, name: str, size: int) -> bytes:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a hex string")
    digits = value.strip()
    if digits[:2].lower() == "0x":
        digits = digits[2:]
    if not digits or any(ch.isspace() for ch in digits):
        raise ValueError(f"{name} must be contiguous hex")
    try:
        raw = bytes.fromhex(digits)
    except ValueError as exc:
        raise ValueError(f"{name} is not valid hex") from exc
    if len(raw) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(raw)}")
    return raw


def _secret_key(privkey: str | int | bytes | bytearray) -> int:
    if isinstance(privkey, bool):
        raise TypeError("privkey must be str, int or bytes")
    if isinstance(privkey, int):
        sk = privkey
    elif isinstance(privkey, (bytes, bytearray)):
        if len(privkey) != 32:
            raise ValueError(f"privkey must be 32 bytes, got {len(privkey)}")
        sk = int.from_bytes(bytes(privkey), "big")
    elif isinstance(privkey, str):
        sk = int.from_bytes(_unhex(privkey, name="privkey", size=32), "big")
    else:
        raise TypeError("privkey must be str, int or bytes")
    if not 0 < sk < int(CURVE_ORDER):
        raise ValueError("privkey must be in [1, curve_order)")
    return sk


def bls_pubkey_hex_from_privkey(privkey: str | int | bytes | bytearray) -> str:
    _require_bls()
    return "0x" + G2Basic.SkToPk(_secret_key(privkey)).hex()  # type: ignore[union-attr]


def admin_message_hash(action: str, fields: Mapping[str, Any], *, chain_id: str) -> bytes:
    if not isinstance(action, str) or not action:
        raise ValueError("action must be a non-empty string")
    if not isinstance(chain_id, str) or not chain_id:
        raise ValueError("chain_id must be a non-empty string")
    body = canonical_json_bytes({"action": action, "fields": dict(fields)})
    return hashlib.sha256(domain_sep_bytes(f"admin_sig:{chain_id}") + body).digest()


def sign_admin_message(
    action: str,
    fields: Mapping[str, Any],
    *,
    privkey: str | int | bytes | bytearray,
    chain_id: str,
) -> str:
    """Sign an admin call; returns the 96-byte signature as ``0x`` hex."""
    _require_bls()
    msg_hash = admin_message_hash(action, fields, chain_id=chain_id)
    return "0x" + G2Basic.Sign(_secret_key(privkey), msg_hash).hex()  # type: ignore[union-attr]


def verify_admin_signature(
    action: str,
    fields: Mapping[str, Any],
    *,
    pubkey_hex: str,
    signature_hex: Optional[str],
    chain_id: str,
) -> Tuple[bool, Optional[str]]:
    """Returns ``(ok, reason)``; never raises for malformed input."""
    if not _BLS_AVAILABLE:
        return False, "py_ecc is not installed"
    if not signature_hex:
        return False, "missing authority signature"
    try:
        pubkey = _unhex(pubkey_hex, name="authority pubkey", size=48)
        signature = _unhex(signature_hex, name="signature", size=96)
        ok = G2Basic.Verify(pubkey, admin_message_hash(action, fields, chain_id=chain_id), signature)  # type: ignore[union-attr]
    except (TypeError, ValueError) as exc:
        return False, f"authority signature verification error: {exc}"
    if not ok:
        return False, "invalid authority signature"
    return True, None
