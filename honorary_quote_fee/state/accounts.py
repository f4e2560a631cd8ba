"""
Ledger account snapshots read by the distribution engine.

These mirror the external accounts the engine validates on every call: token
accounts, the AMM pool, the honorary position and vesting contracts. The
engine only reads them; mutations happen in the ledger runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from .canonical import domain_sep_bytes, encode_str, sha256_hex


@unique
class CollectFeeMode(Enum):
    BOTH = 0
    ONLY_BASE = 1
    ONLY_QUOTE = 2


@dataclass(frozen=True)
class TokenAccount:
    address: str
    mint: str
    owner: str
    amount: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.amount, int) or isinstance(self.amount, bool) or self.amount < 0:
            raise ValueError(f"token account amount must be a non-negative int: {self.amount!r}")


@dataclass(frozen=True)
class PoolAccount:
    address: str
    base_mint: str
    quote_mint: str
    collect_fee_mode: CollectFeeMode = CollectFeeMode.ONLY_QUOTE


@dataclass(frozen=True)
class PositionAccount:
    """AMM liquidity position. Pending fees accrue here until claimed."""

    address: str
    pool: str
    pending_quote_fee: int = 0
    pending_base_fee: int = 0
    liquidity: int = 0


@dataclass(frozen=True)
class VestingContract:
    """
    Linear vesting stream with an optional cliff.

    Nothing vests before ``cliff_time``; at the cliff ``cliff_amount`` unlocks,
    then ``amount_per_period`` every ``period_seconds``, capped at
    ``total_deposited``.
    """

    address: str
    mint: str
    recipient: str
    recipient_destination: str
    total_deposited: int
    withdrawn: int = 0
    cliff_time: int = 0
    cliff_amount: int = 0
    period_seconds: int = 1
    amount_per_period: int = 0

    def __post_init__(self) -> None:
        for name in ("total_deposited", "withdrawn", "cliff_amount", "amount_per_period"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise ValueError(f"{name} must be a non-negative int")
        if self.period_seconds <= 0:
            raise ValueError("period_seconds must be positive")

    def vested(self, now: int) -> int:
        if now < self.cliff_time:
            return 0
        periods = (now - self.cliff_time) // self.period_seconds
        return min(self.total_deposited, self.cliff_amount + periods * self.amount_per_period)

    def claimable(self, now: int) -> int:
        return max(0, self.vested(now) - self.withdrawn)


def honorary_owner_address(pool: str) -> str:
    """Derived address of the program authority that owns a pool's treasuries."""
    return sha256_hex(domain_sep_bytes("honorary_owner") + encode_str(pool))
