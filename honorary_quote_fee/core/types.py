"""Data types for the distribution engine.

All types are frozen dataclasses (immutable). An accepted crank returns a new
``DistributionProgress``; the caller persists it.

Units/conventions:
- `*_bps` values are basis points (1/10_000).
- `*_quote` values and payouts are integer quote-token units.
- Times are integer unix seconds.
- Account references (pools, mints, token accounts, vesting contracts) are
  opaque non-empty strings; identity is string equality.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Optional, Tuple

DAY_SECONDS: int = 86_400


@unique
class Event(Enum):
    """One member per emitted event type."""
    POLICY_INITIALIZED = "PolicyInitialized"
    HONORARY_POSITION_CONFIGURED = "HonoraryPositionConfigured"
    QUOTE_FEES_CLAIMED = "QuoteFeesClaimed"
    INVESTOR_PAYOUT_PAGE = "InvestorPayoutPage"
    CREATOR_PAYOUT_DAY_CLOSED = "CreatorPayoutDayClosed"


@unique
class TransferKind(Enum):
    INVESTOR = "investor"
    CREATOR = "creator"


@dataclass(frozen=True)
class Policy:
    """Write-once distribution policy for one pool."""

    pool: str
    authority: str
    quote_mint: str
    base_mint: str
    creator_destination: str
    investor_fee_share_bps: int
    y0: int
    daily_cap_quote: int = 0
    min_payout: int = 0


@dataclass(frozen=True)
class HonoraryPosition:
    """Binding of a policy to its program-owned position and treasuries."""

    position: str
    quote_treasury: str
    base_fee_check: str
    owner: str


@dataclass(frozen=True)
class DistributionProgress:
    """Per-pool distribution progress.

    ``day_anchor_time`` is None until the first day opens. While a day is open
    ``dust_carry`` holds only the dust deferred during that day; the previous
    carry was folded into ``claimed_quote_today`` when the day opened.
    """

    day_anchor_time: Optional[int] = None
    day_open: bool = False
    page_cursor: int = 0
    claimed_quote_today: int = 0
    distributed_to_investors_today: int = 0
    dust_carry: int = 0
    locked_total_today: int = 0
    pages_processed_total: int = 0
    days_closed: int = 0


@dataclass(frozen=True)
class PageEntry:
    """One (vesting contract, payout destination) pair supplied by the cranker."""

    vesting_ref: str
    destination: str


@dataclass(frozen=True)
class CrankParams:
    expected_page_cursor: int
    max_page_cursor: int = 0        # 0 = unbounded
    is_last_page: bool = False
    page: Tuple[PageEntry, ...] = ()


@dataclass(frozen=True)
class CrankAccounts:
    """Accounts the cranker claims belong to the pool; checked on every call."""

    pool: str
    position: str
    quote_treasury: str
    base_fee_check: str
    creator_destination: str


@dataclass(frozen=True)
class FeeClaim:
    """Outcome of a single fee claim on the honorary position."""

    quote_claimed: int
    base_fee_present: bool = False
    base_claimed: int = 0


@dataclass(frozen=True)
class VestingReading:
    """Snapshot of one vesting contract at evaluation time."""

    vesting_ref: str
    mint: str
    recipient: str
    recipient_destination: str
    total_deposited: int
    withdrawn: int
    claimable: int


@dataclass(frozen=True)
class InvestorRecord:
    """Derived per call; never persisted."""

    vesting_ref: str
    destination: str
    locked: int
    payout: int = 0
    dust: int = 0


@dataclass(frozen=True)
class Transfer:
    destination: str
    amount: int
    kind: TransferKind = TransferKind.INVESTOR


@dataclass(frozen=True)
class EventRecord:
    """Emitted event. ``fields`` is an ordered tuple of (name, value) pairs."""

    event: Event
    pool: str
    fields: Tuple[Tuple[str, int], ...] = ()

    def as_dict(self) -> dict[str, int]:
        return dict(self.fields)


@dataclass(frozen=True)
class CrankOutcome:
    """Everything an accepted crank call must commit."""

    progress: DistributionProgress
    investors: Tuple[InvestorRecord, ...] = ()
    transfers: Tuple[Transfer, ...] = ()
    events: Tuple[EventRecord, ...] = ()
    quote_claimed: int = 0
    eligible_share_bps: int = 0
    investor_pool_quote: int = 0
    creator_amount: int = 0


@dataclass(frozen=True)
class CrankResult:
    """Result of ``crank_step()``: accepted with an outcome, or a rejection code."""

    accepted: bool
    outcome: CrankOutcome | None = None
    rejection: str | None = None
    detail: str = field(default="", compare=False)
