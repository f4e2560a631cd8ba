"""Invariant checkers for ``DistributionProgress``.

Each function returns True when the invariant holds, and `check_all()` returns
the list of violated invariant IDs (empty = all pass). The engine checks the
post-state of every crank before accepting it.
"""

from __future__ import annotations

from typing import Callable

from .math import U64_MAX, U128_MAX
from .types import DistributionProgress

_U64_FIELDS = (
    "claimed_quote_today",
    "distributed_to_investors_today",
    "dust_carry",
    "pages_processed_total",
    "days_closed",
)


def inv_amounts_in_range(p: DistributionProgress) -> bool:
    for name in _U64_FIELDS:
        v = getattr(p, name)
        if not isinstance(v, int) or isinstance(v, bool) or not (0 <= v <= U64_MAX):
            return False
    return 0 <= p.locked_total_today <= U128_MAX and p.page_cursor >= 0


def inv_distributed_within_claimed(p: DistributionProgress) -> bool:
    # dust_carry only holds the current (or just closed) day's deferrals here.
    return p.distributed_to_investors_today + p.dust_carry <= p.claimed_quote_today


def inv_anchor_set_when_open(p: DistributionProgress) -> bool:
    if not p.day_open:
        return True
    return p.day_anchor_time is not None


def inv_anchor_non_negative(p: DistributionProgress) -> bool:
    return p.day_anchor_time is None or p.day_anchor_time >= 0


def inv_cursor_zero_when_closed(p: DistributionProgress) -> bool:
    if p.day_open:
        return True
    return p.page_cursor == 0


def inv_never_opened_is_empty(p: DistributionProgress) -> bool:
    if p.day_anchor_time is not None:
        return True
    return (
        not p.day_open
        and p.claimed_quote_today == 0
        and p.distributed_to_investors_today == 0
        and p.dust_carry == 0
        and p.days_closed == 0
    )


INVARIANT_REGISTRY: dict[str, Callable[[DistributionProgress], bool]] = {
    "inv_amounts_in_range": inv_amounts_in_range,
    "inv_distributed_within_claimed": inv_distributed_within_claimed,
    "inv_anchor_set_when_open": inv_anchor_set_when_open,
    "inv_anchor_non_negative": inv_anchor_non_negative,
    "inv_cursor_zero_when_closed": inv_cursor_zero_when_closed,
    "inv_never_opened_is_empty": inv_never_opened_is_empty,
}


def check_all(progress: DistributionProgress) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(progress)
    ]
