"""Per-page payout planning.

Pool sizing follows the accumulated locked total of the day: every page adds
its investors' locked amounts to ``locked_total_today`` and the eligible share
and investor pool are recomputed from that running total. Both are
non-decreasing as pages accumulate, and the daily cap bounds the pool itself,
so it is applied once for the whole day rather than per page.

Each investor's raw payout is ``floor(pool * locked / locked_total_today)``,
bounded by what is left of the pool after earlier payouts and deferred dust.
Raw payouts below ``min_payout`` are deferred as dust.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from .math import (
    U128_MAX,
    checked_add,
    checked_sum,
    eligible_share_bps,
    investor_pool_quote,
    pro_rata,
    require_u64,
)
from .types import InvestorRecord, PageEntry, Policy, Transfer, TransferKind


@dataclass(frozen=True)
class PagePlan:
    investors: Tuple[InvestorRecord, ...]
    transfers: Tuple[Transfer, ...]
    locked_total_today: int
    eligible_share_bps: int
    investor_pool_quote: int
    paid: int
    dust: int


def plan_page(
    policy: Policy,
    *,
    claimed_quote_today: int,
    distributed_today: int,
    dust_today: int,
    locked_total_before: int,
    page: Sequence[Tuple[PageEntry, int]],
) -> PagePlan:
    """Compute payouts for one page of ``(entry, locked)`` pairs.

    Results depend on how the day is paged. A page only sees the locked total
    accumulated so far, so an early page divides by a smaller denominator and
    may take the whole headroom: the worked three-investor day paged one
    investor at a time pays 50000/0/0 instead of 25000/15000/10000. The creator
    remainder is the same either way. Put the whole day on one page when the
    split between investors must be exact.
    """
    for entry, locked in page:
        require_u64(locked, name=f"locked[{entry.vesting_ref}]")

    page_locked = checked_sum((locked for _, locked in page), bound=U128_MAX)
    locked_total = checked_add(locked_total_before, page_locked, bound=U128_MAX)

    share_bps = eligible_share_bps(locked_total, policy.y0, policy.investor_fee_share_bps)
    pool = investor_pool_quote(claimed_quote_today, share_bps, policy.daily_cap_quote)

    committed = checked_add(distributed_today, dust_today)
    headroom = pool - committed if pool > committed else 0

    records: list[InvestorRecord] = []
    transfers: list[Transfer] = []
    paid = 0
    dust = 0
    for entry, locked in page:
        raw = min(pro_rata(pool, locked, locked_total), headroom)
        headroom -= raw
        if raw < policy.min_payout:
            dust = checked_add(dust, raw)
            records.append(InvestorRecord(entry.vesting_ref, entry.destination, locked, payout=0, dust=raw))
            continue
        paid = checked_add(paid, raw)
        records.append(InvestorRecord(entry.vesting_ref, entry.destination, locked, payout=raw))
        if raw > 0:
            transfers.append(Transfer(destination=entry.destination, amount=raw, kind=TransferKind.INVESTOR))

    return PagePlan(
        investors=tuple(records),
        transfers=tuple(transfers),
        locked_total_today=locked_total,
        eligible_share_bps=share_bps,
        investor_pool_quote=pool,
        paid=paid,
        dust=dust,
    )
