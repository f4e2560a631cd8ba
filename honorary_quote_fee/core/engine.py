"""Crank state machine.

``crank_or_raise(...)`` is the single transition function. It is pure: the
caller performs I/O (claiming fees, reading vesting contracts, moving tokens)
and hands the observations in; the engine returns the post-state together with
the transfers and events to commit. A rejection raises before anything is
returned, so the caller has nothing to apply.

States: DAY_CLOSED -> DAY_OPEN(page 0..N) -> DAY_CLOSED.

Order of evaluation:

1. Clock, configuration and account-identity checks.
2. Optimistic cursor check (``expected_page_cursor == page_cursor``).
3. Page bounds.
4. Day opening (when no day is open): elapsed-time gate, claim purity, then
   ``claimed_quote_today = claim + dust_carry`` and the day-scoped reset.
5. Per-investor validation and locked amounts (``validate_page``, which the
   caller also runs before claiming), page payout plan.
6. Cursor advance; on the last page the creator remainder and day close.
7. Post-state invariant check.

``crank_step()`` wraps the same logic and reports rejections as a
``CrankResult`` instead of raising.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping, Optional, Sequence

from ..state.accounts import TokenAccount
from .errors import DistributionError, InvariantViolation
from .guards import (
    guard_accounts,
    guard_claim_purity,
    guard_cursor,
    guard_day_open_allowed,
    guard_investor,
    guard_page_bounds,
    guard_position_ready,
    guard_timestamp,
    opens_new_day,
)
from .invariants import check_all
from .math import checked_add, checked_sub, locked_amount, require_u64
from .payout import plan_page
from .types import (
    DAY_SECONDS,
    CrankAccounts,
    CrankOutcome,
    CrankParams,
    CrankResult,
    DistributionProgress,
    Event,
    EventRecord,
    FeeClaim,
    HonoraryPosition,
    PageEntry,
    Policy,
    Transfer,
    TransferKind,
    VestingReading,
)

DEFAULT_MAX_INVESTORS_PER_PAGE: int = 64


def precheck(
    policy: Policy,
    position: Optional[HonoraryPosition],
    progress: DistributionProgress,
    params: CrankParams,
    accounts: CrankAccounts,
    *,
    now: int,
    day_seconds: int = DAY_SECONDS,
    max_investors_per_page: int = DEFAULT_MAX_INVESTORS_PER_PAGE,
) -> bool:
    """Run every check that needs no external observation.

    Returns True when this call opens a new day (the caller must then claim
    fees exactly once). Raises on any failed precondition.
    """
    guard_timestamp(now)
    bound = guard_position_ready(position)
    guard_accounts(policy, bound, accounts)
    guard_cursor(progress, params)
    guard_page_bounds(params, max_investors_per_page=max_investors_per_page)
    if opens_new_day(progress):
        guard_day_open_allowed(progress, now, day_seconds=day_seconds)
        return True
    return False


def _open_day(progress: DistributionProgress, claim: FeeClaim, now: int) -> DistributionProgress:
    quote = require_u64(claim.quote_claimed, name="quote_claimed")
    return replace(
        progress,
        claimed_quote_today=checked_add(quote, progress.dust_carry),
        dust_carry=0,
        day_anchor_time=now,
        day_open=True,
        page_cursor=0,
        distributed_to_investors_today=0,
        locked_total_today=0,
    )


def validate_page(
    policy: Policy,
    params: CrankParams,
    readings: Sequence[VestingReading],
    destinations: Mapping[str, Optional[TokenAccount]],
) -> list[tuple[PageEntry, int]]:
    """Check every investor of the page and return ``(entry, locked)`` pairs.

    Needs only the vesting readings and destination accounts, so the caller
    runs it before claiming fees: once a day is opening, the claim must be the
    last external effect before the page commits.
    """
    if len(readings) != len(params.page):
        raise ValueError(f"{len(readings)} vesting readings for {len(params.page)} page entries")
    page = []
    for entry, reading in zip(params.page, readings):
        guard_investor(policy, entry, reading, destinations.get(entry.destination))
        page.append((entry, locked_amount(reading.total_deposited, reading.withdrawn, reading.claimable)))
    return page


def crank_or_raise(
    policy: Policy,
    position: Optional[HonoraryPosition],
    progress: DistributionProgress,
    params: CrankParams,
    accounts: CrankAccounts,
    *,
    now: int,
    claim: Optional[FeeClaim],
    readings: Sequence[VestingReading],
    destinations: Mapping[str, Optional[TokenAccount]],
    base_before: int = 0,
    base_after: int = 0,
    day_seconds: int = DAY_SECONDS,
    max_investors_per_page: int = DEFAULT_MAX_INVESTORS_PER_PAGE,
) -> CrankOutcome:
    """Advance *progress* by one page.

    ``claim`` must be given exactly when the call opens a new day;
    ``base_before`` / ``base_after`` are the base-fee-check balances observed
    around that claim. ``readings`` align with ``params.page``.

    Raises:
        DistributionError: any failed precondition (see ``errors.py``).
        InvariantViolation: the computed post-state is inconsistent.
        ValueError: the caller's observations do not match the call shape.
    """
    opening = precheck(
        policy, position, progress, params, accounts,
        now=now, day_seconds=day_seconds, max_investors_per_page=max_investors_per_page,
    )
    events: list[EventRecord] = []

    if opening:
        if claim is None:
            raise ValueError("opening a day requires a fee claim")
        guard_claim_purity(claim, base_before=base_before, base_after=base_after)
        quote_claimed = claim.quote_claimed
        state = _open_day(progress, claim, now)
    else:
        if claim is not None:
            raise ValueError("fees are claimed only on the page that opens the day")
        quote_claimed = 0
        state = progress

    page = validate_page(policy, params, readings, destinations)

    plan = plan_page(
        policy,
        claimed_quote_today=state.claimed_quote_today,
        distributed_today=state.distributed_to_investors_today,
        dust_today=state.dust_carry,
        locked_total_before=state.locked_total_today,
        page=page,
    )

    state = replace(
        state,
        distributed_to_investors_today=checked_add(state.distributed_to_investors_today, plan.paid),
        dust_carry=checked_add(state.dust_carry, plan.dust),
        locked_total_today=plan.locked_total_today,
        page_cursor=state.page_cursor + 1,
        pages_processed_total=checked_add(state.pages_processed_total, 1),
    )
    anchor = state.day_anchor_time or 0

    if opening:
        events.append(EventRecord(Event.QUOTE_FEES_CLAIMED, policy.pool, (
            ("day_anchor_time", anchor),
            ("quote_fees_claimed", quote_claimed),
            ("claimed_quote_today", state.claimed_quote_today),
            ("eligible_share_bps", plan.eligible_share_bps),
        )))
    events.append(EventRecord(Event.INVESTOR_PAYOUT_PAGE, policy.pool, (
        ("day_anchor_time", anchor),
        ("page_start", params.expected_page_cursor),
        ("investors_processed", len(params.page)),
        ("total_paid_quote", plan.paid),
        ("dust_deferred_quote", plan.dust),
        ("dust_carry", state.dust_carry),
    )))

    transfers: list[Transfer] = list(plan.transfers)
    creator_amount = 0
    if params.is_last_page:
        committed = checked_add(state.distributed_to_investors_today, state.dust_carry)
        creator_amount = checked_sub(state.claimed_quote_today, committed)
        if creator_amount > 0:
            transfers.append(Transfer(
                destination=policy.creator_destination,
                amount=creator_amount,
                kind=TransferKind.CREATOR,
            ))
        state = replace(
            state,
            day_open=False,
            page_cursor=0,
            days_closed=checked_add(state.days_closed, 1),
        )
        events.append(EventRecord(Event.CREATOR_PAYOUT_DAY_CLOSED, policy.pool, (
            ("day_anchor_time", anchor),
            ("creator_quote_paid", creator_amount),
            ("investor_quote_paid", state.distributed_to_investors_today),
            ("claimed_quote_today", state.claimed_quote_today),
            ("dust_carry", state.dust_carry),
            ("eligible_share_bps", plan.eligible_share_bps),
        )))

    violations = check_all(state)
    if violations:
        raise InvariantViolation(violations)

    return CrankOutcome(
        progress=state,
        investors=plan.investors,
        transfers=tuple(transfers),
        events=tuple(events),
        quote_claimed=quote_claimed,
        eligible_share_bps=plan.eligible_share_bps,
        investor_pool_quote=plan.investor_pool_quote,
        creator_amount=creator_amount,
    )


def crank_step(
    policy: Policy,
    position: Optional[HonoraryPosition],
    progress: DistributionProgress,
    params: CrankParams,
    accounts: CrankAccounts,
    **observations,
) -> CrankResult:
    """Like ``crank_or_raise()`` but returns a rejected ``CrankResult`` instead of raising."""
    try:
        outcome = crank_or_raise(policy, position, progress, params, accounts, **observations)
    except DistributionError as exc:
        return CrankResult(accepted=False, rejection=exc.code, detail=exc.message)
    return CrankResult(accepted=True, outcome=outcome)
