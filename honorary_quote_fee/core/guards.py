"""Precondition checks for a crank call.

Each guard inspects the PRE-state and the caller's inputs and raises the
matching ``DistributionError`` on failure. Guards never mutate anything, so a
failing guard always leaves the call without effects.
"""

from __future__ import annotations

from typing import Optional

from ..state.accounts import TokenAccount
from .errors import (
    AccountMismatch,
    BaseFeeDetected,
    CursorMismatch,
    EmptyPage,
    HonoraryPositionNotReady,
    InvalidTimestamp,
    PageOverflow,
    TooEarly,
)
from .math import U32_MAX
from .types import (
    CrankAccounts,
    CrankParams,
    DistributionProgress,
    FeeClaim,
    HonoraryPosition,
    PageEntry,
    Policy,
    VestingReading,
)


def guard_timestamp(now: int) -> None:
    if not isinstance(now, int) or isinstance(now, bool) or now < 0:
        raise InvalidTimestamp(f"now must be a non-negative int: {now!r}")


def guard_position_ready(position: Optional[HonoraryPosition]) -> HonoraryPosition:
    if position is None:
        raise HonoraryPositionNotReady("honorary position not configured")
    return position


def guard_accounts(policy: Policy, position: HonoraryPosition, accounts: CrankAccounts) -> None:
    """Every account reference supplied by the cranker must match the bound one."""
    expected = (
        ("pool", policy.pool),
        ("position", position.position),
        ("quote_treasury", position.quote_treasury),
        ("base_fee_check", position.base_fee_check),
        ("creator_destination", policy.creator_destination),
    )
    for name, bound in expected:
        if getattr(accounts, name) != bound:
            raise AccountMismatch(f"{name} does not match the configured account")


def guard_cursor(progress: DistributionProgress, params: CrankParams) -> None:
    if params.expected_page_cursor != progress.page_cursor:
        raise CursorMismatch(
            f"expected_page_cursor={params.expected_page_cursor} stored={progress.page_cursor}"
        )


def guard_page_bounds(params: CrankParams, *, max_investors_per_page: int) -> None:
    if not (0 <= params.max_page_cursor <= U32_MAX):
        raise PageOverflow(f"max_page_cursor out of range: {params.max_page_cursor}")
    if params.max_page_cursor and params.expected_page_cursor > params.max_page_cursor:
        raise PageOverflow(
            f"page cursor {params.expected_page_cursor} beyond max_page_cursor {params.max_page_cursor}"
        )
    if params.expected_page_cursor >= U32_MAX:
        raise PageOverflow("page cursor would overflow")
    if len(params.page) > max_investors_per_page:
        raise PageOverflow(f"page holds {len(params.page)} investors > {max_investors_per_page}")
    if not params.page and not params.is_last_page:
        raise EmptyPage("empty page must be flagged as the last page")
    seen: set[str] = set()
    for entry in params.page:
        if entry.vesting_ref in seen:
            raise AccountMismatch(f"vesting contract {entry.vesting_ref} listed twice")
        seen.add(entry.vesting_ref)


def opens_new_day(progress: DistributionProgress) -> bool:
    return not progress.day_open


def guard_day_open_allowed(progress: DistributionProgress, now: int, *, day_seconds: int) -> None:
    """A new day may open once ``day_seconds`` have elapsed since the last one opened.

    The very first day always opens.
    """
    if progress.day_open:
        return
    anchor = progress.day_anchor_time
    if anchor is None:
        return
    if now < anchor or now - anchor < day_seconds:
        raise TooEarly(f"next day opens at {anchor + day_seconds}, now={now}")


def guard_claim_purity(claim: FeeClaim, *, base_before: int, base_after: int) -> None:
    """The claim must be quote-only, by report and by the base-check balance."""
    if claim.base_fee_present or claim.base_claimed != 0:
        raise BaseFeeDetected(f"gateway reported base fee {claim.base_claimed}")
    if base_after != base_before:
        raise BaseFeeDetected(f"base fee check balance moved {base_before} -> {base_after}")


def guard_investor(
    policy: Policy,
    entry: PageEntry,
    reading: VestingReading,
    destination: Optional[TokenAccount],
) -> None:
    """The vesting contract must stream the quote mint to the supplied destination."""
    if reading.vesting_ref != entry.vesting_ref:
        raise AccountMismatch(f"oracle answered for {reading.vesting_ref}, asked {entry.vesting_ref}")
    if reading.mint != policy.quote_mint:
        raise AccountMismatch(f"vesting contract {entry.vesting_ref} mint is not the quote mint")
    if reading.recipient_destination != entry.destination:
        raise AccountMismatch(f"destination for {entry.vesting_ref} is not the vesting recipient account")
    if destination is None:
        raise AccountMismatch(f"destination {entry.destination} does not exist")
    if destination.mint != policy.quote_mint:
        raise AccountMismatch(f"destination {entry.destination} mint mismatch")
    if destination.owner != reading.recipient:
        raise AccountMismatch(f"destination {entry.destination} owner mismatch")
