"""Policy creation and honorary-position binding.

Both operations are write-once. The functions here are pure: they validate
account snapshots and return new records; persisting them is the caller's job.
"""

from __future__ import annotations

from typing import Optional, Tuple

from ..state.accounts import (
    CollectFeeMode,
    PoolAccount,
    PositionAccount,
    TokenAccount,
    honorary_owner_address,
)
from .errors import (
    AccountMismatch,
    HonoraryPositionAlreadyConfigured,
    InvalidBaseline,
    InvalidFeeMode,
    InvalidFeeShare,
    Unauthorized,
)
from .math import BPS_SCALE, require_u64
from .types import DistributionProgress, HonoraryPosition, Policy


def _require_int(value: object, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    return value


def validate_policy_params(
    investor_fee_share_bps: int,
    y0: int,
    daily_cap_quote: int,
    min_payout: int,
) -> None:
    """Reject out-of-domain policy parameters."""
    bps = _require_int(investor_fee_share_bps, name="investor_fee_share_bps")
    if bps < 0 or bps > BPS_SCALE:
        raise InvalidFeeShare(f"investor_fee_share_bps must be in [0, {BPS_SCALE}]: {bps}")
    if _require_int(y0, name="y0") <= 0:
        raise InvalidBaseline(f"y0 must be positive: {y0}")
    require_u64(y0, name="y0")
    require_u64(daily_cap_quote, name="daily_cap_quote")
    require_u64(min_payout, name="min_payout")


def initialize_policy(
    *,
    pool: PoolAccount,
    authority: str,
    creator_account: TokenAccount,
    investor_fee_share_bps: int,
    y0: int,
    daily_cap_quote: int = 0,
    min_payout: int = 0,
) -> Tuple[Policy, DistributionProgress]:
    """Create the Policy and an empty DistributionProgress for *pool*."""
    validate_policy_params(investor_fee_share_bps, y0, daily_cap_quote, min_payout)

    if pool.collect_fee_mode is not CollectFeeMode.ONLY_QUOTE:
        raise InvalidFeeMode(f"pool {pool.address} collects fees in mode {pool.collect_fee_mode.name}")
    if not authority:
        raise Unauthorized("authority must be non-empty")
    if creator_account.mint != pool.quote_mint:
        raise AccountMismatch("creator destination mint is not the pool quote mint")

    policy = Policy(
        pool=pool.address,
        authority=authority,
        quote_mint=pool.quote_mint,
        base_mint=pool.base_mint,
        creator_destination=creator_account.address,
        investor_fee_share_bps=investor_fee_share_bps,
        y0=y0,
        daily_cap_quote=daily_cap_quote,
        min_payout=min_payout,
    )
    return policy, DistributionProgress()


def configure_honorary_position(
    policy: Policy,
    *,
    caller: str,
    existing: Optional[HonoraryPosition],
    position: PositionAccount,
    quote_treasury: TokenAccount,
    base_fee_check: TokenAccount,
) -> HonoraryPosition:
    """Bind *policy* to an empty, program-owned position and its treasuries."""
    if caller != policy.authority:
        raise Unauthorized("caller is not the policy authority")
    if existing is not None:
        raise HonoraryPositionAlreadyConfigured(f"pool {policy.pool}")

    if position.pool != policy.pool:
        raise AccountMismatch("position belongs to a different pool")
    if position.pending_quote_fee != 0 or position.pending_base_fee != 0:
        raise AccountMismatch("honorary position must start with zero pending fees")
    if position.liquidity != 0:
        raise AccountMismatch("honorary position must start with zero liquidity")

    owner = honorary_owner_address(policy.pool)
    if quote_treasury.mint != policy.quote_mint:
        raise AccountMismatch("quote treasury mint mismatch")
    if quote_treasury.owner != owner:
        raise AccountMismatch("quote treasury is not owned by the honorary authority")
    if base_fee_check.mint != policy.base_mint:
        raise AccountMismatch("base fee check mint mismatch")
    if base_fee_check.owner != owner:
        raise AccountMismatch("base fee check is not owned by the honorary authority")
    if quote_treasury.address == base_fee_check.address:
        raise AccountMismatch("quote treasury and base fee check must differ")

    return HonoraryPosition(
        position=position.address,
        quote_treasury=quote_treasury.address,
        base_fee_check=base_fee_check.address,
        owner=owner,
    )
