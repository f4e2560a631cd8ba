"""Checked integer arithmetic for the distribution engine.

Every function is stateless and operates on plain Python ints. Python ints do
not overflow, so the ledger's fixed widths are enforced explicitly: stored
amounts must fit in u64 and intermediate products in u128. Anything outside
raises ``ArithmeticOverflow``; nothing is wrapped or saturated.

Rounding is always floor (``//`` on non-negative operands).
"""

from __future__ import annotations

from .errors import ArithmeticOverflow

BPS_SCALE: int = 10_000
U32_MAX: int = (1 << 32) - 1
U64_MAX: int = (1 << 64) - 1
U128_MAX: int = (1 << 128) - 1


# -- Domain checks -----------------------------------------------------------

def require_u64(value: int, *, name: str = "value") -> int:
    """Return *value* if it is an int in [0, u64::MAX]."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > U64_MAX:
        raise ArithmeticOverflow(f"{name} out of u64 range: {value}")
    return value


def require_u128(value: int, *, name: str = "value") -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > U128_MAX:
        raise ArithmeticOverflow(f"{name} out of u128 range: {value}")
    return value


# -- Checked operators -------------------------------------------------------

def checked_add(a: int, b: int, *, bound: int = U64_MAX) -> int:
    out = a + b
    if a < 0 or b < 0 or out > bound:
        raise ArithmeticOverflow(f"add overflow: {a} + {b}")
    return out


def checked_sub(a: int, b: int) -> int:
    """``a - b``; underflow below zero is an overflow error."""
    if b > a:
        raise ArithmeticOverflow(f"sub underflow: {a} - {b}")
    return a - b


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """``floor(a * b / denominator)`` with a u128 product and a u64 result."""
    if denominator <= 0:
        raise ArithmeticOverflow("division by zero")
    if a < 0 or b < 0:
        raise ArithmeticOverflow(f"negative operand: {a} * {b}")
    product = require_u128(a * b, name="product")
    return require_u64(product // denominator, name="quotient")


def checked_sum(values, *, bound: int = U128_MAX) -> int:
    total = 0
    for v in values:
        total = checked_add(total, v, bound=bound)
    return total


# -- Vesting -----------------------------------------------------------------

def locked_amount(total_deposited: int, withdrawn: int, claimable: int) -> int:
    """Locked (unvested) balance: ``total - min(total, withdrawn + claimable)``.

    Inputs come from untrusted vesting state, so each is range-checked; the
    result is never negative.
    """
    require_u64(total_deposited, name="total_deposited")
    require_u64(withdrawn, name="withdrawn")
    require_u64(claimable, name="claimable")
    unlocked = checked_add(withdrawn, claimable)
    return total_deposited - min(total_deposited, unlocked)


# -- Eligibility / pool sizing -----------------------------------------------

def eligible_share_bps(locked_total: int, y0: int, investor_fee_share_bps: int) -> int:
    """``min(investor_fee_share_bps, floor(min(1, locked_total / y0) * 10000))``.

    Non-decreasing in ``locked_total`` and never above ``investor_fee_share_bps``.
    """
    require_u128(locked_total, name="locked_total")
    if y0 <= 0 or locked_total == 0:
        return 0
    # f_locked >= 1 saturates at the fee share without forming the product.
    if locked_total >= y0:
        return investor_fee_share_bps
    ratio_bps = (locked_total * BPS_SCALE) // y0
    return min(ratio_bps, investor_fee_share_bps)


def investor_pool_quote(claimed_quote: int, share_bps: int, daily_cap_quote: int) -> int:
    """Quote available to investors for the day, cap applied once (0 = no cap)."""
    pool = mul_div_floor(claimed_quote, share_bps, BPS_SCALE)
    if daily_cap_quote > 0:
        pool = min(pool, daily_cap_quote)
    return pool


def pro_rata(pool: int, locked: int, locked_total: int) -> int:
    """``floor(pool * locked / locked_total)``; zero when nothing is locked."""
    if locked_total == 0 or locked == 0:
        return 0
    if locked > locked_total:
        raise ArithmeticOverflow("investor locked amount exceeds locked total")
    return mul_div_floor(pool, locked, locked_total)
