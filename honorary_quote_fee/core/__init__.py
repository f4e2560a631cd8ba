"""`core`: pure distribution state machine.

- deterministic, integer-only transitions (checked u64/u128 arithmetic),
- immutable records (frozen dataclasses),
- fail-closed guards and post-state invariant checks.

Public API:
- `initialize_policy(...) -> (Policy, DistributionProgress)`
- `configure_honorary_position(policy, ...) -> HonoraryPosition`
- `precheck(...) -> bool` (True when the call opens a new day)
- `crank_or_raise(...) -> CrankOutcome` (raises on rejection)
- `crank_step(...) -> CrankResult`
- `validate_page(...)` (investor checks that need no fee claim)
"""

from .engine import DEFAULT_MAX_INVESTORS_PER_PAGE, crank_or_raise, crank_step, precheck, validate_page
from .errors import (
    AccountMismatch,
    AlreadyInitialized,
    ArithmeticOverflow,
    BaseFeeDetected,
    CursorMismatch,
    DistributionError,
    EmptyPage,
    HonoraryPositionAlreadyConfigured,
    HonoraryPositionNotReady,
    InvalidBaseline,
    InvalidFeeMode,
    InvalidFeeShare,
    InvalidTimestamp,
    InvariantViolation,
    PageOverflow,
    TooEarly,
    Unauthorized,
    UnknownPool,
)
from .policy import configure_honorary_position, initialize_policy, validate_policy_params
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
    InvestorRecord,
    PageEntry,
    Policy,
    Transfer,
    TransferKind,
    VestingReading,
)

__all__ = [
    "DAY_SECONDS",
    "DEFAULT_MAX_INVESTORS_PER_PAGE",
    "crank_or_raise",
    "crank_step",
    "precheck",
    "validate_page",
    "initialize_policy",
    "configure_honorary_position",
    "validate_policy_params",
    "CrankAccounts",
    "CrankOutcome",
    "CrankParams",
    "CrankResult",
    "DistributionProgress",
    "Event",
    "EventRecord",
    "FeeClaim",
    "HonoraryPosition",
    "InvestorRecord",
    "PageEntry",
    "Policy",
    "Transfer",
    "TransferKind",
    "VestingReading",
    "DistributionError",
    "AccountMismatch",
    "AlreadyInitialized",
    "ArithmeticOverflow",
    "BaseFeeDetected",
    "CursorMismatch",
    "EmptyPage",
    "HonoraryPositionAlreadyConfigured",
    "HonoraryPositionNotReady",
    "InvalidBaseline",
    "InvalidFeeMode",
    "InvalidFeeShare",
    "InvalidTimestamp",
    "InvariantViolation",
    "PageOverflow",
    "TooEarly",
    "Unauthorized",
    "UnknownPool",
]
