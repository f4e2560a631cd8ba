"""Exception types for the distribution engine.

Every rejection carries a stable ``code`` string. ``crank_step()`` reports the
code in ``CrankResult.rejection``; ``crank_or_raise()`` and the integration
shell raise the matching subclass.
"""

from __future__ import annotations


class DistributionError(Exception):
    """Base class. Subclasses set ``code``."""

    code: str = "DistributionError"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.code
        super().__init__(f"{self.code}: {self.message}" if message else self.code)


class InvalidFeeShare(DistributionError):
    """Investor fee share above 10_000 bps."""

    code = "InvalidFeeShare"


class InvalidBaseline(DistributionError):
    """``y0`` is zero."""

    code = "InvalidBaseline"


class InvalidFeeMode(DistributionError):
    """Pool does not collect fees in the quote token only."""

    code = "InvalidFeeMode"


class BaseFeeDetected(DistributionError):
    """The claim produced base-token fees. Not retryable."""

    code = "BaseFeeDetected"


class CursorMismatch(DistributionError):
    code = "CursorMismatch"


class TooEarly(DistributionError):
    """The distribution period since the last day opened has not elapsed."""

    code = "TooEarly"


class ArithmeticOverflow(DistributionError):
    code = "ArithmeticOverflow"


class AccountMismatch(DistributionError):
    """A caller-supplied account failed an identity, mint or ownership check."""

    code = "AccountMismatch"


class AlreadyInitialized(DistributionError):
    code = "AlreadyInitialized"


class UnknownPool(DistributionError):
    code = "UnknownPool"


class Unauthorized(DistributionError):
    code = "Unauthorized"


class HonoraryPositionNotReady(DistributionError):
    code = "HonoraryPositionNotReady"


class HonoraryPositionAlreadyConfigured(DistributionError):
    code = "HonoraryPositionAlreadyConfigured"


class EmptyPage(DistributionError):
    """Page has no investors but is not flagged as the last page."""

    code = "EmptyPage"


class PageOverflow(DistributionError):
    code = "PageOverflow"


class InvalidTimestamp(DistributionError):
    code = "InvalidTimestamp"


class InvariantViolation(DistributionError):
    """Raised when a post-state violates one or more invariants."""

    code = "InvariantViolation"

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(", ".join(violations))
