"""
Collaborator interfaces for the crank.

The engine never talks to the AMM or to vesting contracts directly. The
distributor is handed one implementation of each interface below: an
in-memory double (`gateway.py`, `vesting.py`) or the TCP adapter
(`rpc_client.py`), selected by `config.make_collaborators()`.
"""

from __future__ import annotations

from ..core.types import FeeClaim, VestingReading


class FeeClaimGateway:
    """Interface for claiming the honorary position's accrued fees."""

    def claim_fees(self, *, position: str, quote_treasury: str, base_fee_check: str) -> FeeClaim:
        """
        Claim all accrued fees of *position* once.

        Quote fees land in *quote_treasury*, base fees (if any) in
        *base_fee_check*. Called at most once per distribution day.
        """
        raise NotImplementedError


class LockedAmountOracle:
    """Interface for reading vesting contracts."""

    def read(self, vesting_ref: str, *, now: int) -> VestingReading:
        """Fresh snapshot of one vesting contract. Never cached between calls."""
        raise NotImplementedError
