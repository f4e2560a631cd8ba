"""In-memory locked-amount oracle backed by `InMemoryLedger` vesting contracts."""

from __future__ import annotations

from ..core.errors import AccountMismatch
from ..core.types import VestingReading
from .interfaces import LockedAmountOracle
from .ledger import InMemoryLedger


def reading_from_contract(contract, *, now: int) -> VestingReading:
    return VestingReading(
        vesting_ref=contract.address,
        mint=contract.mint,
        recipient=contract.recipient,
        recipient_destination=contract.recipient_destination,
        total_deposited=contract.total_deposited,
        withdrawn=contract.withdrawn,
        claimable=contract.claimable(now),
    )


class InMemoryLockedAmountOracle(LockedAmountOracle):
    def __init__(self, ledger: InMemoryLedger) -> None:
        self._ledger = ledger

    def read(self, vesting_ref: str, *, now: int) -> VestingReading:
        contract = self._ledger.vesting(vesting_ref)
        if contract is None:
            raise AccountMismatch(f"unknown vesting contract: {vesting_ref}")
        return reading_from_contract(contract, now=now)
