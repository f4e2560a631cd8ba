"""In-memory fee claim gateway backed by `InMemoryLedger`."""

from __future__ import annotations

import logging

from ..core.types import FeeClaim
from .interfaces import FeeClaimGateway
from .ledger import InMemoryLedger

logger = logging.getLogger(__name__)


class InMemoryFeeClaimGateway(FeeClaimGateway):
    """
    Claims a position's pending fees on the in-memory ledger.

    Quote fees are credited to the quote treasury and base fees to the base
    fee check account, mirroring a real AMM claim: the tokens move whether or
    not the caller later accepts the claim, so rejecting a base-fee claim is
    the caller's atomic rollback.
    """

    def __init__(self, ledger: InMemoryLedger) -> None:
        self._ledger = ledger

    def claim_fees(self, *, position: str, quote_treasury: str, base_fee_check: str) -> FeeClaim:
        quote, base = self._ledger.take_pending_fees(position)
        if quote:
            self._ledger.credit(quote_treasury, quote)
        if base:
            self._ledger.credit(base_fee_check, base)
        logger.debug("claimed position=%s quote=%d base=%d", position, quote, base)
        return FeeClaim(quote_claimed=quote, base_fee_present=base > 0, base_claimed=base)
