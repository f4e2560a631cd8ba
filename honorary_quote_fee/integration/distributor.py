"""
Distributor: imperative shell around the pure crank engine.

Each public method is one atomic unit of work on the ledger:

- load the pool's records (versioned bytes) and the accounts it names,
- run the engine's checks before any external call,
- read the page's vesting contracts and destinations and validate them,
- claim fees last (only on the page that opens a day): a remote claim cannot
  be rolled back, so nothing but the claim-purity check may follow it,
- let the engine compute the post-state, transfers and events,
- apply transfers and store the new records.

Any exception inside the ``ledger.atomic()`` block rolls the ledger back, so a
rejected call leaves records and balances bit-identical.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence, Tuple

from ..core.engine import crank_or_raise, precheck, validate_page
from ..core.errors import (
    AccountMismatch,
    AlreadyInitialized,
    DistributionError,
    HonoraryPositionNotReady,
    Unauthorized,
    UnknownPool,
)
from ..core.policy import configure_honorary_position as _configure_position
from ..core.policy import initialize_policy as _initialize_policy
from ..core.types import (
    CrankAccounts,
    CrankOutcome,
    CrankParams,
    DistributionProgress,
    Event,
    EventRecord,
    FeeClaim,
    HonoraryPosition,
    PageEntry,
    Policy,
)
from ..state.accounts import TokenAccount
from ..state.codec import decode_crank_params, decode_record, encode_record, record_digest
from .config import DistributorConfig, make_collaborators
from .interfaces import FeeClaimGateway, LockedAmountOracle
from .ledger import InMemoryLedger
from .signing import verify_admin_signature

logger = logging.getLogger(__name__)


class Distributor:
    def __init__(
        self,
        ledger: InMemoryLedger,
        *,
        config: DistributorConfig = DistributorConfig(),
        gateway: Optional[FeeClaimGateway] = None,
        oracle: Optional[LockedAmountOracle] = None,
    ) -> None:
        self._ledger = ledger
        self._cfg = config
        if gateway is None or oracle is None:
            default_gateway, default_oracle = make_collaborators(config, ledger)
            gateway = gateway or default_gateway
            oracle = oracle or default_oracle
        self._gateway = gateway
        self._oracle = oracle

    @property
    def config(self) -> DistributorConfig:
        return self._cfg

    # -- Record access -------------------------------------------------------

    def policy(self, pool: str) -> Policy:
        raw = self._ledger.get_record(pool, "policy")
        if raw is None:
            raise UnknownPool(f"no policy for pool {pool}")
        return decode_record(Policy, raw)

    def progress(self, pool: str) -> DistributionProgress:
        raw = self._ledger.get_record(pool, "progress")
        if raw is None:
            raise UnknownPool(f"no progress record for pool {pool}")
        return decode_record(DistributionProgress, raw)

    def honorary_position(self, pool: str) -> Optional[HonoraryPosition]:
        raw = self._ledger.get_record(pool, "honorary_position")
        return decode_record(HonoraryPosition, raw) if raw is not None else None

    # -- Admin ---------------------------------------------------------------

    def _check_authority_signature(self, authority: str, action: str, fields: Dict[str, object], signature: Optional[str]) -> None:
        if not self._cfg.require_authority_signature:
            return
        ok, err = verify_admin_signature(
            action,
            fields,
            pubkey_hex=authority,
            signature_hex=signature,
            chain_id=self._cfg.chain_id,
        )
        if not ok:
            raise Unauthorized(err or "invalid authority signature")

    def initialize_policy(
        self,
        *,
        pool: str,
        authority: str,
        creator_destination: str,
        investor_fee_share_bps: int,
        y0: int,
        daily_cap_quote: int = 0,
        min_payout: int = 0,
        signature: Optional[str] = None,
    ) -> Policy:
        """Create the write-once policy and an empty progress record for *pool*."""
        try:
            with self._ledger.atomic() as ledger:
                pool_acct = ledger.pool(pool)
                if pool_acct is None:
                    raise UnknownPool(f"unknown pool {pool}")
                if ledger.get_record(pool, "policy") is not None:
                    raise AlreadyInitialized(f"pool {pool}")
                creator = ledger.token(creator_destination)
                if creator is None:
                    raise AccountMismatch(f"creator destination {creator_destination} does not exist")
                self._check_authority_signature(authority, "initialize_policy", {
                    "pool": pool,
                    "creator_destination": creator_destination,
                    "investor_fee_share_bps": investor_fee_share_bps,
                    "y0": y0,
                    "daily_cap_quote": daily_cap_quote,
                    "min_payout": min_payout,
                }, signature)

                policy, progress = _initialize_policy(
                    pool=pool_acct,
                    authority=authority,
                    creator_account=creator,
                    investor_fee_share_bps=investor_fee_share_bps,
                    y0=y0,
                    daily_cap_quote=daily_cap_quote,
                    min_payout=min_payout,
                )
                ledger.put_record(pool, "policy", encode_record(policy))
                ledger.put_record(pool, "progress", encode_record(progress))
        except DistributionError as exc:
            logger.warning("initialize_policy rejected pool=%s code=%s: %s", pool, exc.code, exc.message)
            raise
        logger.info(
            "%s pool=%s share_bps=%d y0=%d cap=%d min_payout=%d",
            Event.POLICY_INITIALIZED.value, pool, investor_fee_share_bps, y0, daily_cap_quote, min_payout,
        )
        return policy

    def configure_honorary_position(
        self,
        *,
        pool: str,
        caller: str,
        position: str,
        quote_treasury: str,
        base_fee_check: str,
        signature: Optional[str] = None,
    ) -> HonoraryPosition:
        """Bind the pool's policy to its program-owned position (once)."""
        try:
            with self._ledger.atomic() as ledger:
                policy = self.policy(pool)
                pos_acct = ledger.position(position)
                if pos_acct is None:
                    raise AccountMismatch(f"position {position} does not exist")
                treasury = _require_token(ledger, quote_treasury, name="quote treasury")
                base_check = _require_token(ledger, base_fee_check, name="base fee check")
                if caller == policy.authority:
                    self._check_authority_signature(policy.authority, "configure_honorary_position", {
                        "pool": pool,
                        "position": position,
                        "quote_treasury": quote_treasury,
                        "base_fee_check": base_fee_check,
                    }, signature)

                bound = _configure_position(
                    policy,
                    caller=caller,
                    existing=self.honorary_position(pool),
                    position=pos_acct,
                    quote_treasury=treasury,
                    base_fee_check=base_check,
                )
                ledger.put_record(pool, "honorary_position", encode_record(bound))
        except DistributionError as exc:
            logger.warning("configure_honorary_position rejected pool=%s code=%s: %s", pool, exc.code, exc.message)
            raise
        logger.info(
            "%s pool=%s position=%s treasury=%s",
            Event.HONORARY_POSITION_CONFIGURED.value, pool, position, quote_treasury,
        )
        return bound

    # -- Crank ---------------------------------------------------------------

    def crank_distribution(self, params: CrankParams, accounts: CrankAccounts) -> CrankOutcome:
        """Process one page. Raises ``DistributionError`` with no effects on rejection."""
        pool = accounts.pool
        try:
            with self._ledger.atomic() as ledger:
                outcome = self._crank(ledger, params, accounts)
        except DistributionError as exc:
            logger.warning(
                "crank rejected pool=%s cursor=%d code=%s: %s",
                pool, params.expected_page_cursor, exc.code, exc.message,
            )
            raise
        for event in outcome.events:
            _log_event(event)
        return outcome

    def crank_encoded(self, data: bytes, accounts: CrankAccounts) -> CrankOutcome:
        """``crank_distribution`` for a serialized crank instruction.

        Raises ``ValueError`` for malformed instruction bytes or a page longer
        than ``max_investors_per_page``.
        """
        params = decode_crank_params(data, max_entries=self._cfg.max_investors_per_page)
        return self.crank_distribution(params, accounts)

    def _crank(self, ledger: InMemoryLedger, params: CrankParams, accounts: CrankAccounts) -> CrankOutcome:
        policy = self.policy(accounts.pool)
        bound = self.honorary_position(accounts.pool)
        progress = self.progress(accounts.pool)
        now = ledger.now()
        limits = {"day_seconds": self._cfg.day_seconds, "max_investors_per_page": self._cfg.max_investors_per_page}

        opening = precheck(policy, bound, progress, params, accounts, now=now, **limits)
        if bound is None:
            raise HonoraryPositionNotReady("honorary position not configured")

        # The claim moves tokens on the node and cannot be rolled back, so every
        # investor check runs first; only claim purity is judged after it.
        readings = [self._oracle.read(entry.vesting_ref, now=now) for entry in params.page]
        destinations: Dict[str, Optional[TokenAccount]] = {
            entry.destination: ledger.token(entry.destination) for entry in params.page
        }
        validate_page(policy, params, readings, destinations)

        claim: Optional[FeeClaim] = None
        base_before = base_after = 0
        if opening:
            base_before = ledger.balance(bound.base_fee_check)
            claim = self._gateway.claim_fees(
                position=bound.position,
                quote_treasury=bound.quote_treasury,
                base_fee_check=bound.base_fee_check,
            )
            base_after = ledger.balance(bound.base_fee_check)

        outcome = crank_or_raise(
            policy, bound, progress, params, accounts,
            now=now,
            claim=claim,
            readings=readings,
            destinations=destinations,
            base_before=base_before,
            base_after=base_after,
            **limits,
        )

        for transfer in outcome.transfers:
            ledger.transfer(bound.quote_treasury, transfer.destination, transfer.amount)
        ledger.put_record(policy.pool, "progress", encode_record(outcome.progress))
        logger.debug(
            "progress pool=%s cursor=%d digest=%s",
            policy.pool, outcome.progress.page_cursor, record_digest(outcome.progress),
        )
        return outcome


def _require_token(ledger: InMemoryLedger, address: str, *, name: str) -> TokenAccount:
    acct = ledger.token(address)
    if acct is None:
        raise AccountMismatch(f"{name} {address} does not exist")
    return acct


def _log_event(event: EventRecord) -> None:
    details = " ".join(f"{k}={v}" for k, v in event.fields)
    logger.info("%s pool=%s %s", event.event.value, event.pool, details)


def plan_pages(entries: Sequence[PageEntry], *, page_size: int) -> Tuple[CrankParams, ...]:
    """Split one day's investor list into cursor-ordered crank calls.

    An empty list still yields a single (empty) last page so the day closes.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    chunks = [tuple(entries[i:i + page_size]) for i in range(0, len(entries), page_size)] or [()]
    return tuple(
        CrankParams(expected_page_cursor=i, is_last_page=(i == len(chunks) - 1), page=chunk)
        for i, chunk in enumerate(chunks)
    )


def run_day(
    distributor: Distributor,
    accounts: CrankAccounts,
    entries: Sequence[PageEntry],
    *,
    page_size: Optional[int] = None,
) -> Tuple[CrankOutcome, ...]:
    """Crank one full day in order. The first rejection propagates."""
    size = page_size or distributor.config.max_investors_per_page
    pages = plan_pages(entries, page_size=size)
    if len(pages) > 1:
        logger.warning(
            "pool=%s day split into %d pages: early pages are sized against a partial locked total "
            "and can exhaust the investor pool before later pages run",
            accounts.pool, len(pages),
        )
    return tuple(distributor.crank_distribution(p, accounts) for p in pages)
