"""
In-memory ledger runtime.

Holds the external accounts the distributor reads and moves tokens between
(token accounts, pools, positions, vesting contracts) and the per-pool
versioned records (policy, honorary position, progress).

Every state-changing call of the distributor runs inside ``atomic()``: the
ledger is locked (re-entrant, single writer) and snapshotted, and any exception
restores the snapshot before it propagates. Account snapshots are frozen
dataclasses and records are bytes, so a shallow copy of each table is a full
snapshot.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterator, Optional, Tuple

from ..state.accounts import PoolAccount, PositionAccount, TokenAccount, VestingContract
from ..state.canonical import canonical_json_bytes, sha256_hex

RECORD_KINDS = ("policy", "honorary_position", "progress")


class LedgerError(RuntimeError):
    """Ledger-level failure (missing account, mint mismatch, insufficient funds)."""


_Snapshot = Tuple[
    Dict[str, TokenAccount],
    Dict[str, PoolAccount],
    Dict[str, PositionAccount],
    Dict[str, VestingContract],
    Dict[Tuple[str, str], bytes],
    int,
]


class InMemoryLedger:
    def __init__(self, *, now: int = 0) -> None:
        self._lock = threading.RLock()
        self._tokens: Dict[str, TokenAccount] = {}
        self._pools: Dict[str, PoolAccount] = {}
        self._positions: Dict[str, PositionAccount] = {}
        self._vesting: Dict[str, VestingContract] = {}
        self._records: Dict[Tuple[str, str], bytes] = {}
        self._now = int(now)

    # -- Clock ---------------------------------------------------------------

    def now(self) -> int:
        return self._now

    def set_now(self, now: int) -> None:
        with self._lock:
            self._now = int(now)

    def advance(self, seconds: int) -> int:
        with self._lock:
            self._now += int(seconds)
            return self._now

    # -- Accounts ------------------------------------------------------------

    def add_token_account(self, account: TokenAccount) -> TokenAccount:
        with self._lock:
            if account.address in self._tokens:
                raise LedgerError(f"token account exists: {account.address}")
            self._tokens[account.address] = account
            return account

    def add_pool(self, pool: PoolAccount) -> PoolAccount:
        with self._lock:
            self._pools[pool.address] = pool
            return pool

    def add_position(self, position: PositionAccount) -> PositionAccount:
        with self._lock:
            self._positions[position.address] = position
            return position

    def add_vesting(self, contract: VestingContract) -> VestingContract:
        with self._lock:
            self._vesting[contract.address] = contract
            return contract

    def token(self, address: str) -> Optional[TokenAccount]:
        return self._tokens.get(address)

    def pool(self, address: str) -> Optional[PoolAccount]:
        return self._pools.get(address)

    def position(self, address: str) -> Optional[PositionAccount]:
        return self._positions.get(address)

    def vesting(self, address: str) -> Optional[VestingContract]:
        return self._vesting.get(address)

    def balance(self, address: str) -> int:
        """Balance of a token account (0 if it does not exist)."""
        acct = self._tokens.get(address)
        return acct.amount if acct is not None else 0

    def _require_token(self, address: str) -> TokenAccount:
        acct = self._tokens.get(address)
        if acct is None:
            raise LedgerError(f"unknown token account: {address}")
        return acct

    def _require_position(self, address: str) -> PositionAccount:
        pos = self._positions.get(address)
        if pos is None:
            raise LedgerError(f"unknown position: {address}")
        return pos

    def credit(self, address: str, amount: int) -> None:
        """Mint *amount* into a token account."""
        if amount < 0:
            raise LedgerError(f"credit amount must be non-negative: {amount}")
        with self._lock:
            acct = self._require_token(address)
            self._tokens[address] = replace(acct, amount=acct.amount + amount)

    def transfer(self, source: str, destination: str, amount: int) -> None:
        if amount < 0:
            raise LedgerError(f"transfer amount must be non-negative: {amount}")
        with self._lock:
            src = self._require_token(source)
            dst = self._require_token(destination)
            if src.mint != dst.mint:
                raise LedgerError(f"mint mismatch: {source} ({src.mint}) -> {destination} ({dst.mint})")
            if src.amount < amount:
                raise LedgerError(f"insufficient funds in {source}: {src.amount} < {amount}")
            if source == destination:
                return
            self._tokens[source] = replace(src, amount=src.amount - amount)
            self._tokens[destination] = replace(dst, amount=dst.amount + amount)

    def accrue_fees(self, position: str, *, quote: int = 0, base: int = 0) -> None:
        """Simulate trading activity accruing fees on *position*."""
        if quote < 0 or base < 0:
            raise LedgerError("accrued fees must be non-negative")
        with self._lock:
            pos = self._require_position(position)
            self._positions[position] = replace(
                pos,
                pending_quote_fee=pos.pending_quote_fee + quote,
                pending_base_fee=pos.pending_base_fee + base,
            )

    def take_pending_fees(self, position: str) -> Tuple[int, int]:
        """Zero the position's pending fees and return ``(quote, base)``."""
        with self._lock:
            pos = self._require_position(position)
            self._positions[position] = replace(pos, pending_quote_fee=0, pending_base_fee=0)
            return pos.pending_quote_fee, pos.pending_base_fee

    def withdraw_vested(self, vesting_ref: str, amount: int) -> None:
        """Record a withdrawal from a vesting contract (tokens leave the stream)."""
        with self._lock:
            contract = self._vesting.get(vesting_ref)
            if contract is None:
                raise LedgerError(f"unknown vesting contract: {vesting_ref}")
            if amount < 0 or amount > contract.claimable(self._now):
                raise LedgerError(f"withdrawal {amount} exceeds claimable amount")
            self._vesting[vesting_ref] = replace(contract, withdrawn=contract.withdrawn + amount)

    # -- Records -------------------------------------------------------------

    def get_record(self, pool: str, kind: str) -> Optional[bytes]:
        if kind not in RECORD_KINDS:
            raise ValueError(f"unknown record kind: {kind}")
        return self._records.get((pool, kind))

    def put_record(self, pool: str, kind: str, data: bytes) -> None:
        if kind not in RECORD_KINDS:
            raise ValueError(f"unknown record kind: {kind}")
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("record must be bytes")
        with self._lock:
            self._records[(pool, kind)] = bytes(data)

    # -- Atomicity -----------------------------------------------------------

    def snapshot(self) -> _Snapshot:
        with self._lock:
            return (
                dict(self._tokens),
                dict(self._pools),
                dict(self._positions),
                dict(self._vesting),
                dict(self._records),
                self._now,
            )

    def restore(self, snap: _Snapshot) -> None:
        with self._lock:
            tokens, pools, positions, vesting, records, now = snap
            self._tokens = dict(tokens)
            self._pools = dict(pools)
            self._positions = dict(positions)
            self._vesting = dict(vesting)
            self._records = dict(records)
            self._now = now

    @contextmanager
    def atomic(self) -> Iterator["InMemoryLedger"]:
        """All-or-nothing block: any exception rolls the ledger back."""
        with self._lock:
            snap = self.snapshot()
            try:
                yield self
            except BaseException:
                self.restore(snap)
                raise

    def state_digest(self) -> str:
        """sha256 over a canonical dump of every account and record."""
        with self._lock:
            doc: Dict[str, Any] = {
                "tokens": {k: [v.mint, v.owner, v.amount] for k, v in self._tokens.items()},
                "pools": {
                    k: [v.base_mint, v.quote_mint, v.collect_fee_mode.value] for k, v in self._pools.items()
                },
                "positions": {
                    k: [v.pool, v.pending_quote_fee, v.pending_base_fee, v.liquidity]
                    for k, v in self._positions.items()
                },
                "vesting": {k: [v.total_deposited, v.withdrawn] for k, v in self._vesting.items()},
                "records": {f"{pool}/{kind}": data.hex() for (pool, kind), data in self._records.items()},
                "now": self._now,
            }
            return sha256_hex(canonical_json_bytes(doc))
