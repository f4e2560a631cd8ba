"""
Ledger node RPC client (TCP line protocol).

Talks to a ledger node's TCP command interface: one command per connection,
terminated by CRLF, answered by a single newline-terminated line.

Commands:
- ``claimfees <position> <quote_treasury> <base_fee_check>`` -> ``CLAIMED: <quote> <base>``
- ``vesting <vesting_ref> <now>`` -> ``VESTING: {json}``
- ``getbalance <address>`` -> ``BALANCE: <amount>``

Any ``ERROR: ...`` line (or an unexpected reply) raises ``LedgerRpcError``.
"""

from __future__ import annotations

import json
import logging
import socket
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from ..core.types import FeeClaim, VestingReading
from .interfaces import FeeClaimGateway, LockedAmountOracle
from .ledger import InMemoryLedger

logger = logging.getLogger(__name__)


class LedgerRpcError(RuntimeError):
    pass


@dataclass(frozen=True)
class LedgerTcpConfig:
    host: str = "127.0.0.1"
    port: int = 65432
    timeout_s: float = 3.0
    # Upper bound on one reply line.
    recv_max_bytes: int = 1_048_576

    def __post_init__(self) -> None:
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port!r}")
        if isinstance(self.timeout_s, bool) or not isinstance(self.timeout_s, (int, float)) or self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0: {self.timeout_s!r}")
        if isinstance(self.recv_max_bytes, bool) or not isinstance(self.recv_max_bytes, int) or self.recv_max_bytes < 1:
            raise ValueError(f"recv_max_bytes must be >= 1: {self.recv_max_bytes!r}")


def _require_token(value: str, *, name: str) -> str:
    # Arguments travel space-separated on a single line.
    if not isinstance(value, str) or not value or any(ch.isspace() for ch in value):
        raise ValueError(f"{name} must be a non-empty string without whitespace")
    return value


def _parse_amount(raw: Any, *, name: str) -> int:
    if isinstance(raw, bool):
        raise LedgerRpcError(f"{name} must be an integer, got {raw!r}")
    if isinstance(raw, str):
        if not (raw.isascii() and raw.isdigit()):
            raise LedgerRpcError(f"{name} must be a non-negative integer, got {raw!r}")
        return int(raw)
    if not isinstance(raw, int) or raw < 0:
        raise LedgerRpcError(f"{name} must be a non-negative integer, got {raw!r}")
    return raw


def _expect_prefix(resp: str, prefix: str, *, cmd: str) -> str:
    if resp.startswith("ERROR:"):
        raise LedgerRpcError(f"{cmd} failed: {resp[len('ERROR:'):].strip()}")
    if not resp.startswith(prefix):
        raise LedgerRpcError(f"unexpected {cmd} response: {resp!r}")
    return resp[len(prefix):].strip()


class LedgerTcpClient:
    def __init__(self, config: LedgerTcpConfig = LedgerTcpConfig()) -> None:
        self._cfg = config

    def rpc(self, cmd: str) -> str:
        """Send one command line and return the node's single reply line (without CRLF)."""
        line = cmd.strip() if isinstance(cmd, str) else ""
        if not line:
            raise ValueError("cmd must be a non-empty string")
        verb = line.split(None, 1)[0]
        cfg = self._cfg
        try:
            with socket.create_connection((cfg.host, cfg.port), timeout=cfg.timeout_s) as sock:
                sock.sendall(f"{line}\r\n".encode("utf-8"))
                with sock.makefile("rb") as reader:
                    raw = reader.readline(cfg.recv_max_bytes)
        except socket.timeout as exc:
            raise LedgerRpcError(f"{verb}: no reply from {cfg.host}:{cfg.port} within {cfg.timeout_s}s") from exc
        except OSError as exc:
            raise LedgerRpcError(f"{verb}: {cfg.host}:{cfg.port} unreachable: {exc}") from exc

        if not raw.endswith(b"\n"):
            raise LedgerRpcError(f"{verb}: incomplete reply {raw[:80]!r}")
        return raw.rstrip(b"\r\n").decode("utf-8", errors="replace")

    def claim_fees(self, position: str, quote_treasury: str, base_fee_check: str) -> Tuple[int, int]:
        args = " ".join(
            _require_token(v, name=n)
            for n, v in (("position", position), ("quote_treasury", quote_treasury), ("base_fee_check", base_fee_check))
        )
        body = _expect_prefix(self.rpc(f"claimfees {args}").strip(), "CLAIMED:", cmd="claimfees")
        parts = body.split()
        if len(parts) != 2:
            raise LedgerRpcError(f"claimfees response must carry two amounts: {body!r}")
        return _parse_amount(parts[0], name="quote"), _parse_amount(parts[1], name="base")

    def vesting(self, vesting_ref: str, now: int) -> Dict[str, Any]:
        ref = _require_token(vesting_ref, name="vesting_ref")
        body = _expect_prefix(self.rpc(f"vesting {ref} {int(now)}").strip(), "VESTING:", cmd="vesting")
        try:
            obj = json.loads(body)
        except ValueError as exc:
            raise LedgerRpcError(f"vesting response is not JSON: {body!r}") from exc
        if not isinstance(obj, dict):
            raise LedgerRpcError("vesting response must be a JSON object")
        return obj

    def get_balance(self, address: str) -> int:
        addr = _require_token(address, name="address")
        body = _expect_prefix(self.rpc(f"getbalance {addr}").strip(), "BALANCE:", cmd="getbalance")
        return _parse_amount(body, name="balance")


def reading_from_json(obj: Mapping[str, Any], *, vesting_ref: str) -> VestingReading:
    def _str(key: str) -> str:
        v = obj.get(key)
        if not isinstance(v, str) or not v:
            raise LedgerRpcError(f"vesting field {key!r} must be a non-empty string")
        return v

    return VestingReading(
        vesting_ref=str(obj.get("vesting_ref", vesting_ref)),
        mint=_str("mint"),
        recipient=_str("recipient"),
        recipient_destination=_str("recipient_destination"),
        total_deposited=_parse_amount(obj.get("total_deposited"), name="total_deposited"),
        withdrawn=_parse_amount(obj.get("withdrawn"), name="withdrawn"),
        claimable=_parse_amount(obj.get("claimable"), name="claimable"),
    )


class RpcFeeClaimGateway(FeeClaimGateway):
    """
    Claims fees on a remote node.

    The node moves the tokens; the reported amounts are mirrored into the
    local working ledger so payouts can be made from the treasury.
    """

    def __init__(self, client: LedgerTcpClient, ledger: InMemoryLedger) -> None:
        self._client = client
        self._ledger = ledger

    def claim_fees(self, *, position: str, quote_treasury: str, base_fee_check: str) -> FeeClaim:
        quote, base = self._client.claim_fees(position, quote_treasury, base_fee_check)
        if quote:
            self._ledger.credit(quote_treasury, quote)
        if base:
            self._ledger.credit(base_fee_check, base)
        logger.debug("remote claim position=%s quote=%d base=%d", position, quote, base)
        return FeeClaim(quote_claimed=quote, base_fee_present=base > 0, base_claimed=base)


class RpcLockedAmountOracle(LockedAmountOracle):
    def __init__(self, client: LedgerTcpClient) -> None:
        self._client = client

    def read(self, vesting_ref: str, *, now: int) -> VestingReading:
        return reading_from_json(self._client.vesting(vesting_ref, now), vesting_ref=vesting_ref)
