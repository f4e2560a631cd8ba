"""
Distributor configuration.

Sources, in order of precedence: explicit ``DistributorConfig(...)`` values,
``load_config(path)`` (YAML mapping), ``DistributorConfig.from_env()``
(``HQF_*`` variables), then the defaults below.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Tuple

import yaml

from ..core.engine import DEFAULT_MAX_INVESTORS_PER_PAGE
from ..core.types import DAY_SECONDS
from .gateway import InMemoryFeeClaimGateway
from .interfaces import FeeClaimGateway, LockedAmountOracle
from .ledger import InMemoryLedger
from .rpc_client import LedgerTcpClient, LedgerTcpConfig, RpcFeeClaimGateway, RpcLockedAmountOracle
from .vesting import InMemoryLockedAmountOracle

BACKENDS = ("memory", "rpc")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name, "")
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DistributorConfig:
    # Minimum seconds between two day openings.
    day_seconds: int = DAY_SECONDS
    # Per-call work bound (investors per page).
    max_investors_per_page: int = DEFAULT_MAX_INVESTORS_PER_PAGE

    # Collaborator backend: "memory" (in-process doubles) or "rpc" (ledger node over TCP).
    backend: str = "memory"
    rpc_host: str = "127.0.0.1"
    rpc_port: int = 65432
    rpc_timeout_s: float = 3.0

    # Admin signature policy: the policy authority is a BLS pubkey and admin calls must be signed.
    require_authority_signature: bool = False
    # Binds admin signatures to one deployment.
    chain_id: str = "hqf-local"

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not isinstance(self.day_seconds, int) or isinstance(self.day_seconds, bool) or self.day_seconds <= 0:
            raise ValueError("day_seconds must be a positive int")
        if (
            not isinstance(self.max_investors_per_page, int)
            or isinstance(self.max_investors_per_page, bool)
            or self.max_investors_per_page <= 0
        ):
            raise ValueError("max_investors_per_page must be a positive int")
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}: {self.backend!r}")
        if not isinstance(self.rpc_port, int) or not (0 <= self.rpc_port <= 65535):
            raise ValueError("invalid rpc_port")
        if not isinstance(self.rpc_timeout_s, (int, float)) or self.rpc_timeout_s <= 0:
            raise ValueError("rpc_timeout_s must be positive")
        if not isinstance(self.chain_id, str) or not self.chain_id:
            raise ValueError("chain_id must be a non-empty string")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}: {self.log_level!r}")

    @classmethod
    def from_env(cls) -> "DistributorConfig":
        d = cls()
        return cls(
            day_seconds=_env_int("HQF_DAY_SECONDS", d.day_seconds, lo=1, hi=365 * DAY_SECONDS),
            max_investors_per_page=_env_int("HQF_MAX_INVESTORS_PER_PAGE", d.max_investors_per_page, lo=1, hi=4096),
            backend=_env_str("HQF_BACKEND", d.backend),
            rpc_host=_env_str("HQF_RPC_HOST", d.rpc_host),
            rpc_port=_env_int("HQF_RPC_PORT", d.rpc_port, lo=1, hi=65535),
            rpc_timeout_s=float(_env_int("HQF_RPC_TIMEOUT_S", int(d.rpc_timeout_s), lo=1, hi=600)),
            require_authority_signature=_env_bool("HQF_REQUIRE_AUTHORITY_SIGNATURE", d.require_authority_signature),
            chain_id=_env_str("HQF_CHAIN_ID", d.chain_id),
            log_level=_env_str("HQF_LOG_LEVEL", d.log_level).upper(),
        )

    @classmethod
    def from_mapping(cls, obj: Mapping[str, Any]) -> "DistributorConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(obj) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {unknown}")
        return cls(**dict(obj))

    def tcp_config(self) -> LedgerTcpConfig:
        return LedgerTcpConfig(host=self.rpc_host, port=self.rpc_port, timeout_s=self.rpc_timeout_s)


def load_config(path: str | Path) -> DistributorConfig:
    """Read a YAML mapping of ``DistributorConfig`` fields."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return DistributorConfig()
    if not isinstance(obj, Mapping):
        raise TypeError("config YAML must be a mapping")
    return DistributorConfig.from_mapping(obj)


def configure_logging(config: DistributorConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def make_collaborators(
    config: DistributorConfig, ledger: InMemoryLedger
) -> Tuple[FeeClaimGateway, LockedAmountOracle]:
    if config.backend == "rpc":
        client = LedgerTcpClient(config.tcp_config())
        return RpcFeeClaimGateway(client, ledger), RpcLockedAmountOracle(client)
    return InMemoryFeeClaimGateway(ledger), InMemoryLockedAmountOracle(ledger)
