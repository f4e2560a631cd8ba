"""
Ledger integration layer: distributor shell, collaborators, config.
"""

from .config import DistributorConfig, configure_logging, load_config, make_collaborators
from .distributor import Distributor, plan_pages, run_day
from .gateway import InMemoryFeeClaimGateway
from .interfaces import FeeClaimGateway, LockedAmountOracle
from .ledger import InMemoryLedger, LedgerError
from .rpc_client import LedgerRpcError, LedgerTcpClient, LedgerTcpConfig
from .vesting import InMemoryLockedAmountOracle

__all__ = [
    "DistributorConfig",
    "configure_logging",
    "load_config",
    "make_collaborators",
    "Distributor",
    "plan_pages",
    "run_day",
    "InMemoryFeeClaimGateway",
    "FeeClaimGateway",
    "LockedAmountOracle",
    "InMemoryLedger",
    "LedgerError",
    "LedgerRpcError",
    "LedgerTcpClient",
    "LedgerTcpConfig",
    "InMemoryLockedAmountOracle",
]
