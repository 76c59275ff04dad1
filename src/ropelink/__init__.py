"""ropelink package root."""

from ropelink.commands.catalog import Method
from ropelink.config import ClientConfig, load_client_config
from ropelink.exceptions import (
    CommandContractError,
    ConfigError,
    NotRunningError,
    ProcessSpawnFailure,
    RemoteFault,
    RopeLinkError,
    StaleHistoryError,
    TransportFailure,
    TransportTimeout,
)
from ropelink.operations import RefactorOperations, build_operations
from ropelink.session import Session, SessionManager, SessionState

__all__ = [
    "__version__",
    "ClientConfig",
    "CommandContractError",
    "ConfigError",
    "Method",
    "NotRunningError",
    "ProcessSpawnFailure",
    "RefactorOperations",
    "RemoteFault",
    "RopeLinkError",
    "Session",
    "SessionManager",
    "SessionState",
    "StaleHistoryError",
    "TransportFailure",
    "TransportTimeout",
    "build_operations",
    "load_client_config",
]

__version__ = "0.1.0"
