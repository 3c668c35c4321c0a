"""
Core module for pipebomb.

This module provides the foundational components used throughout the client:
    - exceptions: Custom exception classes for error handling
    - config: Option and configuration file loading and validation
    - logger: Logging setup with console and file outputs

Usage:
    from pipebomb.core import (
        PipeBombConfig, load_config,
        setup_logging, get_logger,
        PipeBombError, ResponseError, ServerOfflineError
    )
"""

from pipebomb.core.config import (
    ClientConfig,
    PipeBombConfig,
    ServerConfig,
    load_config,
)
from pipebomb.core.exceptions import (
    AuthenticationError,
    CollectionDeletedError,
    ConfigError,
    FederationError,
    InvalidResponseError,
    PipeBombError,
    ResponseError,
    ServerOfflineError,
)
from pipebomb.core.logger import (
    get_logger,
    log_refresh_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "ClientConfig",
    "PipeBombConfig",
    "ServerConfig",
    "load_config",
    # Exceptions
    "PipeBombError",
    "ConfigError",
    "ResponseError",
    "InvalidResponseError",
    "CollectionDeletedError",
    "FederationError",
    "ServerOfflineError",
    "AuthenticationError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_refresh_failure",
    "shutdown_logging",
]
