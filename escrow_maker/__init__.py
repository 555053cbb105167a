"""
escrow-maker (Python)
Command-line client for escrow contracts on the Stellar ledger.

The CLI asks a remote escrow API for unsigned transaction envelopes, signs
them locally with the configured wallet, and submits them to the API relay.
"""

from .version import __version__  # noqa: F401

from .config import ConfigOptions, ResolvedContext, resolve_config, resolve_config_for_wallet  # noqa: F401
from .errors import (  # noqa: F401
    ApiError,
    ConfigInvalidError,
    ConfigMissingError,
    EscrowCliError,
    SigningError,
    StorageError,
)
from .store import ConfigStore, JsonFileStore, MemoryStore  # noqa: F401
