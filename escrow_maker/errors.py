"""
Typed error classes for the escrow CLI.

Raised by the config store, registries, resolver, signer and API client so the
command boundary can translate each failure kind into a message and an exit
code while callers can still catch the base `EscrowCliError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

__all__ = [
    "EscrowCliError",
    "ConfigMissingError",
    "ConfigInvalidError",
    "InvalidNetworkError",
    "NetworkNotFoundError",
    "WalletError",
    "WalletNotFoundError",
    "StorageError",
    "ApiError",
    "SigningError",
    "ConfirmationRequired",
]


class EscrowCliError(Exception):
    """Base class for all escrow CLI errors."""


@dataclass
class ConfigMissingError(EscrowCliError):
    """
    Raised when required settings are still absent after full resolution.

    Fields:
      - network: network the resolution was scoped to
      - missing: every missing field name (never just the first one)
      - hints: remediation commands, one per line
      - env: API environment when the missing field depends on it
    """

    network: str
    missing: List[str]
    hints: List[str] = field(default_factory=list)
    env: Optional[str] = None

    def __str__(self) -> str:
        scope = f'network "{self.network}"'
        if self.env:
            scope += f' and environment "{self.env}"'
        lines = [f"Missing required configuration for {scope}: {', '.join(self.missing)}"]
        if self.hints:
            lines.append("")
            lines.append("To configure it, run:")
            lines.extend(f"  {hint}" for hint in self.hints)
        return "\n".join(lines)


class ConfigInvalidError(EscrowCliError):
    """Raised for malformed settings: base URL scheme, key formats, split ratios."""


class InvalidNetworkError(ConfigInvalidError):
    """Raised when a network name is outside the supported set."""

    def __init__(self, network: str, supported: tuple[str, ...]) -> None:
        super().__init__(f'Invalid network: "{network}". Valid networks: {", ".join(supported)}')
        self.network = network
        self.supported = supported


class NetworkNotFoundError(ConfigInvalidError):
    """Raised when an operation requires a network entry that is not stored."""

    def __init__(self, network: str) -> None:
        super().__init__(f"Network '{network}' not found")
        self.network = network


class WalletError(ConfigInvalidError):
    """Raised when wallet data is incomplete."""


class WalletNotFoundError(WalletError):
    def __init__(self, network: str, wallet: str) -> None:
        super().__init__(f"Wallet '{wallet}' not found in network '{network}'")
        self.network = network
        self.wallet = wallet


@dataclass
class StorageError(EscrowCliError):
    """Raised when the config file exists but cannot be read, parsed or written."""

    path: str
    reason: str
    action: str = "read"

    def __str__(self) -> str:
        return f"Failed to {self.action} configuration at '{self.path}': {self.reason}"


@dataclass
class ApiError(EscrowCliError):
    """
    Raised when the escrow API or the relay answers with a failure.

    Fields:
      - message: server-supplied message when available, else the transport error
      - endpoint: path that was called
      - status_code: HTTP status if a response arrived
      - details: full server payload for operator debugging
    """

    message: str
    endpoint: Optional[str] = None
    status_code: Optional[int] = None
    details: Optional[Any] = None

    def __str__(self) -> str:
        where = f" ({self.endpoint})" if self.endpoint else ""
        status = f" [HTTP {self.status_code}]" if self.status_code is not None else ""
        return f"API request failed{where}{status}: {self.message}"


class SigningError(EscrowCliError):
    """Raised when an envelope cannot be signed (bad secret, bad XDR, no passphrase)."""


class ConfirmationRequired(EscrowCliError):
    """Raised when a destructive action needs an explicit confirmation flag.

    The CLI treats this as a benign early exit (status 0).
    """
