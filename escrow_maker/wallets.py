"""
Named key pairs per network, stored under ``networks.<name>.wallets``.

The registry keeps the ``defaultWallet`` pointer consistent on add/remove;
`set_default` is the only call that refuses a dangling pointer outright.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ConfigInvalidError, NetworkNotFoundError, WalletError, WalletNotFoundError
from .networks import network_template, seed_networks, stored_networks
from .store import ConfigStore

log = logging.getLogger(__name__)

PUBLIC_KEY_RE = re.compile(r"^G[A-Z0-9]{55}$")
SECRET_KEY_RE = re.compile(r"^S[A-Z0-9]{55}$")


def is_public_key(value: Optional[str]) -> bool:
    return bool(value) and PUBLIC_KEY_RE.match(value) is not None


def is_secret_key(value: Optional[str]) -> bool:
    return bool(value) and SECRET_KEY_RE.match(value) is not None


def validate_public_key(value: str) -> str:
    if not is_public_key(value):
        raise ConfigInvalidError('Invalid public key format: must start with "G" and be 56 characters long')
    return value


def validate_secret_key(value: str) -> str:
    if not is_secret_key(value):
        raise ConfigInvalidError('Invalid secret key format: must start with "S" and be 56 characters long')
    return value


@dataclass
class Wallet:
    alias: str
    public_key: str
    secret_key: str

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "Wallet":
        return cls(
            alias=data.get("alias") or name,
            public_key=data.get("publicKey") or "",
            secret_key=data.get("secretKey") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"alias": self.alias, "publicKey": self.public_key, "secretKey": self.secret_key}

    def validate(self) -> "Wallet":
        """Raise if either key is missing or malformed."""
        if not self.public_key or not self.secret_key:
            raise WalletError("Wallet must have both publicKey and secretKey")
        validate_public_key(self.public_key)
        validate_secret_key(self.secret_key)
        return self


def _wallet_map(entry: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    wallets = (entry or {}).get("wallets")
    return wallets if isinstance(wallets, dict) else {}


class WalletRegistry:
    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def _entry(self, network: str) -> Optional[Dict[str, Any]]:
        entry = stored_networks(self.store.load()).get(network)
        return entry if isinstance(entry, dict) else None

    def list(self, network: str) -> Dict[str, Wallet]:
        wallets = _wallet_map(self._entry(network))
        return {name: Wallet.from_dict(name, data) for name, data in wallets.items() if isinstance(data, dict)}

    def get(self, network: str, name: str) -> Optional[Wallet]:
        data = _wallet_map(self._entry(network)).get(name)
        return Wallet.from_dict(name, data) if isinstance(data, dict) else None

    def add(
        self,
        network: str,
        name: str,
        *,
        public_key: str,
        secret_key: str,
        alias: Optional[str] = None,
    ) -> Wallet:
        """Store a wallet (overwriting one with the same name).

        The first wallet on a network without a default becomes the default.
        """
        if not public_key or not secret_key:
            raise WalletError("Wallet must have both publicKey and secretKey")
        wallet = Wallet(alias=alias or name, public_key=public_key, secret_key=secret_key)

        document = self.store.load()
        if not isinstance(document.get("networks"), dict):
            seed_networks(document)
        networks = document["networks"]
        entry = networks.get(network)
        if not isinstance(entry, dict):
            entry = network_template(network)
            networks[network] = entry
        wallets = entry.get("wallets")
        if not isinstance(wallets, dict):
            wallets = {}
            entry["wallets"] = wallets
        wallets[name] = wallet.to_dict()
        if len(wallets) == 1 and not entry.get("defaultWallet"):
            entry["defaultWallet"] = name
            log.debug("wallet %s is now the default for %s", name, network)
        self.store.save(document)
        return wallet

    def remove(self, network: str, name: str) -> bool:
        document = self.store.load()
        entry = stored_networks(document).get(network)
        if not isinstance(entry, dict):
            return False
        wallets = _wallet_map(entry)
        if name not in wallets:
            return False
        del wallets[name]
        entry["wallets"] = wallets
        if entry.get("defaultWallet") == name:
            entry["defaultWallet"] = next(iter(wallets), None)
        self.store.save(document)
        return True

    def default_name(self, network: str) -> Optional[str]:
        name = (self._entry(network) or {}).get("defaultWallet")
        return name if isinstance(name, str) and name else None

    def get_default(self, network: str) -> Optional[Wallet]:
        name = self.default_name(network)
        return self.get(network, name) if name else None

    def set_default(self, network: str, name: str) -> None:
        document = self.store.load()
        entry = stored_networks(document).get(network)
        if not isinstance(entry, dict):
            raise NetworkNotFoundError(network)
        if name not in _wallet_map(entry):
            raise WalletNotFoundError(network, name)
        entry["defaultWallet"] = name
        self.store.save(document)


__all__ = [
    "PUBLIC_KEY_RE",
    "SECRET_KEY_RE",
    "is_public_key",
    "is_secret_key",
    "validate_public_key",
    "validate_secret_key",
    "Wallet",
    "WalletRegistry",
]
