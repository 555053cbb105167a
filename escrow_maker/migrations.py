"""
Schema upgraders for the configuration document.

1. `migrate_flat_config`: pre-network documents (flat ``apiKey`` /
   ``publicKey`` / ``secretKey`` / ``baseUrl*``) become ``networks.testnet``.
2. `migrate_keys_to_wallets`: bare per-network key pairs become wallet
   ``main``.

Both check a precondition first and do nothing once the document has
converged, so `run_migrations` is called on every resolution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from .errors import StorageError
from .networks import DEFAULT_NETWORK, initialize_networks, network_template
from .store import ConfigStore

log = logging.getLogger(__name__)

LEGACY_FIELDS = ("apiKey", "publicKey", "secretKey", "baseUrlLocal", "baseUrlDev")

MIGRATED_WALLET_NAME = "main"
MIGRATED_WALLET_ALIAS = "Main Wallet"


@dataclass(frozen=True)
class MigrationReport:
    flat_migrated: bool = False
    wallets_migrated: bool = False

    @property
    def changed(self) -> bool:
        return self.flat_migrated or self.wallets_migrated


def _has_legacy_fields(document: Dict[str, Any]) -> bool:
    return any(document.get(key) for key in LEGACY_FIELDS)


def migrate_flat_config(store: ConfigStore) -> bool:
    """Move legacy flat fields into ``networks.testnet``.

    Returns True only when legacy data was moved. A document with neither
    ``networks`` nor legacy fields just gets the default templates.
    """
    document = store.load()
    if isinstance(document.get("networks"), dict):
        return False
    if not _has_legacy_fields(document):
        initialize_networks(store)
        return False

    try:
        backup_path = store.backup()
    except StorageError as e:
        log.warning("Could not back up configuration before migration: %s", e)
        backup_path = None

    testnet = network_template("testnet")
    for key in ("apiKey", "publicKey", "secretKey"):
        testnet[key] = document.get(key) or ""
    for key in ("baseUrlLocal", "baseUrlDev"):
        testnet[key] = document.get(key) or testnet[key]

    migrated = {key: value for key, value in document.items() if key not in LEGACY_FIELDS}
    migrated["networks"] = {"testnet": testnet, "mainnet": network_template("mainnet")}
    migrated["defaultNetwork"] = DEFAULT_NETWORK
    store.save(migrated)

    if backup_path:
        log.info("Configuration migrated successfully to the multi-network format. Backup saved to %s", backup_path)
    else:
        log.info("Configuration migrated successfully to the multi-network format.")
    return True


def migrate_keys_to_wallets(store: ConfigStore) -> bool:
    document = store.load()
    networks = document.get("networks")
    if not isinstance(networks, dict):
        return False

    changed = False
    for name, entry in networks.items():
        if not isinstance(entry, dict):
            continue
        public_key = entry.get("publicKey")
        secret_key = entry.get("secretKey")
        if not (public_key and secret_key) or entry.get("wallets"):
            continue
        entry["wallets"] = {
            MIGRATED_WALLET_NAME: {
                "alias": MIGRATED_WALLET_ALIAS,
                "publicKey": public_key,
                "secretKey": secret_key,
            }
        }
        entry["defaultWallet"] = MIGRATED_WALLET_NAME
        changed = True
        log.info("Migrated keys for network %s to wallet '%s'", name, MIGRATED_WALLET_NAME)

    if changed:
        store.save(document)
    return changed


def run_migrations(store: ConfigStore) -> MigrationReport:
    flat = migrate_flat_config(store)
    wallets = migrate_keys_to_wallets(store)
    return MigrationReport(flat_migrated=flat, wallets_migrated=wallets)


__all__ = [
    "LEGACY_FIELDS",
    "MigrationReport",
    "migrate_flat_config",
    "migrate_keys_to_wallets",
    "run_migrations",
]
