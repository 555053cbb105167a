"""
Configuration resolver.

Every command calls `resolve_config` (or `resolve_config_for_wallet` for a
second identity) to turn CLI options, ``ESCROW_*`` environment variables and
the stored document into one validated `ResolvedContext`.

Precedence:
  network     --network  > ESCROW_NETWORK    > defaultNetwork > "testnet"
  env         --env      > "dev"
  key pair    options    > environment       > wallet         > legacy entry keys
  apiKey      --api-key  > ESCROW_API_KEY    > entry apiKey
  baseUrl     --base-url > baseUrlDev (env=dev) / baseUrlLocal

A key pair is only taken from a source that supplies both halves.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Iterable, List, Mapping, NamedTuple, Optional

from .errors import ConfigInvalidError, ConfigMissingError, WalletNotFoundError
from .migrations import run_migrations
from .networks import DEFAULT_NETWORK, NetworkRegistry, TestDefaults, validate_network_name
from .store import ConfigStore, JsonFileStore
from .wallets import WalletRegistry, validate_public_key, validate_secret_key

log = logging.getLogger(__name__)

ENV_NETWORK = "ESCROW_NETWORK"
ENV_API_KEY = "ESCROW_API_KEY"
ENV_PUBLIC_KEY = "ESCROW_PUBLIC_KEY"
ENV_SECRET_KEY = "ESCROW_SECRET_KEY"

DEFAULT_ENV = "dev"


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim; blank counts as absent."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class ConfigOptions:
    """Per-invocation overrides, usually straight from CLI flags."""

    network: Optional[str] = None
    env: Optional[str] = None
    wallet: Optional[str] = None
    api_key: Optional[str] = None
    public_key: Optional[str] = None
    secret_key: Optional[str] = None
    base_url: Optional[str] = None


@dataclass(frozen=True)
class ResolvedContext:
    network: str
    network_passphrase: str
    api_key: str
    public_key: str
    secret_key: str
    base_url: str
    env: str
    horizon_url: str
    rpc_url: str
    test_defaults: TestDefaults
    wallet: Optional[str] = None
    credential_source: Optional[str] = None

    @property
    def is_mainnet(self) -> bool:
        return self.network == "mainnet"

    def __repr__(self) -> str:
        # keep secrets out of logs and tracebacks
        return (
            f"ResolvedContext(network={self.network!r}, env={self.env!r}, base_url={self.base_url!r}, "
            f"public_key={self.public_key!r}, wallet={self.wallet!r}, credential_source={self.credential_source!r})"
        )


class CredentialSource(NamedTuple):
    name: str
    public_key: Optional[str]
    secret_key: Optional[str]

    @property
    def complete(self) -> bool:
        return bool(self.public_key and self.secret_key)


def pick_credentials(sources: Iterable[CredentialSource]) -> Optional[CredentialSource]:
    """First source with both keys wins; partial pairs are skipped, never mixed."""
    for source in sources:
        if source.complete:
            return source
        if source.public_key or source.secret_key:
            log.debug("skipping incomplete key pair from %s", source.name)
    return None


def _resolve_network(options: ConfigOptions, environ: Mapping[str, str], networks: NetworkRegistry) -> str:
    name = (
        _clean(options.network)
        or _clean(environ.get(ENV_NETWORK))
        or _clean(networks.get_default())
        or DEFAULT_NETWORK
    )
    return validate_network_name(name)


def _resolve(
    options: ConfigOptions,
    store: ConfigStore,
    environ: Mapping[str, str],
    *,
    forced_wallet: Optional[str] = None,
) -> ResolvedContext:
    run_migrations(store)

    networks = NetworkRegistry(store)
    wallets = WalletRegistry(store)

    network = _resolve_network(options, environ, networks)
    entry = networks.lookup(network).entry
    env = (_clean(options.env) or DEFAULT_ENV).lower()

    sources: List[CredentialSource] = []
    wallet_name: Optional[str] = None
    if forced_wallet is not None:
        wallet = wallets.get(network, forced_wallet)
        if wallet is None:
            raise WalletNotFoundError(network, forced_wallet)
        wallet_name = forced_wallet
    else:
        sources.append(CredentialSource("options", _clean(options.public_key), _clean(options.secret_key)))
        sources.append(
            CredentialSource("environment", _clean(environ.get(ENV_PUBLIC_KEY)), _clean(environ.get(ENV_SECRET_KEY)))
        )
        explicit = _clean(options.wallet)
        if explicit:
            wallet = wallets.get(network, explicit)
            if wallet is None:
                log.warning("Wallet '%s' not found in network '%s'", explicit, network)
            wallet_name = explicit
        else:
            wallet_name = wallets.default_name(network)
            wallet = wallets.get(network, wallet_name) if wallet_name else None

    if wallet is not None:
        sources.append(CredentialSource(f"wallet:{wallet_name}", _clean(wallet.public_key), _clean(wallet.secret_key)))
    if forced_wallet is None:
        sources.append(CredentialSource("legacy", _clean(entry.get("publicKey")), _clean(entry.get("secretKey"))))

    chosen = pick_credentials(sources)
    public_key = chosen.public_key if chosen else None
    secret_key = chosen.secret_key if chosen else None

    api_key = _clean(options.api_key) or _clean(environ.get(ENV_API_KEY)) or _clean(entry.get("apiKey"))

    base_url = _clean(options.base_url)
    if not base_url:
        base_url = _clean(entry.get("baseUrlDev")) if env == "dev" else _clean(entry.get("baseUrlLocal"))

    # Validation stops at the first failure.
    if not base_url:
        raise ConfigMissingError(
            network=network,
            env=env,
            missing=["baseUrl"],
            hints=[
                f"escrow config set {network}.baseUrlDev <url>",
                f"escrow config set {network}.baseUrlLocal <url>",
                "or pass --base-url <url>",
            ],
        )
    if not base_url.startswith(("http://", "https://")):
        raise ConfigInvalidError(f'Invalid baseUrl "{base_url}": must start with http:// or https://')
    if public_key:
        validate_public_key(public_key)
    if secret_key:
        validate_secret_key(secret_key)

    missing: List[str] = []
    hints: List[str] = []
    if not public_key:
        missing.append("wallet or publicKey")
    if not secret_key:
        missing.append("wallet or secretKey")
    if missing:
        hints.append(f"escrow wallet add <name> --public <G...> --secret <S...> -n {network}")
        hints.append(f"escrow config set {network}.publicKey <value>")
        hints.append(f"escrow config set {network}.secretKey <value>")
    if not api_key:
        missing.append("apiKey")
        hints.append(f"escrow config set {network}.apiKey <value>")
    if missing or chosen is None:
        raise ConfigMissingError(network=network, missing=missing, hints=hints)

    return ResolvedContext(
        network=network,
        network_passphrase=(_clean(entry.get("networkPassphrase")) or ""),
        api_key=api_key,
        public_key=public_key,
        secret_key=secret_key,
        base_url=base_url,
        env=env,
        horizon_url=_clean(entry.get("horizonUrl")) or "",
        rpc_url=_clean(entry.get("rpcUrl")) or "",
        test_defaults=networks.test_defaults(network),
        wallet=chosen.name.split(":", 1)[1] if chosen.name.startswith("wallet:") else None,
        credential_source=chosen.name,
    )


def resolve_config(
    options: Optional[ConfigOptions] = None,
    *,
    store: Optional[ConfigStore] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ResolvedContext:
    """Build the validated context for the invocation's primary identity."""
    return _resolve(
        options or ConfigOptions(),
        store if store is not None else JsonFileStore(),
        os.environ if environ is None else environ,
    )


def resolve_config_for_wallet(
    options: Optional[ConfigOptions],
    wallet_name: str,
    *,
    store: Optional[ConfigStore] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ResolvedContext:
    """
    Resolve a context whose keys come only from `wallet_name`.

    Key overrides from options and ``ESCROW_PUBLIC_KEY``/``ESCROW_SECRET_KEY``
    are ignored so the second identity never borrows the first one's keys.
    Network, env, apiKey and baseUrl resolve as usual.
    """
    options = replace(options or ConfigOptions(), wallet=wallet_name, public_key=None, secret_key=None)
    return _resolve(
        options,
        store if store is not None else JsonFileStore(),
        os.environ if environ is None else environ,
        forced_wallet=wallet_name,
    )


__all__ = [
    "ConfigOptions",
    "ResolvedContext",
    "CredentialSource",
    "pick_credentials",
    "resolve_config",
    "resolve_config_for_wallet",
    "ENV_NETWORK",
    "ENV_API_KEY",
    "ENV_PUBLIC_KEY",
    "ENV_SECRET_KEY",
]
