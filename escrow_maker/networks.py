"""
escrow_maker.networks
=====================

Per-network settings backed by deterministic templates.

Every read goes through `NetworkRegistry.lookup`, which returns either the
stored entry or a synthesized template, tagged so callers decide explicitly
whether to persist it. Only writes (`set_field`, `set_test_default`, ...)
persist anything, with the one exception of the first-run initialization
when the document has no ``networks`` map at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from stellar_sdk import Network

from .errors import ConfigInvalidError, InvalidNetworkError
from .store import ConfigStore

log = logging.getLogger(__name__)

SUPPORTED_NETWORKS: Tuple[str, ...] = ("testnet", "mainnet")
DEFAULT_NETWORK = "testnet"

TEST_DEFAULT_FIELDS: Tuple[str, ...] = (
    "amount",
    "disputeSplit",
    "milestoneIndex",
    "milestones",
    "multiAmounts",
)
_INT_TEST_DEFAULT_MIN = {"amount": 1, "milestoneIndex": 0, "milestones": 1}
_INT_TEST_DEFAULTS = frozenset(_INT_TEST_DEFAULT_MIN)

_KNOWN = {
    "testnet": {
        "networkPassphrase": Network.TESTNET_NETWORK_PASSPHRASE,
        "horizonUrl": "https://horizon-testnet.stellar.org",
        "baseUrlLocal": "http://localhost:3000",
        "baseUrlDev": "https://dev.api.trustlesswork.com",
    },
    "mainnet": {
        "networkPassphrase": Network.PUBLIC_NETWORK_PASSPHRASE,
        "horizonUrl": "https://horizon.stellar.org",
        "baseUrlLocal": "http://localhost:3000",
        "baseUrlDev": "https://api.trustlesswork.com",
    },
}

# Dev/test deployments cap transaction sizes; unknown networks get placeholders.
_KNOWN_TEST_DEFAULTS = {
    "amount": 1000,
    "disputeSplit": "50:50",
    "milestoneIndex": 0,
    "milestones": 2,
    "multiAmounts": "500,500",
}
_OTHER_TEST_DEFAULTS = {
    "amount": 100000000,
    "disputeSplit": "50:50",
    "milestoneIndex": 0,
    "milestones": 2,
    "multiAmounts": "50000000,50000000",
}


def network_template(name: str) -> Dict[str, Any]:
    """Return a fresh template entry for `name`."""
    known = _KNOWN.get(name, {})
    return {
        "name": name,
        "networkPassphrase": known.get("networkPassphrase", ""),
        "apiKey": "",
        "publicKey": "",
        "secretKey": "",
        "horizonUrl": known.get("horizonUrl", ""),
        "rpcUrl": "",
        "baseUrlLocal": known.get("baseUrlLocal", ""),
        "baseUrlDev": known.get("baseUrlDev", ""),
        "wallets": {},
        "defaultWallet": None,
        "testDefaults": dict(_KNOWN_TEST_DEFAULTS if name in _KNOWN else _OTHER_TEST_DEFAULTS),
    }


def validate_network_name(name: str) -> str:
    if name not in SUPPORTED_NETWORKS:
        raise InvalidNetworkError(name, SUPPORTED_NETWORKS)
    return name


def seed_networks(document: Dict[str, Any]) -> None:
    document["networks"] = {name: network_template(name) for name in SUPPORTED_NETWORKS}
    if not document.get("defaultNetwork"):
        document["defaultNetwork"] = DEFAULT_NETWORK


def stored_networks(document: Dict[str, Any]) -> Dict[str, Any]:
    """The ``networks`` map, or an empty one when it is absent or not a JSON object."""
    networks = document.get("networks")
    return networks if isinstance(networks, dict) else {}


def initialize_networks(store: ConfigStore) -> bool:
    """Add both templates and the default pointer if ``networks`` is absent.

    A ``networks`` value that is not a JSON object counts as absent and is replaced.
    """
    document = store.load()
    networks = document.get("networks")
    if isinstance(networks, dict):
        return False
    if networks is not None:
        log.warning("Replacing malformed networks value (%s) with templates", type(networks).__name__)
    seed_networks(document)
    store.save(document)
    log.debug("initialized network templates")
    return True


@dataclass(frozen=True)
class TestDefaults:
    """Canned values used by the test workflows."""

    __test__ = False  # not a pytest class

    amount: int
    dispute_split: str
    milestone_index: int
    milestones: int
    multi_amounts: str

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], network: str) -> "TestDefaults":
        merged = dict(network_template(network)["testDefaults"])
        if isinstance(data, dict):
            merged.update({k: v for k, v in data.items() if v is not None})
        try:
            return cls(
                amount=int(merged["amount"]),
                dispute_split=str(merged["disputeSplit"]),
                milestone_index=int(merged["milestoneIndex"]),
                milestones=int(merged["milestones"]),
                multi_amounts=str(merged["multiAmounts"]),
            )
        except (TypeError, ValueError) as e:
            raise ConfigInvalidError(f"Invalid {network}.testDefaults: {e}") from None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "disputeSplit": self.dispute_split,
            "milestoneIndex": self.milestone_index,
            "milestones": self.milestones,
            "multiAmounts": self.multi_amounts,
        }

    def split_ratio(self) -> Tuple[int, int]:
        return parse_split(self.dispute_split)

    def amounts(self) -> List[int]:
        return parse_amounts(self.multi_amounts)


def parse_split(text: str) -> Tuple[int, int]:
    """Parse ``"P:Q"`` where both parts are non-negative and sum to 100."""
    parts = str(text).strip().split(":")
    if len(parts) != 2:
        raise ConfigInvalidError(f'Invalid split "{text}": expected "P:Q", e.g. "50:50"')
    try:
        first, second = int(parts[0]), int(parts[1])
    except ValueError:
        raise ConfigInvalidError(f'Invalid split "{text}": both parts must be integers') from None
    if first < 0 or second < 0 or first + second != 100:
        raise ConfigInvalidError(f'Invalid split "{text}": parts must be non-negative and sum to 100')
    return first, second


def parse_amounts(text: str) -> List[int]:
    """Parse a comma-separated list of positive integer amounts."""
    out: List[int] = []
    for chunk in str(text).split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            value = int(chunk)
        except ValueError:
            raise ConfigInvalidError(f'Invalid amount "{chunk}" in "{text}"') from None
        if value <= 0:
            raise ConfigInvalidError(f'Invalid amount "{chunk}" in "{text}": must be positive')
        out.append(value)
    if not out:
        raise ConfigInvalidError(f'No amounts found in "{text}"')
    return out


class NetworkLookup(NamedTuple):
    name: str
    entry: Dict[str, Any]
    stored: bool


class NetworkRegistry:
    """Read/write access to ``document["networks"]``. Reloads on every call."""

    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def lookup(self, name: str) -> NetworkLookup:
        document = self.store.load()
        if not isinstance(document.get("networks"), dict):
            initialize_networks(self.store)
            document = self.store.load()
        entry = stored_networks(document).get(name)
        if isinstance(entry, dict):
            return NetworkLookup(name, entry, True)
        return NetworkLookup(name, network_template(name), False)

    def get(self, name: str) -> Dict[str, Any]:
        return self.lookup(name).entry

    def names(self) -> List[str]:
        return list(stored_networks(self.store.load()))

    def _write(self, name: str, mutate) -> Dict[str, Any]:
        document = self.store.load()
        if not isinstance(document.get("networks"), dict):
            seed_networks(document)
        networks = document["networks"]
        entry = networks.get(name)
        if not isinstance(entry, dict):
            entry = network_template(name)
            networks[name] = entry
        mutate(entry)
        self.store.save(document)
        return entry

    def set_field(self, name: str, field: str, value: Any) -> Dict[str, Any]:
        def _set(entry: Dict[str, Any]) -> None:
            entry[field] = value

        return self._write(name, _set)

    def unset_field(self, name: str, field: str) -> Dict[str, Any]:
        template = network_template(name)

        def _reset(entry: Dict[str, Any]) -> None:
            if field in template:
                entry[field] = template[field]
            else:
                entry.pop(field, None)

        return self._write(name, _reset)

    def set_test_default(self, name: str, field: str, value: Any) -> Dict[str, Any]:
        if field not in TEST_DEFAULT_FIELDS:
            raise ConfigInvalidError(
                f'Unknown test default "{field}". Valid fields: {", ".join(TEST_DEFAULT_FIELDS)}'
            )
        if field in _INT_TEST_DEFAULTS:
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise ConfigInvalidError(f'testDefaults.{field} must be an integer, got "{value}"') from None
            floor = _INT_TEST_DEFAULT_MIN[field]
            if value < floor:
                raise ConfigInvalidError(f"testDefaults.{field} must be at least {floor}, got {value}")
        elif field == "disputeSplit":
            parse_split(value)
        elif field == "multiAmounts":
            parse_amounts(value)

        def _set(entry: Dict[str, Any]) -> None:
            defaults = entry.get("testDefaults")
            if not isinstance(defaults, dict):
                defaults = dict(network_template(name)["testDefaults"])
                entry["testDefaults"] = defaults
            defaults[field] = value

        return self._write(name, _set)

    def test_defaults(self, name: str) -> TestDefaults:
        return TestDefaults.from_dict(self.get(name).get("testDefaults"), name)

    def get_default(self) -> Optional[str]:
        return self.store.load().get("defaultNetwork") or None

    def set_default(self, name: str) -> None:
        self.store.set_value("defaultNetwork", name)

    @staticmethod
    def is_configured(entry: Dict[str, Any]) -> bool:
        if not entry.get("apiKey"):
            return False
        wallets = entry.get("wallets")
        if isinstance(wallets, dict) and wallets:
            return True
        return bool(entry.get("publicKey") and entry.get("secretKey"))


__all__ = [
    "SUPPORTED_NETWORKS",
    "DEFAULT_NETWORK",
    "TEST_DEFAULT_FIELDS",
    "network_template",
    "validate_network_name",
    "seed_networks",
    "stored_networks",
    "initialize_networks",
    "TestDefaults",
    "parse_split",
    "parse_amounts",
    "NetworkLookup",
    "NetworkRegistry",
]
