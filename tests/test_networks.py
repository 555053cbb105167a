import logging

import pytest
from stellar_sdk import Network

from escrow_maker.errors import ConfigInvalidError, InvalidNetworkError
from escrow_maker.networks import (
    SUPPORTED_NETWORKS,
    NetworkRegistry,
    TestDefaults,
    initialize_networks,
    network_template,
    parse_amounts,
    parse_split,
    validate_network_name,
)
from escrow_maker.store import MemoryStore


def test_known_templates() -> None:
    testnet = network_template("testnet")
    mainnet = network_template("mainnet")

    assert testnet["networkPassphrase"] == "Test SDF Network ; September 2015"
    assert testnet["networkPassphrase"] == Network.TESTNET_NETWORK_PASSPHRASE
    assert testnet["horizonUrl"] == "https://horizon-testnet.stellar.org"
    assert testnet["baseUrlDev"] == "https://dev.api.trustlesswork.com"
    assert testnet["baseUrlLocal"] == "http://localhost:3000"
    assert mainnet["networkPassphrase"] == "Public Global Stellar Network ; September 2015"
    assert mainnet["baseUrlDev"] == "https://api.trustlesswork.com"
    for entry in (testnet, mainnet):
        assert entry["apiKey"] == entry["publicKey"] == entry["secretKey"] == ""
        assert entry["wallets"] == {}
        assert entry["defaultWallet"] is None
        assert entry["testDefaults"] == {
            "amount": 1000,
            "disputeSplit": "50:50",
            "milestoneIndex": 0,
            "milestones": 2,
            "multiAmounts": "500,500",
        }


def test_unknown_template_is_empty_with_placeholder_defaults() -> None:
    entry = network_template("futurenet")
    assert entry["name"] == "futurenet"
    assert entry["networkPassphrase"] == ""
    assert entry["baseUrlDev"] == entry["baseUrlLocal"] == entry["horizonUrl"] == ""
    assert entry["testDefaults"]["amount"] == 100000000
    assert entry["testDefaults"]["multiAmounts"] == "50000000,50000000"


def test_templates_are_fresh_objects() -> None:
    first = network_template("testnet")
    first["wallets"]["x"] = {}
    first["testDefaults"]["amount"] = 1
    second = network_template("testnet")
    assert second["wallets"] == {}
    assert second["testDefaults"]["amount"] == 1000


def test_validate_network_name() -> None:
    assert validate_network_name("mainnet") == "mainnet"
    with pytest.raises(InvalidNetworkError, match="futurenet"):
        validate_network_name("futurenet")


def test_initialize_networks_only_once() -> None:
    store = MemoryStore({"custom": 1})
    assert initialize_networks(store) is True
    document = store.load()
    assert set(document["networks"]) == set(SUPPORTED_NETWORKS)
    assert document["defaultNetwork"] == "testnet"
    assert document["custom"] == 1

    assert initialize_networks(store) is False
    assert len(store.saves) == 1


def test_initialize_keeps_existing_default_network() -> None:
    store = MemoryStore({"defaultNetwork": "mainnet"})
    initialize_networks(store)
    assert store.load()["defaultNetwork"] == "mainnet"


def test_lookup_initializes_missing_networks_map() -> None:
    store = MemoryStore()
    lookup = NetworkRegistry(store).lookup("testnet")
    assert lookup.stored is True
    assert lookup.entry["networkPassphrase"] == Network.TESTNET_NETWORK_PASSPHRASE
    assert len(store.saves) == 1


def test_lookup_synthesizes_without_persisting() -> None:
    store = MemoryStore({"networks": {"testnet": network_template("testnet")}})
    lookup = NetworkRegistry(store).lookup("mainnet")
    assert lookup.stored is False
    assert lookup.entry["networkPassphrase"] == Network.PUBLIC_NETWORK_PASSPHRASE
    assert store.saves == []
    assert "mainnet" not in store.load()["networks"]


def test_set_field_creates_entry_from_template() -> None:
    store = MemoryStore({"networks": {}})
    registry = NetworkRegistry(store)
    registry.set_field("mainnet", "apiKey", "KEY")

    entry = store.load()["networks"]["mainnet"]
    assert entry["apiKey"] == "KEY"
    assert entry["baseUrlDev"] == "https://api.trustlesswork.com"
    assert registry.lookup("mainnet").stored is True


def test_set_field_on_empty_document_seeds_both_networks() -> None:
    store = MemoryStore({"defaultNetwork": "mainnet"})
    NetworkRegistry(store).set_field("mainnet", "apiKey", "KEY")
    document = store.load()
    assert set(document["networks"]) == {"testnet", "mainnet"}
    assert document["defaultNetwork"] == "mainnet"


def test_unset_field_restores_template_value() -> None:
    store = MemoryStore()
    registry = NetworkRegistry(store)
    registry.set_field("testnet", "baseUrlDev", "https://x.example")
    registry.unset_field("testnet", "baseUrlDev")
    assert registry.get("testnet")["baseUrlDev"] == "https://dev.api.trustlesswork.com"


def test_set_test_default_coerces_integers() -> None:
    store = MemoryStore()
    registry = NetworkRegistry(store)
    registry.set_test_default("testnet", "amount", "2500")
    registry.set_test_default("testnet", "disputeSplit", "30:70")

    stored = store.load()["networks"]["testnet"]["testDefaults"]
    assert stored["amount"] == 2500
    assert stored["disputeSplit"] == "30:70"
    assert registry.test_defaults("testnet").split_ratio() == (30, 70)


@pytest.mark.parametrize(
    "field, value",
    [("amount", "lots"), ("disputeSplit", "60:60"), ("multiAmounts", "1,x"), ("unknown", "1")],
)
def test_set_test_default_rejects_bad_values(field: str, value: str) -> None:
    with pytest.raises(ConfigInvalidError):
        NetworkRegistry(MemoryStore()).set_test_default("testnet", field, value)


def test_test_defaults_fill_missing_keys_from_template() -> None:
    store = MemoryStore({"networks": {"testnet": {"name": "testnet", "testDefaults": {"amount": 7}}}})
    defaults = NetworkRegistry(store).test_defaults("testnet")
    assert defaults == TestDefaults(
        amount=7, dispute_split="50:50", milestone_index=0, milestones=2, multi_amounts="500,500"
    )
    assert defaults.amounts() == [500, 500]


def test_default_network_pointer_is_not_validated_on_write() -> None:
    store = MemoryStore()
    registry = NetworkRegistry(store)
    assert registry.get_default() is None
    registry.set_default("anything")
    assert registry.get_default() == "anything"


def test_is_configured() -> None:
    entry = network_template("testnet")
    assert NetworkRegistry.is_configured(entry) is False
    entry["apiKey"] = "KEY"
    assert NetworkRegistry.is_configured(entry) is False
    entry["wallets"] = {"main": {"publicKey": "G", "secretKey": "S"}}
    assert NetworkRegistry.is_configured(entry) is True


def test_parse_split_and_amounts() -> None:
    assert parse_split(" 25:75 ") == (25, 75)
    for bad in ("50", "a:b", "40:50", "-10:110"):
        with pytest.raises(ConfigInvalidError):
            parse_split(bad)
    assert parse_amounts("100, 200,300") == [100, 200, 300]
    with pytest.raises(ConfigInvalidError):
        parse_amounts("")
    with pytest.raises(ConfigInvalidError):
        parse_amounts("100,0")


def test_malformed_networks_value_is_replaced_on_lookup(caplog) -> None:
    store = MemoryStore({"networks": ["testnet"], "defaultNetwork": "mainnet"})
    registry = NetworkRegistry(store)

    with caplog.at_level(logging.WARNING, logger="escrow_maker.networks"):
        lookup = registry.lookup("testnet")

    assert lookup.stored is True
    assert lookup.entry["networkPassphrase"] == Network.TESTNET_NETWORK_PASSPHRASE
    assert "malformed networks value" in caplog.text
    assert registry.names() == ["testnet", "mainnet"]
    assert store.document["defaultNetwork"] == "mainnet"


def test_names_ignores_malformed_networks_value() -> None:
    assert NetworkRegistry(MemoryStore({"networks": "oops"})).names() == []


def test_malformed_entry_is_synthesized_from_template() -> None:
    store = MemoryStore({"networks": {"testnet": "oops", "mainnet": network_template("mainnet")}})
    lookup = NetworkRegistry(store).lookup("testnet")
    assert lookup.stored is False
    assert lookup.entry["baseUrlDev"] == "https://dev.api.trustlesswork.com"


def test_malformed_test_defaults() -> None:
    assert TestDefaults.from_dict(["amount"], "testnet").amount == 1000
    with pytest.raises(ConfigInvalidError, match="testnet.testDefaults"):
        TestDefaults.from_dict({"amount": "lots"}, "testnet")


def test_is_configured_ignores_non_map_wallets() -> None:
    entry = network_template("testnet")
    entry.update(apiKey="KEY", wallets=["main"])
    assert NetworkRegistry.is_configured(entry) is False


@pytest.mark.parametrize(
    "field, value",
    [("amount", "0"), ("amount", "-5"), ("milestones", "0"), ("milestoneIndex", "-1")],
)
def test_set_test_default_rejects_out_of_range_integers(field: str, value: str) -> None:
    store = MemoryStore()
    with pytest.raises(ConfigInvalidError, match=f"testDefaults.{field} must be at least"):
        NetworkRegistry(store).set_test_default("testnet", field, value)
    assert store.saves == []


def test_set_test_default_accepts_first_milestone_index() -> None:
    registry = NetworkRegistry(MemoryStore())
    registry.set_test_default("testnet", "milestoneIndex", "0")
    registry.set_test_default("testnet", "milestones", "1")
    defaults = registry.test_defaults("testnet")
    assert (defaults.milestone_index, defaults.milestones) == (0, 1)
