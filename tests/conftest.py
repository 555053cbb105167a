from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from stellar_sdk import Account, Asset, Keypair, Network, TransactionBuilder

from escrow_maker.store import MemoryStore

ESCROW_ENV_VARS = (
    "ESCROW_NETWORK",
    "ESCROW_API_KEY",
    "ESCROW_PUBLIC_KEY",
    "ESCROW_SECRET_KEY",
    "ESCROW_CONFIG_FILE",
)


@pytest.fixture(autouse=True)
def clean_escrow_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ESCROW_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / ".escrow" / "config.json"


@pytest.fixture
def main_keypair() -> Keypair:
    return Keypair.random()


@pytest.fixture
def resolver_keypair() -> Keypair:
    return Keypair.random()


@pytest.fixture
def make_unsigned_xdr() -> Callable[[str], str]:
    """Build a real unsigned testnet envelope with `source` as the source account."""

    def _make(source: str) -> str:
        tx = (
            TransactionBuilder(
                source_account=Account(source, 1),
                network_passphrase=Network.TESTNET_NETWORK_PASSPHRASE,
                base_fee=100,
            )
            .append_payment_op(destination=Keypair.random().public_key, asset=Asset.native(), amount="10")
            .set_timeout(30)
            .build()
        )
        return tx.to_xdr()

    return _make
