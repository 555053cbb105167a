import json
from pathlib import Path

import httpx
import pytest
import respx
from stellar_sdk import Keypair, Network, TransactionEnvelope
from typer.testing import CliRunner

from escrow_maker.cli.main import app

runner = CliRunner()

BASE = "https://api.test"
RELAY = f"{BASE}/helper/send-transaction"


def run_cli(args, config_file: Path):
    return runner.invoke(app, ["--config-file", str(config_file), *args])


@pytest.fixture
def configured(config_path: Path, main_keypair: Keypair, resolver_keypair: Keypair) -> Path:
    """testnet pointed at BASE, with `main` (default) and `resolver` wallets."""
    for args in (
        ["config", "set", "testnet.apiKey", "API-KEY-123"],
        ["config", "set", "testnet.baseUrlDev", BASE],
        ["wallet", "add", "main", "--public", main_keypair.public_key, "--secret", main_keypair.secret],
        ["wallet", "add", "resolver", "--public", resolver_keypair.public_key, "--secret", resolver_keypair.secret],
    ):
        result = run_cli(args, config_path)
        assert result.exit_code == 0, result.output
    return config_path


def test_missing_configuration_lists_everything(config_path: Path) -> None:
    result = run_cli(["fund", "CCONTRACT"], config_path)
    assert result.exit_code == 1
    assert '✗ Error: Missing required configuration for network "testnet"' in result.output
    assert "wallet or publicKey, wallet or secretKey, apiKey" in result.output
    assert "To configure it, run:" in result.output


@respx.mock
def test_fund_signs_and_relays(configured: Path, main_keypair: Keypair, make_unsigned_xdr) -> None:
    fund = respx.post(f"{BASE}/escrow/single-release/fund-escrow").mock(
        return_value=httpx.Response(200, json={"unsignedTransaction": make_unsigned_xdr(main_keypair.public_key)})
    )
    relay = respx.post(RELAY).mock(return_value=httpx.Response(200, json={"status": "SUCCESS"}))

    result = run_cli(["fund", "CCONTRACT"], configured)

    assert result.exit_code == 0, result.output
    assert "Funding escrow CCONTRACT..." in result.output
    assert "Amount: 1000 stroops" in result.output
    assert "✓ Transaction sent: SUCCESS" in result.output
    request = fund.calls.last.request
    assert request.headers["x-api-key"] == "API-KEY-123"
    assert json.loads(request.content) == {"contractId": "CCONTRACT", "signer": main_keypair.public_key, "amount": 1000}
    signed = json.loads(relay.calls.last.request.content)["signedXdr"]
    envelope = TransactionEnvelope.from_xdr(signed, Network.TESTNET_NETWORK_PASSPHRASE)
    assert envelope.signatures[0].signature_hint == main_keypair.signature_hint()


@respx.mock
def test_deploy_single_prints_contract_id(configured: Path, main_keypair: Keypair, make_unsigned_xdr) -> None:
    deploy = respx.post(f"{BASE}/deployer/single-release").mock(
        return_value=httpx.Response(200, json={"unsignedTransaction": make_unsigned_xdr(main_keypair.public_key)})
    )
    respx.post(RELAY).mock(return_value=httpx.Response(200, json={"status": "SUCCESS", "contractId": "CNEW"}))

    result = run_cli(["deploy-single"], configured)

    assert result.exit_code == 0, result.output
    assert "Contract ID: CNEW" in result.output
    payload = json.loads(deploy.calls.last.request.content)
    assert payload["amount"] == 100000000
    assert payload["platformFee"] == 5
    assert payload["trustline"]["symbol"] == "USDC"


@respx.mock
def test_release_multi_uses_milestone_endpoint(configured: Path, main_keypair: Keypair, make_unsigned_xdr) -> None:
    route = respx.post(f"{BASE}/escrow/multi-release/release-milestone-funds").mock(
        return_value=httpx.Response(200, json={"unsignedTransaction": make_unsigned_xdr(main_keypair.public_key)})
    )
    respx.post(RELAY).mock(return_value=httpx.Response(200, json={"status": "SUCCESS"}))

    result = run_cli(["release", "CCONTRACT", "--type", "multi-release", "--milestone", "1"], configured)

    assert result.exit_code == 0, result.output
    assert json.loads(route.calls.last.request.content)["milestoneIndex"] == "1"


@respx.mock
def test_api_error_shows_details(configured: Path) -> None:
    respx.post(f"{BASE}/escrow/single-release/dispute-escrow").mock(
        return_value=httpx.Response(400, json={"message": "Escrow already in dispute", "statusCode": 400})
    )

    result = run_cli(["dispute", "CCONTRACT"], configured)

    assert result.exit_code == 1
    assert "✗ Error: API request failed" in result.output
    assert "Escrow already in dispute" in result.output
    assert "API Error Details:" in result.output
    assert '"statusCode": 400' in result.output


def test_sign_prints_signed_envelope(configured: Path, resolver_keypair: Keypair, make_unsigned_xdr) -> None:
    unsigned = make_unsigned_xdr(resolver_keypair.public_key)

    result = run_cli(["sign", unsigned, "--wallet", "resolver"], configured)

    assert result.exit_code == 0, result.output
    signed = result.output.strip().splitlines()[-1]
    envelope = TransactionEnvelope.from_xdr(signed, Network.TESTNET_NETWORK_PASSPHRASE)
    assert envelope.signatures[0].signature_hint == resolver_keypair.signature_hint()
    assert "MAINNET" not in result.output


def test_sign_rejects_garbage(configured: Path) -> None:
    result = run_cli(["sign", "bm90LWFuLWVudmVsb3Bl"], configured)
    assert result.exit_code == 1
    assert "✗ Error: Failed to sign XDR" in result.output


def test_mainnet_commands_warn(config_path: Path, main_keypair: Keypair, make_unsigned_xdr) -> None:
    result = run_cli(
        [
            "sign",
            make_unsigned_xdr(main_keypair.public_key),
            "--network",
            "mainnet",
            "--api-key",
            "KEY",
            "--public-key",
            main_keypair.public_key,
            "--secret-key",
            main_keypair.secret,
        ],
        config_path,
    )
    assert result.exit_code == 0, result.output
    assert "WARNING: Using MAINNET - real funds will be used!" in result.output


@respx.mock
def test_single_dispute_workflow_uses_resolver_wallet(
    configured: Path, main_keypair: Keypair, resolver_keypair: Keypair, make_unsigned_xdr
) -> None:
    unsigned = make_unsigned_xdr(main_keypair.public_key)
    relay = respx.post(RELAY).mock(return_value=httpx.Response(200, json={"status": "SUCCESS", "contractId": "CDSP"}))
    respx.route(method="POST", url__startswith=BASE).mock(
        return_value=httpx.Response(200, json={"unsignedTransaction": unsigned})
    )

    result = run_cli(["test-single-dispute", "--split", "30:70", "--amount", "1000"], configured)

    assert result.exit_code == 0, result.output
    assert f"Resolver wallet: {resolver_keypair.public_key} (resolver)" in result.output
    assert "[4/4] Resolving dispute (resolver wallet): SUCCESS" in result.output
    assert "✓ Workflow completed: 4 steps" in result.output
    assert "Contract ID: CDSP" in result.output

    resolve = next(
        json.loads(call.request.content)
        for call in respx.calls
        if call.request.url.path == "/escrow/single-release/resolve-dispute"
    )
    assert [d["amount"] for d in resolve["distributions"]] == [300, 700]
    last_signed = json.loads(relay.calls.last.request.content)["signedXdr"]
    envelope = TransactionEnvelope.from_xdr(last_signed, Network.TESTNET_NETWORK_PASSPHRASE)
    assert envelope.signatures[0].signature_hint == resolver_keypair.signature_hint()


def test_dispute_workflow_needs_resolver_wallet(config_path: Path) -> None:
    pub, sec = "G" + "A" * 55, "S" + "A" * 55
    run_cli(["config", "set", "testnet.apiKey", "API-KEY-123"], config_path)
    run_cli(["wallet", "add", "main", "--public", pub, "--secret", sec], config_path)

    result = run_cli(["test-single-dispute"], config_path)

    assert result.exit_code == 1
    assert "Wallet 'resolver' not found in network 'testnet'" in result.output
