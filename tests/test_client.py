import json

import httpx
import pytest
import respx

from escrow_maker.client import EscrowClient, EscrowType
from escrow_maker.errors import ApiError
from escrow_maker.payloads import (
    PLATFORM_FEE,
    USDC_TRUSTLINE,
    multi_release_payload,
    single_release_payload,
    split_distributions,
)

BASE = "https://api.test"
PUB = "G" + "A" * 55


@pytest.fixture
def client():
    with EscrowClient(BASE + "/", "API-KEY") as api:
        yield api


@respx.mock
def test_fund_sends_headers_and_payload(client: EscrowClient) -> None:
    route = respx.post(f"{BASE}/escrow/single-release/fund-escrow").mock(
        return_value=httpx.Response(200, json={"unsignedTransaction": "AAAA"})
    )

    assert client.fund(EscrowType.SINGLE, "C1", signer=PUB, amount="1000") == "AAAA"

    request = route.calls.last.request
    assert request.headers["x-api-key"] == "API-KEY"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {"contractId": "C1", "signer": PUB, "amount": 1000}


@respx.mock
def test_milestone_index_is_sent_as_string(client: EscrowClient) -> None:
    route = respx.post(f"{BASE}/escrow/multi-release/approve-milestone").mock(
        return_value=httpx.Response(200, json={"unsignedTransaction": "AAAA"})
    )
    client.approve_milestone(EscrowType.MULTI, "C1", milestone_index=1, approver=PUB)
    assert json.loads(route.calls.last.request.content)["milestoneIndex"] == "1"


@respx.mock
def test_error_response_keeps_message_status_and_details(client: EscrowClient) -> None:
    body = {"message": "Escrow not found", "statusCode": 404}
    respx.post(f"{BASE}/escrow/single-release/release-funds").mock(return_value=httpx.Response(404, json=body))

    with pytest.raises(ApiError) as excinfo:
        client.release_funds("C1", release_signer=PUB)

    err = excinfo.value
    assert err.message == "Escrow not found"
    assert err.status_code == 404
    assert err.details == body
    assert err.endpoint == "/escrow/single-release/release-funds"
    assert str(err) == "API request failed (/escrow/single-release/release-funds) [HTTP 404]: Escrow not found"


@respx.mock
def test_error_list_messages_are_joined(client: EscrowClient) -> None:
    respx.post(f"{BASE}/deployer/single-release").mock(
        return_value=httpx.Response(400, json={"message": ["amount must be positive", "title is required"]})
    )
    with pytest.raises(ApiError, match="amount must be positive; title is required"):
        client.deploy(EscrowType.SINGLE, {})


@respx.mock
def test_non_json_error_falls_back_to_status(client: EscrowClient) -> None:
    respx.post(f"{BASE}/escrow/single-release/dispute-escrow").mock(
        return_value=httpx.Response(502, text="upstream down")
    )
    with pytest.raises(ApiError) as excinfo:
        client.dispute_escrow("C1", signer=PUB)
    assert excinfo.value.message == "HTTP 502 Bad Gateway"
    assert excinfo.value.details == "upstream down"


@respx.mock
def test_missing_unsigned_transaction(client: EscrowClient) -> None:
    respx.post(f"{BASE}/deployer/multi-release").mock(return_value=httpx.Response(200, json={"ok": True}))
    with pytest.raises(ApiError, match="unsignedTransaction"):
        client.deploy(EscrowType.MULTI, {})


@respx.mock
def test_relay_returns_status_and_contract_id(client: EscrowClient) -> None:
    route = respx.post(f"{BASE}/helper/send-transaction").mock(
        return_value=httpx.Response(200, json={"status": "SUCCESS", "contractId": "CABC"})
    )

    result = client.send_transaction("SIGNED")

    assert result.status == "SUCCESS"
    assert result.contract_id == "CABC"
    assert json.loads(route.calls.last.request.content) == {"signedXdr": "SIGNED"}


@respx.mock
def test_relay_without_status_is_an_error(client: EscrowClient) -> None:
    respx.post(f"{BASE}/helper/send-transaction").mock(return_value=httpx.Response(200, json={"hash": "x"}))
    with pytest.raises(ApiError, match="status"):
        client.send_transaction("SIGNED")


@respx.mock
def test_transport_error_becomes_api_error(client: EscrowClient) -> None:
    respx.post(f"{BASE}/helper/send-transaction").mock(side_effect=httpx.ConnectError("connection refused"))
    with pytest.raises(ApiError) as excinfo:
        client.send_transaction("SIGNED")
    assert excinfo.value.status_code is None
    assert "connection refused" in excinfo.value.message


def test_single_release_payload_shape() -> None:
    payload = single_release_payload(PUB, amount=1000, dispute_resolver="GRESOLVER")
    assert payload["signer"] == PUB
    assert payload["engagementId"].startswith("ENG-SINGLE-CLI-")
    assert payload["amount"] == 1000
    assert payload["platformFee"] == PLATFORM_FEE
    assert payload["trustline"] == USDC_TRUSTLINE
    assert payload["roles"]["disputeResolver"] == "GRESOLVER"
    assert payload["roles"]["receiver"] == PUB
    assert payload["milestones"] == [
        {"description": "Project completion", "status": "pending", "evidence": "", "approved": False}
    ]


def test_multi_release_payload_shape() -> None:
    payload = multi_release_payload(PUB, [500, 250])
    assert "receiver" not in payload["roles"]
    assert payload["roles"]["disputeResolver"] == PUB
    assert [m["amount"] for m in payload["milestones"]] == [500, 250]
    assert [m["description"] for m in payload["milestones"]] == ["Milestone 1", "Milestone 2"]
    assert payload["milestones"][0]["flags"] == {
        "disputed": False,
        "released": False,
        "resolved": False,
        "approved": False,
    }


def test_split_distributions_floors_the_first_share() -> None:
    assert split_distributions(PUB, 1001, (50, 50)) == [
        {"address": PUB, "amount": 500},
        {"address": PUB, "amount": 501},
    ]
