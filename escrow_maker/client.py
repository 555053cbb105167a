"""
HTTP client for the remote escrow API (sync, httpx).

Every transactional endpoint answers with ``{"unsignedTransaction": <xdr>}``;
the signed envelope then goes to the relay at ``/helper/send-transaction``.
Calls are not retried: a repeated deploy or fund is not idempotent.

Example:
    with EscrowClient(ctx.base_url, ctx.api_key) as api:
        xdr = api.fund(EscrowType.SINGLE, contract_id, signer=ctx.public_key, amount=1000)
        result = api.send_transaction(sign_transaction(xdr, ctx.secret_key, ctx.network_passphrase))
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .errors import ApiError
from .version import __version__

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
RELAY_PATH = "/helper/send-transaction"


class EscrowType(str, enum.Enum):
    SINGLE = "single-release"
    MULTI = "multi-release"


@dataclass
class RelayResult:
    status: str
    contract_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def _error_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, list) and value:
                return "; ".join(str(v) for v in value)
    return fallback


@dataclass
class EscrowClient:
    """Thin wrapper over the escrow REST endpoints."""

    base_url: str
    api_key: str
    timeout: float = DEFAULT_TIMEOUT
    _client: Any = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={
                "x-api-key": self.api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": f"escrow-maker/{__version__}",
            },
        )

    def __repr__(self) -> str:
        return f"EscrowClient(base_url={self.base_url!r}, timeout={self.timeout!r})"

    def __enter__(self) -> "EscrowClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    # --- transport -------------------------------------------------------

    def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST `payload` as JSON; return the decoded object or raise ApiError."""
        log.debug("POST %s%s", self.base_url, path)
        try:
            r = self._client.post(path, content=json.dumps(payload))
        except httpx.HTTPError as e:
            raise ApiError(message=str(e) or e.__class__.__name__, endpoint=path) from e

        try:
            body = r.json()
        except ValueError:
            body = None

        if r.is_error:
            raise ApiError(
                message=_error_message(body, f"HTTP {r.status_code} {r.reason_phrase}".strip()),
                endpoint=path,
                status_code=r.status_code,
                details=body if body is not None else (r.text[:512] or None),
            )
        if not isinstance(body, dict):
            raise ApiError(
                message="Response is not a JSON object",
                endpoint=path,
                status_code=r.status_code,
                details=r.text[:512] or None,
            )
        return body

    def _unsigned(self, path: str, payload: Dict[str, Any]) -> str:
        body = self.post(path, payload)
        xdr = body.get("unsignedTransaction")
        if not isinstance(xdr, str) or not xdr:
            raise ApiError(
                message="Response did not include unsignedTransaction",
                endpoint=path,
                details=body,
            )
        return xdr

    # --- endpoints -------------------------------------------------------

    def deploy(self, escrow_type: EscrowType, payload: Dict[str, Any]) -> str:
        return self._unsigned(f"/deployer/{EscrowType(escrow_type).value}", payload)

    def fund(self, escrow_type: EscrowType, contract_id: str, *, signer: str, amount: int) -> str:
        return self._unsigned(
            f"/escrow/{EscrowType(escrow_type).value}/fund-escrow",
            {"contractId": contract_id, "signer": signer, "amount": int(amount)},
        )

    def approve_milestone(
        self, escrow_type: EscrowType, contract_id: str, *, milestone_index: int, approver: str
    ) -> str:
        return self._unsigned(
            f"/escrow/{EscrowType(escrow_type).value}/approve-milestone",
            {"contractId": contract_id, "milestoneIndex": str(milestone_index), "approver": approver},
        )

    def change_milestone_status(
        self,
        escrow_type: EscrowType,
        contract_id: str,
        *,
        milestone_index: int,
        new_status: str,
        new_evidence: str,
        service_provider: str,
    ) -> str:
        return self._unsigned(
            f"/escrow/{EscrowType(escrow_type).value}/change-milestone-status",
            {
                "contractId": contract_id,
                "milestoneIndex": str(milestone_index),
                "newStatus": new_status,
                "newEvidence": new_evidence,
                "serviceProvider": service_provider,
            },
        )

    def release_funds(self, contract_id: str, *, release_signer: str) -> str:
        return self._unsigned(
            "/escrow/single-release/release-funds",
            {"contractId": contract_id, "releaseSigner": release_signer},
        )

    def release_milestone_funds(self, contract_id: str, *, milestone_index: int, release_signer: str) -> str:
        return self._unsigned(
            "/escrow/multi-release/release-milestone-funds",
            {"contractId": contract_id, "milestoneIndex": str(milestone_index), "releaseSigner": release_signer},
        )

    def dispute_escrow(self, contract_id: str, *, signer: str) -> str:
        return self._unsigned(
            "/escrow/single-release/dispute-escrow",
            {"contractId": contract_id, "signer": signer},
        )

    def dispute_milestone(self, contract_id: str, *, milestone_index: int, signer: str) -> str:
        return self._unsigned(
            "/escrow/multi-release/dispute-milestone",
            {"contractId": contract_id, "milestoneIndex": str(milestone_index), "signer": signer},
        )

    def resolve_dispute(
        self, contract_id: str, *, dispute_resolver: str, distributions: List[Dict[str, Any]]
    ) -> str:
        return self._unsigned(
            "/escrow/single-release/resolve-dispute",
            {"contractId": contract_id, "disputeResolver": dispute_resolver, "distributions": distributions},
        )

    def resolve_milestone_dispute(
        self,
        contract_id: str,
        *,
        milestone_index: int,
        dispute_resolver: str,
        distributions: List[Dict[str, Any]],
    ) -> str:
        return self._unsigned(
            "/escrow/multi-release/resolve-milestone-dispute",
            {
                "contractId": contract_id,
                "milestoneIndex": str(milestone_index),
                "disputeResolver": dispute_resolver,
                "distributions": distributions,
            },
        )

    def send_transaction(self, signed_xdr: str) -> RelayResult:
        body = self.post(RELAY_PATH, {"signedXdr": signed_xdr})
        status = body.get("status")
        if not status:
            raise ApiError(message="Relay response did not include status", endpoint=RELAY_PATH, details=body)
        return RelayResult(status=str(status), contract_id=body.get("contractId"), raw=body)


__all__ = ["EscrowClient", "EscrowType", "RelayResult", "DEFAULT_TIMEOUT", "RELAY_PATH"]
