"""Deploy payload literals for single- and multi-release escrows."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

PLATFORM_FEE = 5  # percent

USDC_TRUSTLINE = {
    "symbol": "USDC",
    "address": "GBBD47IF6LWK7P7MDEVSCWR7DPUWV3NY3DTQEVFL4NAT4AQH3ZLLFLA5",
}

SINGLE_RELEASE_AMOUNT = 100000000  # 10 USDC, 7 decimals
MULTI_RELEASE_AMOUNTS = (500, 500)


def engagement_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}"


def _flags() -> Dict[str, bool]:
    return {"disputed": False, "released": False, "resolved": False, "approved": False}


def single_release_payload(
    public_key: str,
    *,
    amount: int = SINGLE_RELEASE_AMOUNT,
    dispute_resolver: Optional[str] = None,
    title: str = "Escrow from CLI",
    description: str = "Single-release escrow created via Escrow-Maker CLI",
    milestone: str = "Project completion",
    engagement_prefix: str = "ENG-SINGLE-CLI",
) -> Dict[str, Any]:
    """Every role is `public_key` except an optional separate dispute resolver."""
    return {
        "signer": public_key,
        "engagementId": engagement_id(engagement_prefix),
        "title": title,
        "description": description,
        "roles": {
            "approver": public_key,
            "serviceProvider": public_key,
            "platformAddress": public_key,
            "releaseSigner": public_key,
            "disputeResolver": dispute_resolver or public_key,
            "receiver": public_key,
        },
        "amount": int(amount),
        "platformFee": PLATFORM_FEE,
        "milestones": [
            {"description": milestone, "status": "pending", "evidence": "", "approved": False},
        ],
        "trustline": dict(USDC_TRUSTLINE),
    }


def multi_release_payload(
    public_key: str,
    amounts: Sequence[int] = MULTI_RELEASE_AMOUNTS,
    *,
    dispute_resolver: Optional[str] = None,
    descriptions: Optional[Sequence[str]] = None,
    title: str = "Multi-Release Escrow from CLI",
    description: str = "Multi-release escrow created via Escrow-Maker CLI",
    engagement_prefix: str = "ENG-MULTI-CLI",
) -> Dict[str, Any]:
    """Multi-release roles carry no receiver; each milestone has its own."""
    milestones: List[Dict[str, Any]] = []
    for index, amount in enumerate(amounts):
        label = descriptions[index] if descriptions and index < len(descriptions) else f"Milestone {index + 1}"
        milestones.append(
            {
                "description": label,
                "status": "pending",
                "evidence": "",
                "amount": int(amount),
                "receiver": public_key,
                "flags": _flags(),
            }
        )
    return {
        "signer": public_key,
        "engagementId": engagement_id(engagement_prefix),
        "title": title,
        "description": description,
        "roles": {
            "approver": public_key,
            "serviceProvider": public_key,
            "platformAddress": public_key,
            "releaseSigner": public_key,
            "disputeResolver": dispute_resolver or public_key,
        },
        "platformFee": PLATFORM_FEE,
        "milestones": milestones,
        "trustline": dict(USDC_TRUSTLINE),
    }


def split_distributions(address: str, amount: int, split: Sequence[int]) -> List[Dict[str, Any]]:
    """Two-way dispute distribution; the first share is floored, the second takes the rest."""
    first = (int(amount) * int(split[0])) // 100
    return [
        {"address": address, "amount": first},
        {"address": address, "amount": int(amount) - first},
    ]


__all__ = [
    "PLATFORM_FEE",
    "USDC_TRUSTLINE",
    "engagement_id",
    "single_release_payload",
    "multi_release_payload",
    "split_distributions",
]
