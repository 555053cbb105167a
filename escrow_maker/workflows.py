"""
Sequential multi-step escrow workflows.

Each step asks the API for an unsigned envelope, signs it locally with the
step's identity and submits it to the relay. Steps run strictly in order and
the first failure propagates; completed steps are not rolled back, so a
workflow that fails after funding leaves a funded escrow behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .client import EscrowClient, EscrowType, RelayResult
from .config import ResolvedContext
from .errors import ApiError, ConfigInvalidError
from .payloads import multi_release_payload, single_release_payload, split_distributions
from .signer import sign_transaction

log = logging.getLogger(__name__)

Reporter = Callable[[str], None]
ClientFactory = Callable[[ResolvedContext], EscrowClient]


def default_client_factory(ctx: ResolvedContext, timeout: Optional[float] = None) -> EscrowClient:
    if timeout is None:
        return EscrowClient(ctx.base_url, ctx.api_key)
    return EscrowClient(ctx.base_url, ctx.api_key, timeout=timeout)


def submit(client: EscrowClient, ctx: ResolvedContext, unsigned_xdr: str) -> RelayResult:
    """Sign `unsigned_xdr` as `ctx` and relay it."""
    signed = sign_transaction(unsigned_xdr, ctx.secret_key, ctx.network_passphrase)
    return client.send_transaction(signed)


def deploy(client: EscrowClient, ctx: ResolvedContext, escrow_type: EscrowType, payload: dict) -> RelayResult:
    result = submit(client, ctx, client.deploy(escrow_type, payload))
    if not result.contract_id:
        raise ApiError(message="Relay response did not include contractId", details=result.raw)
    return result


@dataclass
class WorkflowResult:
    contract_id: str
    steps: List[str] = field(default_factory=list)


class _Run:
    """Step counter and reporter shared by one workflow execution."""

    def __init__(self, total: int, report: Optional[Reporter]) -> None:
        self.total = total
        self.done = 0
        self.report = report or log.info
        self.steps: List[str] = []

    def step(self, label: str, action: Callable[[], RelayResult]) -> RelayResult:
        self.done += 1
        self.report(f"[{self.done}/{self.total}] {label}...")
        result = action()
        self.steps.append(label)
        self.report(f"[{self.done}/{self.total}] {label}: {result.status}")
        return result


def run_single_release(
    ctx: ResolvedContext,
    *,
    amount: Optional[int] = None,
    client_factory: ClientFactory = default_client_factory,
    report: Optional[Reporter] = None,
) -> WorkflowResult:
    """deploy -> fund -> mark completed -> approve -> release."""
    amount = int(amount if amount is not None else ctx.test_defaults.amount)
    me = ctx.public_key
    run = _Run(5, report)
    with client_factory(ctx) as api:
        payload = single_release_payload(
            me,
            amount=amount,
            title="Test Single-Release Escrow",
            description="Automated test workflow from CLI",
            milestone="Test milestone",
            engagement_prefix="TEST-SINGLE",
        )
        contract_id = run.step(
            "Deploying single-release escrow", lambda: deploy(api, ctx, EscrowType.SINGLE, payload)
        ).contract_id
        run.step(
            "Funding escrow",
            lambda: submit(api, ctx, api.fund(EscrowType.SINGLE, contract_id, signer=me, amount=amount)),
        )
        run.step(
            'Changing milestone status to "completed"',
            lambda: submit(
                api,
                ctx,
                api.change_milestone_status(
                    EscrowType.SINGLE,
                    contract_id,
                    milestone_index=0,
                    new_status="completed",
                    new_evidence="Test evidence",
                    service_provider=me,
                ),
            ),
        )
        run.step(
            "Approving milestone",
            lambda: submit(
                api, ctx, api.approve_milestone(EscrowType.SINGLE, contract_id, milestone_index=0, approver=me)
            ),
        )
        run.step("Releasing funds", lambda: submit(api, ctx, api.release_funds(contract_id, release_signer=me)))
    return WorkflowResult(contract_id, run.steps)


def run_single_dispute(
    ctx: ResolvedContext,
    resolver: ResolvedContext,
    *,
    amount: Optional[int] = None,
    split: Optional[Sequence[int]] = None,
    client_factory: ClientFactory = default_client_factory,
    report: Optional[Reporter] = None,
) -> WorkflowResult:
    """deploy (resolver as disputeResolver) -> fund -> dispute -> resolve as resolver."""
    amount = int(amount if amount is not None else ctx.test_defaults.amount)
    split = tuple(split) if split is not None else ctx.test_defaults.split_ratio()
    if len(split) != 2 or sum(split) != 100:
        raise ConfigInvalidError(f"Invalid split {split}: parts must sum to 100")
    me = ctx.public_key
    run = _Run(4, report)
    with client_factory(ctx) as api, client_factory(resolver) as resolver_api:
        payload = single_release_payload(
            me,
            amount=amount,
            dispute_resolver=resolver.public_key,
            title="Test Single-Release Dispute",
            description="Automated dispute test workflow from CLI",
            milestone="Test milestone for dispute",
            engagement_prefix="TEST-DISPUTE",
        )
        contract_id = run.step(
            "Deploying escrow (main wallet)", lambda: deploy(api, ctx, EscrowType.SINGLE, payload)
        ).contract_id
        run.step(
            "Funding escrow (main wallet)",
            lambda: submit(api, ctx, api.fund(EscrowType.SINGLE, contract_id, signer=me, amount=amount)),
        )
        run.step(
            "Disputing escrow (main wallet)",
            lambda: submit(api, ctx, api.dispute_escrow(contract_id, signer=me)),
        )
        distributions = split_distributions(me, amount, split)
        run.step(
            "Resolving dispute (resolver wallet)",
            lambda: submit(
                resolver_api,
                resolver,
                resolver_api.resolve_dispute(
                    contract_id, dispute_resolver=resolver.public_key, distributions=distributions
                ),
            ),
        )
    return WorkflowResult(contract_id, run.steps)


def run_multi_release(
    ctx: ResolvedContext,
    *,
    amounts: Optional[Sequence[int]] = None,
    client_factory: ClientFactory = default_client_factory,
    report: Optional[Reporter] = None,
) -> WorkflowResult:
    """deploy -> fund total -> for each milestone: mark completed, approve, release."""
    amounts = [int(a) for a in (amounts if amounts is not None else ctx.test_defaults.amounts())]
    if not amounts:
        raise ConfigInvalidError("At least one milestone amount is required")
    me = ctx.public_key
    run = _Run(2 + 3 * len(amounts), report)
    with client_factory(ctx) as api:
        payload = multi_release_payload(
            me,
            amounts,
            descriptions=[f"Test milestone {i + 1}" for i in range(len(amounts))],
            title="Test Multi-Release Escrow",
            description="Automated test workflow from CLI",
            engagement_prefix="TEST-MULTI",
        )
        contract_id = run.step(
            "Deploying multi-release escrow", lambda: deploy(api, ctx, EscrowType.MULTI, payload)
        ).contract_id
        total = sum(amounts)
        run.step(
            "Funding escrow",
            lambda: submit(api, ctx, api.fund(EscrowType.MULTI, contract_id, signer=me, amount=total)),
        )
        for index in range(len(amounts)):
            n = index + 1
            run.step(
                f'Changing milestone {n} status to "completed"',
                lambda: submit(
                    api,
                    ctx,
                    api.change_milestone_status(
                        EscrowType.MULTI,
                        contract_id,
                        milestone_index=index,
                        new_status="completed",
                        new_evidence=f"Test evidence for milestone {n}",
                        service_provider=me,
                    ),
                ),
            )
            run.step(
                f"Approving milestone {n}",
                lambda: submit(
                    api, ctx, api.approve_milestone(EscrowType.MULTI, contract_id, milestone_index=index, approver=me)
                ),
            )
            run.step(
                f"Releasing milestone {n} funds",
                lambda: submit(
                    api, ctx, api.release_milestone_funds(contract_id, milestone_index=index, release_signer=me)
                ),
            )
    return WorkflowResult(contract_id, run.steps)


def run_multi_dispute(
    ctx: ResolvedContext,
    resolver: ResolvedContext,
    *,
    amount: Optional[int] = None,
    client_factory: ClientFactory = default_client_factory,
    report: Optional[Reporter] = None,
) -> WorkflowResult:
    """deploy one milestone -> fund -> mark completed -> dispute -> resolve as resolver."""
    amount = int(amount if amount is not None else ctx.test_defaults.amount)
    me = ctx.public_key
    run = _Run(5, report)
    with client_factory(ctx) as api, client_factory(resolver) as resolver_api:
        payload = multi_release_payload(
            me,
            [amount],
            dispute_resolver=resolver.public_key,
            descriptions=["Test milestone for dispute"],
            title="Test Multi-Release Dispute",
            description="Automated dispute test workflow from CLI",
            engagement_prefix="TEST-MULTI-DISPUTE",
        )
        contract_id = run.step(
            "Deploying multi-release escrow (main wallet)", lambda: deploy(api, ctx, EscrowType.MULTI, payload)
        ).contract_id
        run.step(
            "Funding escrow (main wallet)",
            lambda: submit(api, ctx, api.fund(EscrowType.MULTI, contract_id, signer=me, amount=amount)),
        )
        run.step(
            'Changing milestone status to "completed" (main wallet)',
            lambda: submit(
                api,
                ctx,
                api.change_milestone_status(
                    EscrowType.MULTI,
                    contract_id,
                    milestone_index=0,
                    new_status="completed",
                    new_evidence="Test evidence",
                    service_provider=me,
                ),
            ),
        )
        run.step(
            "Disputing milestone (main wallet)",
            lambda: submit(api, ctx, api.dispute_milestone(contract_id, milestone_index=0, signer=me)),
        )
        run.step(
            "Resolving dispute (resolver wallet)",
            lambda: submit(
                resolver_api,
                resolver,
                resolver_api.resolve_milestone_dispute(
                    contract_id,
                    milestone_index=0,
                    dispute_resolver=resolver.public_key,
                    distributions=[{"address": me, "amount": amount}],
                ),
            ),
        )
    return WorkflowResult(contract_id, run.steps)


__all__ = [
    "WorkflowResult",
    "default_client_factory",
    "submit",
    "deploy",
    "run_single_release",
    "run_single_dispute",
    "run_multi_release",
    "run_multi_dispute",
]
