"""
Transactional commands.

Each command resolves the configuration, asks the escrow API for an unsigned
envelope, signs it locally and submits it to the relay:

  escrow deploy-single                     deploy a single-release escrow
  escrow deploy-multi --amounts 500,500    deploy a multi-release escrow
  escrow fund <contractId>                 fund an escrow
  escrow approve <contractId>              approve a milestone
  escrow change-status <contractId>        update a milestone status
  escrow release <contractId>              release funds
  escrow dispute <contractId>              open a dispute
  escrow sign <xdr>                        sign only and print the envelope
  escrow sign-send <xdr>                   sign and submit an envelope
"""

from __future__ import annotations

from typing import Callable, Optional

import typer

from escrow_maker.client import EscrowClient, EscrowType, RelayResult
from escrow_maker.config import ConfigOptions, ResolvedContext
from escrow_maker.networks import parse_amounts
from escrow_maker.payloads import multi_release_payload, single_release_payload
from escrow_maker.signer import sign_transaction
from escrow_maker.workflows import deploy, submit

from .common import (
    MARK_OK,
    api_key_option,
    base_url_option,
    env_option,
    get_state,
    handle_errors,
    network_option,
    public_key_option,
    secret_key_option,
    timeout_option,
    wallet_option,
    warn_mainnet,
)


def _options(network, env, wallet, api_key, public_key, secret_key, base_url) -> ConfigOptions:
    return ConfigOptions(
        network=network,
        env=env,
        wallet=wallet,
        api_key=api_key,
        public_key=public_key,
        secret_key=secret_key,
        base_url=base_url,
    )


def _describe(ctx: ResolvedContext) -> None:
    identity = f"wallet {ctx.wallet}" if ctx.wallet else ctx.credential_source
    typer.echo(f"Network: {ctx.network} ({ctx.env}) {ctx.base_url}")
    typer.echo(f"Signer:  {ctx.public_key} [{identity}]")


def _run(
    typer_ctx: typer.Context,
    options: ConfigOptions,
    timeout: float,
    label: str,
    action: Callable[[EscrowClient, ResolvedContext], RelayResult],
) -> RelayResult:
    state = get_state(typer_ctx)
    resolved = state.resolve(options)
    warn_mainnet(resolved)
    if state.verbose:
        _describe(resolved)
    typer.echo(f"{label}...")
    with EscrowClient(resolved.base_url, resolved.api_key, timeout=timeout) as api:
        result = action(api, resolved)
    typer.echo(f"{MARK_OK} Transaction sent: {result.status}")
    if result.contract_id:
        typer.echo(f"   Contract ID: {result.contract_id}")
    return result


def deploy_single(
    ctx: typer.Context,
    amount: Optional[int] = typer.Option(None, "--amount", min=1, help="Escrow amount in stroops (default: 100000000)"),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    wallet: Optional[str] = wallet_option(),
    api_key: Optional[str] = api_key_option(),
    public_key: Optional[str] = public_key_option(),
    secret_key: Optional[str] = secret_key_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """Deploy a single-release escrow (request, sign, send)."""
    with handle_errors():

        def _deploy(api: EscrowClient, resolved: ResolvedContext) -> RelayResult:
            kwargs = {"amount": amount} if amount is not None else {}
            return deploy(api, resolved, EscrowType.SINGLE, single_release_payload(resolved.public_key, **kwargs))

        _run(
            ctx,
            _options(network, env, wallet, api_key, public_key, secret_key, base_url),
            timeout,
            "Deploying single-release escrow",
            _deploy,
        )


def deploy_multi(
    ctx: typer.Context,
    amounts: str = typer.Option("500,500", "--amounts", help="Comma-separated milestone amounts"),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    wallet: Optional[str] = wallet_option(),
    api_key: Optional[str] = api_key_option(),
    public_key: Optional[str] = public_key_option(),
    secret_key: Optional[str] = secret_key_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """Deploy a multi-release escrow with one milestone per amount."""
    with handle_errors():
        milestone_amounts = parse_amounts(amounts)
        descriptions = [f"Phase {i + 1}" for i in range(len(milestone_amounts))]
        _run(
            ctx,
            _options(network, env, wallet, api_key, public_key, secret_key, base_url),
            timeout,
            "Deploying multi-release escrow",
            lambda api, resolved: deploy(
                api,
                resolved,
                EscrowType.MULTI,
                multi_release_payload(resolved.public_key, milestone_amounts, descriptions=descriptions),
            ),
        )


def fund(
    ctx: typer.Context,
    contract_id: str = typer.Argument(..., help="Escrow contract ID"),
    amount: Optional[int] = typer.Option(None, "--amount", min=1, help="Amount in stroops (default: testDefaults.amount)"),
    escrow_type: EscrowType = typer.Option(EscrowType.SINGLE, "--type", help="Escrow type"),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    wallet: Optional[str] = wallet_option(),
    api_key: Optional[str] = api_key_option(),
    public_key: Optional[str] = public_key_option(),
    secret_key: Optional[str] = secret_key_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """Fund an escrow from the signer's account."""
    with handle_errors():

        def _fund(api: EscrowClient, resolved: ResolvedContext) -> RelayResult:
            value = amount if amount is not None else resolved.test_defaults.amount
            typer.echo(f"   Amount: {value} stroops")
            return submit(api, resolved, api.fund(escrow_type, contract_id, signer=resolved.public_key, amount=value))

        _run(
            ctx,
            _options(network, env, wallet, api_key, public_key, secret_key, base_url),
            timeout,
            f"Funding escrow {contract_id}",
            _fund,
        )


def approve(
    ctx: typer.Context,
    contract_id: str = typer.Argument(..., help="Escrow contract ID"),
    milestone: int = typer.Option(0, "--milestone", min=0, help="Milestone index"),
    escrow_type: EscrowType = typer.Option(EscrowType.SINGLE, "--type", help="Escrow type"),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    wallet: Optional[str] = wallet_option(),
    api_key: Optional[str] = api_key_option(),
    public_key: Optional[str] = public_key_option(),
    secret_key: Optional[str] = secret_key_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """Approve a milestone as the approver."""
    with handle_errors():
        _run(
            ctx,
            _options(network, env, wallet, api_key, public_key, secret_key, base_url),
            timeout,
            f"Approving milestone {milestone}",
            lambda api, resolved: submit(
                api,
                resolved,
                api.approve_milestone(escrow_type, contract_id, milestone_index=milestone, approver=resolved.public_key),
            ),
        )


def change_status(
    ctx: typer.Context,
    contract_id: str = typer.Argument(..., help="Escrow contract ID"),
    milestone: int = typer.Option(0, "--milestone", min=0, help="Milestone index"),
    status: str = typer.Option("completed", "--status", help="New milestone status"),
    evidence: str = typer.Option("", "--evidence", help="Evidence text or URL"),
    escrow_type: EscrowType = typer.Option(EscrowType.SINGLE, "--type", help="Escrow type"),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    wallet: Optional[str] = wallet_option(),
    api_key: Optional[str] = api_key_option(),
    public_key: Optional[str] = public_key_option(),
    secret_key: Optional[str] = secret_key_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """Change a milestone's status as the service provider."""
    with handle_errors():
        _run(
            ctx,
            _options(network, env, wallet, api_key, public_key, secret_key, base_url),
            timeout,
            f'Changing milestone {milestone} status to "{status}"',
            lambda api, resolved: submit(
                api,
                resolved,
                api.change_milestone_status(
                    escrow_type,
                    contract_id,
                    milestone_index=milestone,
                    new_status=status,
                    new_evidence=evidence,
                    service_provider=resolved.public_key,
                ),
            ),
        )


def release(
    ctx: typer.Context,
    contract_id: str = typer.Argument(..., help="Escrow contract ID"),
    milestone: int = typer.Option(0, "--milestone", min=0, help="Milestone index (multi-release only)"),
    escrow_type: EscrowType = typer.Option(EscrowType.SINGLE, "--type", help="Escrow type"),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    wallet: Optional[str] = wallet_option(),
    api_key: Optional[str] = api_key_option(),
    public_key: Optional[str] = public_key_option(),
    secret_key: Optional[str] = secret_key_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """Release escrow funds (or one milestone's funds for multi-release)."""
    with handle_errors():

        def _release(api: EscrowClient, resolved: ResolvedContext) -> RelayResult:
            if escrow_type == EscrowType.MULTI:
                unsigned = api.release_milestone_funds(
                    contract_id, milestone_index=milestone, release_signer=resolved.public_key
                )
            else:
                unsigned = api.release_funds(contract_id, release_signer=resolved.public_key)
            return submit(api, resolved, unsigned)

        _run(
            ctx,
            _options(network, env, wallet, api_key, public_key, secret_key, base_url),
            timeout,
            "Releasing funds",
            _release,
        )


def dispute(
    ctx: typer.Context,
    contract_id: str = typer.Argument(..., help="Escrow contract ID"),
    milestone: int = typer.Option(0, "--milestone", min=0, help="Milestone index (multi-release only)"),
    escrow_type: EscrowType = typer.Option(EscrowType.SINGLE, "--type", help="Escrow type"),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    wallet: Optional[str] = wallet_option(),
    api_key: Optional[str] = api_key_option(),
    public_key: Optional[str] = public_key_option(),
    secret_key: Optional[str] = secret_key_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """Open a dispute on an escrow (or on one milestone for multi-release)."""
    with handle_errors():

        def _dispute(api: EscrowClient, resolved: ResolvedContext) -> RelayResult:
            if escrow_type == EscrowType.MULTI:
                unsigned = api.dispute_milestone(contract_id, milestone_index=milestone, signer=resolved.public_key)
            else:
                unsigned = api.dispute_escrow(contract_id, signer=resolved.public_key)
            return submit(api, resolved, unsigned)

        _run(
            ctx,
            _options(network, env, wallet, api_key, public_key, secret_key, base_url),
            timeout,
            "Opening dispute",
            _dispute,
        )


def sign(
    ctx: typer.Context,
    xdr: str = typer.Argument(..., help="Unsigned transaction envelope (base64 XDR)"),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    wallet: Optional[str] = wallet_option(),
    api_key: Optional[str] = api_key_option(),
    public_key: Optional[str] = public_key_option(),
    secret_key: Optional[str] = secret_key_option(),
    base_url: Optional[str] = base_url_option(),
) -> None:
    """Sign an envelope locally and print it; nothing is sent."""
    state = get_state(ctx)
    with handle_errors():
        resolved = state.resolve(_options(network, env, wallet, api_key, public_key, secret_key, base_url))
        warn_mainnet(resolved)
        if state.verbose:
            _describe(resolved)
        signed = sign_transaction(xdr, resolved.secret_key, resolved.network_passphrase)
        typer.echo(signed)


def sign_send(
    ctx: typer.Context,
    xdr: str = typer.Argument(..., help="Unsigned transaction envelope (base64 XDR)"),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    wallet: Optional[str] = wallet_option(),
    api_key: Optional[str] = api_key_option(),
    public_key: Optional[str] = public_key_option(),
    secret_key: Optional[str] = secret_key_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """Sign an envelope locally and submit it to the relay."""
    with handle_errors():
        _run(
            ctx,
            _options(network, env, wallet, api_key, public_key, secret_key, base_url),
            timeout,
            "Signing and sending transaction",
            lambda api, resolved: submit(api, resolved, xdr),
        )


def register(app: typer.Typer) -> None:
    app.command("deploy-single")(deploy_single)
    app.command("deploy-multi")(deploy_multi)
    app.command("fund")(fund)
    app.command("approve")(approve)
    app.command("change-status")(change_status)
    app.command("release")(release)
    app.command("dispute")(dispute)
    app.command("sign")(sign)
    app.command("sign-send")(sign_send)
