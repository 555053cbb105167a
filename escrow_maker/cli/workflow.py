"""End-to-end test workflows against a live escrow API."""

from __future__ import annotations

from functools import partial
from typing import Any, Optional

import typer

from escrow_maker.config import ConfigOptions
from escrow_maker.networks import parse_amounts, parse_split
from escrow_maker.workflows import (
    WorkflowResult,
    default_client_factory,
    run_multi_dispute,
    run_multi_release,
    run_single_dispute,
    run_single_release,
)

from .common import (
    MARK_OK,
    base_url_option,
    env_option,
    get_state,
    handle_errors,
    network_option,
    timeout_option,
    warn_mainnet,
)

DEFAULT_RESOLVER_WALLET = "resolver"


def _resolver_option() -> Any:
    return typer.Option(
        DEFAULT_RESOLVER_WALLET, "--resolver-wallet", help="Wallet that resolves the dispute (default: resolver)"
    )


def _main_wallet_option() -> Any:
    return typer.Option(None, "--wallet", help="Main wallet (default: the network's default wallet)")


def _finish(result: WorkflowResult) -> None:
    typer.echo(f"\n{MARK_OK} Workflow completed: {len(result.steps)} steps")
    typer.echo(f"   Contract ID: {result.contract_id}")


def test_single_release(
    ctx: typer.Context,
    amount: Optional[int] = typer.Option(None, "--amount", min=1, help="Amount in stroops (default: testDefaults.amount)"),
    wallet: Optional[str] = _main_wallet_option(),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """deploy -> fund -> change status -> approve -> release."""
    state = get_state(ctx)
    with handle_errors():
        resolved = state.resolve(ConfigOptions(network=network, env=env, wallet=wallet, base_url=base_url))
        warn_mainnet(resolved)
        typer.echo(f"Network: {resolved.network}  Signer: {resolved.public_key}")
        result = run_single_release(
            resolved,
            amount=amount,
            client_factory=partial(default_client_factory, timeout=timeout),
            report=typer.echo,
        )
        _finish(result)


def test_single_dispute(
    ctx: typer.Context,
    amount: Optional[int] = typer.Option(None, "--amount", min=1, help="Amount in stroops (default: testDefaults.amount)"),
    split: Optional[str] = typer.Option(None, "--split", help="Dispute split P:Q (default: testDefaults.disputeSplit)"),
    wallet: Optional[str] = _main_wallet_option(),
    resolver_wallet: str = _resolver_option(),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """deploy -> fund -> dispute -> resolve with a second wallet."""
    state = get_state(ctx)
    with handle_errors():
        ratio = parse_split(split) if split else None
        options = ConfigOptions(network=network, env=env, wallet=wallet, base_url=base_url)
        resolved = state.resolve(options)
        resolver = state.resolve_wallet(options, resolver_wallet)
        warn_mainnet(resolved)
        typer.echo(f"Network: {resolved.network}")
        typer.echo(f"Main wallet:     {resolved.public_key}")
        typer.echo(f"Resolver wallet: {resolver.public_key} ({resolver_wallet})")
        result = run_single_dispute(
            resolved,
            resolver,
            amount=amount,
            split=ratio,
            client_factory=partial(default_client_factory, timeout=timeout),
            report=typer.echo,
        )
        _finish(result)


def test_multi_release(
    ctx: typer.Context,
    amounts: Optional[str] = typer.Option(None, "--amounts", help="Comma-separated milestone amounts (default: testDefaults.multiAmounts)"),
    wallet: Optional[str] = _main_wallet_option(),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """deploy -> fund -> change status, approve and release every milestone."""
    state = get_state(ctx)
    with handle_errors():
        parsed = parse_amounts(amounts) if amounts else None
        resolved = state.resolve(ConfigOptions(network=network, env=env, wallet=wallet, base_url=base_url))
        warn_mainnet(resolved)
        typer.echo(f"Network: {resolved.network}  Signer: {resolved.public_key}")
        result = run_multi_release(
            resolved,
            amounts=parsed,
            client_factory=partial(default_client_factory, timeout=timeout),
            report=typer.echo,
        )
        _finish(result)


def test_multi_dispute(
    ctx: typer.Context,
    amount: Optional[int] = typer.Option(None, "--amount", min=1, help="Milestone amount in stroops (default: testDefaults.amount)"),
    wallet: Optional[str] = _main_wallet_option(),
    resolver_wallet: str = _resolver_option(),
    network: Optional[str] = network_option(),
    env: Optional[str] = env_option(),
    base_url: Optional[str] = base_url_option(),
    timeout: float = timeout_option(),
) -> None:
    """deploy -> fund -> change status -> dispute milestone -> resolve with a second wallet."""
    state = get_state(ctx)
    with handle_errors():
        options = ConfigOptions(network=network, env=env, wallet=wallet, base_url=base_url)
        resolved = state.resolve(options)
        resolver = state.resolve_wallet(options, resolver_wallet)
        warn_mainnet(resolved)
        typer.echo(f"Network: {resolved.network}")
        typer.echo(f"Main wallet:     {resolved.public_key}")
        typer.echo(f"Resolver wallet: {resolver.public_key} ({resolver_wallet})")
        result = run_multi_dispute(
            resolved,
            resolver,
            amount=amount,
            client_factory=partial(default_client_factory, timeout=timeout),
            report=typer.echo,
        )
        _finish(result)


def register(app: typer.Typer) -> None:
    app.command("test-single-release")(test_single_release)
    app.command("test-single-dispute")(test_single_dispute)
    app.command("test-multi-release")(test_multi_release)
    app.command("test-multi-dispute")(test_multi_dispute)
