"""escrow wallet: named signing identities per network."""

from __future__ import annotations

from typing import Optional

import typer

from escrow_maker.errors import ConfirmationRequired, WalletNotFoundError
from escrow_maker.wallets import Wallet, WalletRegistry

from .common import MARK_OK, MARK_WARN, get_state, handle_errors, mask_wallet_secret, network_option

app = typer.Typer(help="Manage wallets for each network", no_args_is_help=True)


@app.command("list")
def list_wallets(ctx: typer.Context, network: Optional[str] = network_option()) -> None:
    """List wallets on a network; ✓ marks the default."""
    state = get_state(ctx)
    with handle_errors():
        network = state.network_or_default(network)
        registry = WalletRegistry(state.migrated_store())
        wallets = registry.list(network)
        if not wallets:
            typer.echo(f"No wallets configured for {network}")
            typer.echo("\nAdd a wallet with:")
            typer.echo(f"  escrow wallet add <name> --public <G...> --secret <S...> -n {network}")
            return
        default = registry.default_name(network)
        typer.echo(f"Wallets for {network}:\n")
        for name, wallet in wallets.items():
            marker = MARK_OK if name == default else " "
            typer.echo(f"  {marker} {name}{'  (default)' if name == default else ''}")
            typer.echo(f"    Alias:  {wallet.alias}")
            typer.echo(f"    Public: {wallet.public_key}")
            typer.echo(f"    Secret: {mask_wallet_secret(wallet.secret_key)}")


@app.command("show")
def show(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Wallet name"),
    network: Optional[str] = network_option(),
) -> None:
    """Show one wallet."""
    state = get_state(ctx)
    with handle_errors():
        network = state.network_or_default(network)
        registry = WalletRegistry(state.migrated_store())
        wallet = registry.get(network, name)
        if wallet is None:
            raise WalletNotFoundError(network, name)
        is_default = registry.default_name(network) == name
        typer.echo(f"Wallet: {name}\n")
        typer.echo(f"  Alias:      {wallet.alias}")
        typer.echo(f"  Public Key: {wallet.public_key}")
        typer.echo(f"  Secret Key: {mask_wallet_secret(wallet.secret_key)}")
        typer.echo(f"  Network:    {network}")
        typer.echo(f"  Default:    {'Yes ' + MARK_OK if is_default else 'No'}")


@app.command("add")
def add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Wallet name, e.g. main or resolver"),
    public: str = typer.Option(..., "--public", help="Public key (G...)"),
    secret: str = typer.Option(..., "--secret", help="Secret key (S...)"),
    alias: Optional[str] = typer.Option(None, "--alias", help="Friendly name"),
    network: Optional[str] = network_option(),
) -> None:
    """Add (or replace) a wallet. The first wallet on a network becomes its default."""
    state = get_state(ctx)
    with handle_errors():
        network = state.network_or_default(network)
        Wallet(alias=alias or name, public_key=public.strip(), secret_key=secret.strip()).validate()
        registry = WalletRegistry(state.migrated_store())
        wallet = registry.add(network, name, public_key=public.strip(), secret_key=secret.strip(), alias=alias)
        typer.echo(f"{MARK_OK} Wallet '{name}' added to {network}")
        typer.echo(f"   Public Key: {wallet.public_key}")
        typer.echo(f"   Alias: {wallet.alias}")
        if registry.default_name(network) == name:
            typer.echo(f"   Default wallet for {network}")


@app.command("remove")
def remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Wallet name"),
    network: Optional[str] = network_option(),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm removal"),
) -> None:
    """Remove a wallet. Without --yes only shows what would be removed."""
    state = get_state(ctx)
    with handle_errors():
        network = state.network_or_default(network)
        registry = WalletRegistry(state.migrated_store())
        wallet = registry.get(network, name)
        if wallet is None:
            raise WalletNotFoundError(network, name)
        if not yes:
            typer.echo(f"{MARK_WARN}  About to remove wallet '{name}' from {network}")
            typer.echo(f"   Public Key: {wallet.public_key}")
            typer.echo("   This action cannot be undone.")
            raise ConfirmationRequired("Use --yes to confirm.")
        registry.remove(network, name)
        typer.echo(f"{MARK_OK} Wallet '{name}' removed from {network}")
        new_default = registry.default_name(network)
        if new_default:
            typer.echo(f"   Default wallet is now '{new_default}'")


@app.command("set-default")
def set_default(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Wallet name"),
    network: Optional[str] = network_option(),
) -> None:
    """Make a wallet the default signer for its network."""
    state = get_state(ctx)
    with handle_errors():
        network = state.network_or_default(network)
        WalletRegistry(state.migrated_store()).set_default(network, name)
        typer.echo(f"{MARK_OK} Default wallet for {network} set to '{name}'")
