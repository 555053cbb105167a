"""escrow network: list networks and choose the default one."""

from __future__ import annotations

import typer

from escrow_maker.networks import DEFAULT_NETWORK, NetworkRegistry, validate_network_name

from .common import MARK_OK, MARK_WARN, get_state, handle_errors, mask_secret

app = typer.Typer(help="Manage network configurations (testnet/mainnet)", no_args_is_help=True)


@app.command("list")
def list_networks(ctx: typer.Context) -> None:
    """List stored networks; * marks the default."""
    state = get_state(ctx)
    with handle_errors():
        registry = NetworkRegistry(state.migrated_store())
        default = registry.get_default() or DEFAULT_NETWORK
        typer.echo("Available networks:")
        for name in registry.names():
            entry = registry.get(name)
            marker = "*" if name == default else " "
            status = MARK_OK if registry.is_configured(entry) else f"{MARK_WARN} not fully configured"
            typer.echo(f"{marker} {name:<10} {status}")


@app.command("current")
def current(ctx: typer.Context) -> None:
    """Show the default network and whether it is ready to use."""
    state = get_state(ctx)
    with handle_errors():
        registry = NetworkRegistry(state.store())
        name = registry.get_default()
        if not name:
            typer.echo(f"No default network set. Using: {DEFAULT_NETWORK}")
            return
        typer.echo(f"Current network: {name}")
        if registry.is_configured(registry.get(name)):
            typer.echo(f"Status: {MARK_OK} Configured")
        else:
            typer.echo(f"Status: {MARK_WARN}  Not fully configured")
            typer.echo("\nTo configure this network, run:")
            typer.echo(f"  escrow config set {name}.apiKey <your-api-key>")
            typer.echo(f"  escrow wallet add main --public <G...> --secret <S...> -n {name}")


@app.command("use")
def use(ctx: typer.Context, name: str = typer.Argument(..., help="testnet or mainnet")) -> None:
    """Set the default network."""
    state = get_state(ctx)
    with handle_errors():
        validate_network_name(name)
        NetworkRegistry(state.store()).set_default(name)
        typer.echo(f"{MARK_OK} Default network set to: {name}")
        if name == "mainnet":
            typer.echo(f"{MARK_WARN}  WARNING: You have switched to MAINNET.", err=True)
            typer.echo("   Check your configuration before deploying: escrow config list mainnet", err=True)


@app.command("show")
def show(ctx: typer.Context, name: str = typer.Argument(..., help="Network name")) -> None:
    """Show one network's settings (template values when not stored)."""
    state = get_state(ctx)
    with handle_errors():
        lookup = NetworkRegistry(state.store()).lookup(name)
        entry = lookup.entry

        def _or_unset(value) -> str:
            return value if value else "Not set"

        typer.echo(f"Network: {name}" + ("" if lookup.stored else " (defaults, not saved)"))
        typer.echo("=" * 50)
        typer.echo(f"Network Passphrase: {_or_unset(entry.get('networkPassphrase'))}")
        typer.echo(f"API Key:            {mask_secret(entry['apiKey']) if entry.get('apiKey') else 'Not set'}")
        typer.echo(f"Public Key:         {_or_unset(entry.get('publicKey'))}")
        typer.echo(f"Secret Key:         {mask_secret(entry['secretKey']) if entry.get('secretKey') else 'Not set'}")
        typer.echo(f"Horizon URL:        {_or_unset(entry.get('horizonUrl'))}")
        typer.echo(f"RPC URL:            {_or_unset(entry.get('rpcUrl'))}")
        typer.echo(f"Base URL (Local):   {_or_unset(entry.get('baseUrlLocal'))}")
        typer.echo(f"Base URL (Dev):     {_or_unset(entry.get('baseUrlDev'))}")
        wallets = entry.get("wallets")
        names = ", ".join(wallets) if isinstance(wallets, dict) and wallets else "None"
        typer.echo(f"Wallets:            {names}")
        typer.echo(f"Default Wallet:     {_or_unset(entry.get('defaultWallet'))}")
