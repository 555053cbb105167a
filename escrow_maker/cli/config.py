"""
escrow config: inspect and edit the stored configuration.

Keys use dotted notation:
  testnet.apiKey                   one field of a network entry
  testnet.testDefaults.amount      one test default
  apiKey                           a flat top-level key (legacy layout)
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

import typer

from escrow_maker.errors import ConfigInvalidError
from escrow_maker.networks import (
    TEST_DEFAULT_FIELDS,
    NetworkRegistry,
    network_template,
    stored_networks,
    validate_network_name,
)

from .common import MARK_OK, MARK_WARN, display_value, get_state, handle_errors, pretty

app = typer.Typer(help="Manage CLI configuration (keys, URLs, networks)", no_args_is_help=True)

SETTABLE_FIELDS = (
    "networkPassphrase",
    "apiKey",
    "publicKey",
    "secretKey",
    "horizonUrl",
    "rpcUrl",
    "baseUrlLocal",
    "baseUrlDev",
)


def _split_key(key: str) -> Tuple[Optional[str], str, Optional[str]]:
    """Return (network, field, test_default) for a dotted key, or (None, key, None) for a flat one."""
    parts = key.split(".")
    if len(parts) == 1:
        return None, key, None
    network = validate_network_name(parts[0])
    if len(parts) == 2 and parts[1]:
        return network, parts[1], None
    if len(parts) == 3 and parts[1] == "testDefaults" and parts[2] in TEST_DEFAULT_FIELDS:
        return network, "testDefaults", parts[2]
    raise ConfigInvalidError(
        f'Invalid key "{key}". Use <network>.<field> or <network>.testDefaults.<{"|".join(TEST_DEFAULT_FIELDS)}>'
    )


def _print_setup_hints(network: str = "testnet") -> None:
    typer.echo(f"  escrow config set {network}.apiKey <your-api-key>")
    typer.echo(f"  escrow wallet add main --public <G...> --secret <S...> -n {network}")


@app.command("list")
def list_config(
    ctx: typer.Context,
    network: Optional[str] = typer.Argument(None, help="Only show this network"),
) -> None:
    """Show the whole configuration, or a single network."""
    state = get_state(ctx)
    with handle_errors():
        document = state.store().load()
        if not document:
            typer.echo("No configuration saved yet.")
            typer.echo("\nTo configure a network:")
            _print_setup_hints()
            return

        networks = stored_networks(document)
        if network:
            entry = networks.get(network)
            if not isinstance(entry, dict):
                typer.echo(f'Network "{network}" not configured yet.')
                typer.echo("\nTo configure it:")
                _print_setup_hints(network)
                return
            typer.echo(f"Configuration for {network}:")
            typer.echo("=" * 50)
            _print_entry(entry, indent="  ")
            return

        typer.echo(f"Config file: {state.store().path}")
        if document.get("defaultNetwork"):
            typer.echo(f"Default network: {document['defaultNetwork']}")
        if networks:
            typer.echo("\nNetworks:")
        for name, entry in networks.items():
            if not isinstance(entry, dict):
                continue
            marker = MARK_OK if NetworkRegistry.is_configured(entry) else MARK_WARN
            typer.echo(f"\n  {marker} {name}:")
            _print_entry(entry, indent="      ")

        legacy = [k for k in document if k not in ("networks", "defaultNetwork")]
        if legacy:
            typer.echo(f"\n{MARK_WARN}  Legacy fields (migrated on the next resolution):")
            for key in legacy:
                typer.echo(f"  {key}: {display_value(key, document[key])}")


def _print_entry(entry: dict, *, indent: str) -> None:
    for key, value in entry.items():
        if key == "name":
            continue
        if key == "wallets":
            names = ", ".join(value) if isinstance(value, dict) and value else "(none)"
            typer.echo(f"{indent}wallets: {names}")
        elif key == "testDefaults" and isinstance(value, dict):
            typer.echo(f"{indent}testDefaults:")
            for sub, sub_value in value.items():
                typer.echo(f"{indent}  {sub}: {sub_value}")
        else:
            typer.echo(f"{indent}{key}: {display_value(key, value)}")


@app.command("get")
def get_value(ctx: typer.Context, key: str = typer.Argument(..., help="Key to read, e.g. testnet.apiKey")) -> None:
    """Print the current value of a key."""
    state = get_state(ctx)
    with handle_errors():
        network, field, sub = _split_key(key)
        value: Any
        if network is None:
            value = state.store().get_value(field)
        else:
            entry = NetworkRegistry(state.migrated_store()).get(network)
            value = entry.get(field)
            if sub is not None:
                value = (value or {}).get(sub)
        if value is None or value == "":
            typer.echo(f"Key '{key}' is not set.", err=True)
            raise typer.Exit(code=1)
        typer.echo(pretty(value))


@app.command("set")
def set_value(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to write, e.g. testnet.apiKey"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Set a value. Network fields use <network>.<field> notation."""
    state = get_state(ctx)
    with handle_errors():
        network, field, sub = _split_key(key)
        if network is None:
            state.store().set_value(field, value)
            typer.echo(f"{MARK_OK} Set {key} = {display_value(key, value)}")
            typer.echo("  Note: prefer network notation, e.g. testnet.apiKey")
            return

        registry = NetworkRegistry(state.migrated_store())
        if sub is not None:
            registry.set_test_default(network, sub, value)
        elif field in SETTABLE_FIELDS:
            registry.set_field(network, field, value.strip())
        else:
            raise ConfigInvalidError(
                f'Cannot set "{field}" directly. Settable fields: {", ".join(SETTABLE_FIELDS)}'
                " (use `escrow wallet` for wallets)"
            )
        typer.echo(f"{MARK_OK} Set {key} = {display_value(field, value)}")


@app.command("unset")
def unset_value(ctx: typer.Context, key: str = typer.Argument(..., help="Key to remove or reset")) -> None:
    """Remove a flat key, or reset a network field to its built-in default."""
    state = get_state(ctx)
    with handle_errors():
        network, field, sub = _split_key(key)
        if network is None:
            if state.store().unset_value(field):
                typer.echo(f"{MARK_OK} Removed key '{key}' from configuration.")
            else:
                typer.echo(f"Key '{key}' does not exist.")
            return

        registry = NetworkRegistry(state.migrated_store())
        if sub is not None:
            registry.set_test_default(network, sub, network_template(network)["testDefaults"][sub])
        elif field in SETTABLE_FIELDS:
            registry.unset_field(network, field)
        else:
            raise ConfigInvalidError(f'Cannot unset "{field}". Resettable fields: {", ".join(SETTABLE_FIELDS)}')
        typer.echo(f"{MARK_OK} Reset {key} to its default.")
