"""Shared CLI plumbing: state, error boundary, option factories, display helpers."""

from __future__ import annotations

import contextlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

import typer

from escrow_maker.config import ConfigOptions, ResolvedContext, resolve_config, resolve_config_for_wallet
from escrow_maker.errors import ApiError, ConfirmationRequired, EscrowCliError
from escrow_maker.migrations import run_migrations
from escrow_maker.networks import DEFAULT_NETWORK, NetworkRegistry
from escrow_maker.store import JsonFileStore

MARK_OK = "✓"
MARK_ERR = "✗"
MARK_WARN = "⚠"


@dataclass
class CliState:
    config_file: Optional[Path] = None
    verbose: bool = False

    def store(self) -> JsonFileStore:
        return JsonFileStore(self.config_file)

    def migrated_store(self) -> JsonFileStore:
        store = self.store()
        run_migrations(store)
        return store

    def resolve(self, options: ConfigOptions) -> ResolvedContext:
        return resolve_config(options, store=self.store(), environ=os.environ)

    def resolve_wallet(self, options: ConfigOptions, wallet: str) -> ResolvedContext:
        return resolve_config_for_wallet(options, wallet, store=self.store(), environ=os.environ)

    def network_or_default(self, network: Optional[str]) -> str:
        if network:
            return network
        return NetworkRegistry(self.store()).get_default() or DEFAULT_NETWORK


def get_state(ctx: typer.Context) -> CliState:
    obj = ctx.obj
    if isinstance(obj, CliState):
        return obj
    state = CliState()
    ctx.obj = state
    return state


@contextlib.contextmanager
def handle_errors() -> Iterator[None]:
    """Turn escrow errors into a stderr message and an exit code."""
    try:
        yield
    except ConfirmationRequired as e:
        typer.echo(str(e))
        raise typer.Exit(code=0)
    except ApiError as e:
        typer.echo(f"{MARK_ERR} Error: {e}", err=True)
        if e.details is not None:
            typer.echo("API Error Details:", err=True)
            typer.echo(pretty(e.details), err=True)
        raise typer.Exit(code=1)
    except EscrowCliError as e:
        typer.echo(f"{MARK_ERR} Error: {e}", err=True)
        raise typer.Exit(code=1)


def pretty(obj: Any) -> str:
    if isinstance(obj, str):
        return obj
    return json.dumps(obj, indent=2, ensure_ascii=False)


def mask_secret(value: Optional[str]) -> str:
    if not value or len(value) < 8:
        return "***"
    return value[:8] + "..."


def mask_wallet_secret(value: Optional[str]) -> str:
    if not value or len(value) < 12:
        return "***"
    return f"{value[:8]}...{value[-4:]}"


def is_sensitive(field: str) -> bool:
    lower = field.lower()
    return "secret" in lower or "apikey" in lower


def display_value(field: str, value: Any) -> Any:
    return mask_secret(value) if is_sensitive(field) else value


def warn_mainnet(resolved: ResolvedContext) -> None:
    if resolved.is_mainnet:
        typer.echo(f"{MARK_WARN}  WARNING: Using MAINNET - real funds will be used!", err=True)


# Option factories. Each call returns a fresh OptionInfo.


def network_option() -> Any:
    return typer.Option(None, "--network", "-n", help="Network: testnet or mainnet")


def env_option() -> Any:
    return typer.Option(None, "--env", help='API environment: "dev" (default) or "local"')


def wallet_option(help_text: str = "Wallet to sign with (default: the network's default wallet)") -> Any:
    return typer.Option(None, "--wallet", help=help_text)


def api_key_option() -> Any:
    return typer.Option(None, "--api-key", help="Override API key")


def public_key_option() -> Any:
    return typer.Option(None, "--public-key", help="Override public key (needs --secret-key too)")


def secret_key_option() -> Any:
    return typer.Option(None, "--secret-key", help="Override secret key (needs --public-key too)")


def base_url_option() -> Any:
    return typer.Option(None, "--base-url", help="Override API base URL")


def timeout_option() -> Any:
    return typer.Option(30.0, "--timeout", min=0.1, help="HTTP timeout in seconds")


__all__ = [
    "CliState",
    "get_state",
    "handle_errors",
    "pretty",
    "mask_secret",
    "mask_wallet_secret",
    "display_value",
    "warn_mainnet",
    "MARK_OK",
    "MARK_ERR",
    "MARK_WARN",
]
