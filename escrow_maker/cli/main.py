"""
escrow - command-line client for Stellar escrow contracts.

Deploys and drives escrows through the remote escrow API: every transaction
is requested unsigned, signed locally with a configured wallet and submitted
to the API's relay.

Global options:
  --config-file PATH     Configuration file (default: ~/.escrow/config.json)
  --verbose / -v         Debug logging and extra output

Examples:
  escrow network use testnet
  escrow config set testnet.apiKey <key>
  escrow wallet add main --public G... --secret S...
  escrow deploy-single
  escrow fund <contractId> --amount 1000
  escrow test-single-dispute --resolver-wallet resolver
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from escrow_maker.store import CONFIG_FILE_ENV

from . import config, network, tx, wallet, workflow
from .common import CliState

app = typer.Typer(
    name="escrow",
    help="Deploy and manage escrow contracts through the escrow API",
    no_args_is_help=True,
    add_completion=False,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s" if verbose else "%(message)s",
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config-file",
        help="Path to the configuration file (default: ~/.escrow/config.json)",
        envvar=CONFIG_FILE_ENV,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and extra output"),
) -> None:
    """
    Escrow CLI.

    Settings are resolved per command, highest priority first:
      1. Command-line flags (--network, --api-key, --wallet, ...)
      2. Environment variables (ESCROW_NETWORK, ESCROW_API_KEY, ESCROW_PUBLIC_KEY, ESCROW_SECRET_KEY)
      3. The selected wallet, then the stored network entry
      4. Built-in network templates
    """
    _configure_logging(verbose)
    ctx.obj = CliState(config_file=config_file, verbose=verbose)


app.add_typer(config.app, name="config")
app.add_typer(network.app, name="network")
app.add_typer(wallet.app, name="wallet")
tx.register(app)
workflow.register(app)


def main() -> None:
    """Entry point for the escrow CLI."""
    app()


if __name__ == "__main__":
    main()
