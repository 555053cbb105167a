"""Typer command-line interface for escrow_maker (console script: ``escrow``)."""
