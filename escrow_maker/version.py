"""Version of the escrow-maker package."""

from __future__ import annotations

# Bump this when publishing
__version__ = "1.0.0"

__all__ = ["__version__"]
