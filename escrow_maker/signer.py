"""Local signing of unsigned transaction envelopes (base64 XDR)."""

from __future__ import annotations

import logging

from stellar_sdk import Keypair
from stellar_sdk.helpers import parse_transaction_envelope_from_xdr

from .errors import SigningError

log = logging.getLogger(__name__)


def sign_transaction(unsigned_xdr: str, secret_key: str, network_passphrase: str) -> str:
    """
    Sign `unsigned_xdr` with `secret_key` for the given network and return the
    signed envelope as base64 XDR.

    Raises SigningError on a missing passphrase, a malformed envelope or an
    invalid secret key.
    """
    if not network_passphrase:
        raise SigningError("Failed to sign XDR: network passphrase is not configured")
    if not unsigned_xdr or not unsigned_xdr.strip():
        raise SigningError("Failed to sign XDR: transaction envelope is empty")

    try:
        keypair = Keypair.from_secret(secret_key)
    except Exception as e:
        raise SigningError(f"Failed to sign XDR: invalid secret key ({e})") from e

    try:
        envelope = parse_transaction_envelope_from_xdr(unsigned_xdr.strip(), network_passphrase)
    except Exception as e:
        raise SigningError(f"Failed to sign XDR: malformed transaction envelope ({e})") from e

    try:
        envelope.sign(keypair)
        signed = envelope.to_xdr()
    except Exception as e:
        raise SigningError(f"Failed to sign XDR: {e}") from e

    log.debug("signed envelope with %s", keypair.public_key)
    return signed


__all__ = ["sign_transaction"]
