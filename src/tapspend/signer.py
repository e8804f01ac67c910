"""
Signer capability used by the transaction assembler.

Anything with an ``xonly_pubkey`` and a ``sign(sighash) -> 64-byte BIP-340
signature`` method works; ``KeySigner`` is the coincurve-backed one the CLI
uses.
"""
from __future__ import annotations

from typing import Any, Protocol

from .curve import _imp_coincurve
from .errors import CryptoError


class Signer(Protocol):
    @property
    def xonly_pubkey(self) -> bytes: ...

    def sign(self, sighash: bytes) -> bytes: ...


class KeySigner:
    """BIP-340 signer over a raw 32-byte secret key (no taproot tweak)."""

    def __init__(self, secret: bytes, *, aux_randomness: bytes = b'') -> None:
        cc = _imp_coincurve()
        try:
            self._key: Any = cc.PrivateKey(secret)
        except Exception as exc:
            raise CryptoError(f'invalid secret key: {exc}') from exc
        self._aux = aux_randomness

    @property
    def xonly_pubkey(self) -> bytes:
        return self._key.public_key.format(compressed=True)[1:33]

    def sign(self, sighash: bytes) -> bytes:
        if len(sighash) != 32:
            raise CryptoError('sighash must be 32 bytes')
        return self._key.sign_schnorr(sighash, self._aux)
