"""
secp256k1 operations used by tapspend, backed by coincurve.

Callers construct one ``Secp256k1`` and pass it to the leaf builder and the
output key deriver; nothing here keeps module-level state.
"""
from __future__ import annotations

from typing import Any, Tuple

from .errors import CryptoError

SECP256K1_ORDER = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16
)


def _imp_coincurve() -> Any:
    import importlib
    try:
        return importlib.import_module('coincurve')
    except Exception as e:
        raise ImportError(f'coincurve not available: {e}')


class Secp256k1:
    """Point lifting, tweaking and key derivation on secp256k1."""

    def __init__(self) -> None:
        cc = _imp_coincurve()
        self._PublicKey = getattr(cc, 'PublicKey')
        self._PrivateKey = getattr(cc, 'PrivateKey')

    def lift_x(self, xonly: bytes) -> Any:
        """Return the point with x coordinate ``xonly`` and even y."""
        if len(xonly) != 32:
            raise CryptoError('x-only key must be 32 bytes')
        try:
            return self._PublicKey(b'\x02' + xonly)
        except Exception as exc:
            raise CryptoError(f'x-only key is not on the curve: {exc}') from exc

    def is_xonly_point(self, xonly: bytes) -> bool:
        try:
            self.lift_x(xonly)
        except CryptoError:
            return False
        return True

    def tweak_add(self, xonly: bytes, tweak: int) -> Tuple[bytes, int]:
        """Compute ``lift_x(xonly) + tweak*G``.

        Returns:
            (x_only, parity) of the resulting point, parity 1 when y is odd.
        """
        if tweak < 0 or tweak >= SECP256K1_ORDER:
            raise CryptoError('tweak exceeds curve order')
        base = self.lift_x(xonly)
        if tweak == 0:
            tweaked = base
        else:
            try:
                tweak_pub = self._PrivateKey.from_int(tweak).public_key
                tweaked = self._PublicKey.combine_keys([base, tweak_pub])
            except Exception as exc:
                raise CryptoError(f'failed to apply tweak (infinity): {exc}') from exc
            if tweaked is None:
                raise CryptoError('tweaked point is the point at infinity')
        compressed = tweaked.format(compressed=True)
        return compressed[1:33], compressed[0] & 1

    def xonly_from_secret(self, secret: bytes) -> bytes:
        if len(secret) != 32:
            raise CryptoError('secret key must be 32 bytes')
        try:
            key = self._PrivateKey(secret)
        except Exception as exc:
            raise CryptoError(f'invalid secret key: {exc}') from exc
        return key.public_key.format(compressed=True)[1:33]
