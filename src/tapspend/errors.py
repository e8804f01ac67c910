"""
Error kinds raised by tapspend.

All derive from ValueError so callers that already catch ValueError around
hex/length validation keep working. Out-of-range leaf indices raise the
builtin IndexError instead.
"""


class TaprootError(ValueError):
    """Base class for all tapspend errors."""


class PolicyError(TaprootError):
    """Malformed leaf policy or invalid key encoding."""


class TreeError(TaprootError):
    """Empty leaf set or malformed tree shape."""


class CryptoError(TaprootError):
    """Invalid curve point, degenerate tweak or malformed signature."""


class MissingDataError(TaprootError):
    """Finalizer lacks a required signature or auxiliary value."""


class SerializationError(TaprootError):
    """Length not representable, or truncated/trailing wire data."""


class FundingMismatchError(TaprootError):
    """Funded output script differs from the derived P2TR output script."""


class AddressError(TaprootError):
    """Address could not be derived (no output supplied, unknown network)."""
