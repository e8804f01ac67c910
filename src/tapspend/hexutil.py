"""
Hex and outpoint input helpers

- Hex parsing with fixed-length validation and clear error messages.
- "file or hex" reader for CLI flags.
- Outpoint parsing in the usual ``<txid>:<vout>`` display form.
"""
from __future__ import annotations

import binascii
import re
from typing import Optional, Tuple


_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
MAX_VOUT = 0xFFFFFFFF


def is_hex_str(s: str) -> bool:
    return bool(_HEX_RE.fullmatch(s or ""))


def parse_hex(name: str, s: Optional[str], length: Optional[int] = None) -> bytes:
    """Decode a hex string, optionally enforcing an exact byte length.

    Whitespace anywhere in the string is ignored, so values pasted from
    wrapped terminal output parse as-is.
    """
    if s is None:
        raise ValueError(f"{name} is required")
    s = ''.join(s.split())
    if not is_hex_str(s) or len(s) % 2 != 0:
        raise ValueError(f"Invalid hex for {name}")
    b = binascii.unhexlify(s)
    if length is not None and len(b) != length:
        raise ValueError(f"{name} must be {length} bytes (got {len(b)})")
    return b


def file_or_hex(name: str, hex_value: Optional[str], file_path: Optional[str], *, length: Optional[int] = None) -> bytes:
    """Read bytes from a hex string or from a file holding hex.

    The hex value wins when both are given.
    """
    if hex_value:
        return parse_hex(name, hex_value, length)
    if file_path:
        with open(file_path, 'rt') as f:
            return parse_hex(name, f.read(), length)
    raise ValueError(f"{name} required")


def parse_outpoint(s: str) -> Tuple[str, int]:
    """Split ``<txid>:<vout>`` into a lowercase txid hex and an index."""
    txid, sep, vout = (s or "").strip().partition(':')
    if not sep:
        raise ValueError("outpoint must look like <txid>:<vout>")
    parse_hex('txid', txid, length=32)
    try:
        index = int(vout)
    except ValueError as exc:
        raise ValueError("outpoint vout must be an integer") from exc
    if index < 0 or index > MAX_VOUT:
        raise ValueError(f"outpoint vout must be within 0..{MAX_VOUT}")
    return txid.lower(), index
