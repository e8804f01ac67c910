from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Any

from .curve import Secp256k1
from .errors import AddressError, CryptoError, SerializationError
from .tapscript import tagged_sha256
from .taptree import TapTree, build_taptree

log = logging.getLogger(__name__)

# BIP-341 "H" point: no known discrete log, so the key path is unspendable.
NUMS_INTERNAL_KEY = bytes.fromhex(
    '50929b74c1a04954b78b4b6035e97a5e078a5a0f28ec96d547bfee9ace803ac0'
)

TAPROOT_CONTROL_BASE_SIZE = 33
TAPROOT_CONTROL_NODE_SIZE = 32


@dataclass(frozen=True)
class OutputKey:
    """Tweaked Taproot output key.

    Attributes:
        key: 32-byte x-only output key Q.
        parity: y-parity of Q (0=even, 1=odd).
    """

    key: bytes
    parity: int


@dataclass(frozen=True)
class ControlBlock:
    """Taproot control block for one leaf.

    Attributes:
        leaf_version: Tapscript leaf version (low bit cleared).
        internal_key: 32-byte x-only internal key.
        parity: Parity bit of the Taproot output key (0=even, 1=odd).
        merkle_path: 32-byte sibling hashes from the leaf up to the root.
    """

    leaf_version: int
    internal_key: bytes
    parity: int
    merkle_path: Tuple[bytes, ...]

    def serialize(self) -> bytes:
        header = (self.leaf_version & 0xFE) | (self.parity & 0x01)
        return bytes([header]) + self.internal_key + b''.join(self.merkle_path)

    def hex(self) -> str:
        return self.serialize().hex()


@dataclass(frozen=True)
class TaprootOutput:
    """An internal key committed to a script tree."""

    internal_key: bytes
    tree: TapTree
    output_key: OutputKey

    @property
    def script_pubkey(self) -> bytes:
        return scriptpubkey_from_xonly(self.output_key.key)


def parse_control_block(b: bytes) -> ControlBlock:
    """Parse serialized control block bytes."""
    if len(b) < TAPROOT_CONTROL_BASE_SIZE:
        raise SerializationError('control block too short')
    if (len(b) - TAPROOT_CONTROL_BASE_SIZE) % TAPROOT_CONTROL_NODE_SIZE != 0:
        raise SerializationError('control block length must be 33 + 32*n bytes')

    hdr = b[0]
    nodes = tuple(bytes(b[i:i + 32]) for i in range(TAPROOT_CONTROL_BASE_SIZE, len(b), TAPROOT_CONTROL_NODE_SIZE))
    return ControlBlock(
        leaf_version=hdr & 0xFE,
        internal_key=bytes(b[1:33]),
        parity=hdr & 0x01,
        merkle_path=nodes,
    )


def taptweak(internal_xonly: bytes, merkle_root: bytes) -> bytes:
    return tagged_sha256('TapTweak', internal_xonly + merkle_root)


def tweak_internal_key(internal_xonly: bytes, merkle_root: bytes, curve: Secp256k1) -> OutputKey:
    """Compute Q = P + int(H_TapTweak(P || root))*G.

    Raises:
        CryptoError: the internal key does not lift to a curve point, the
            tweak is not below the curve order, or Q is the point at infinity.
    """
    if len(internal_xonly) != 32:
        raise CryptoError('internal key must be 32 bytes')
    if len(merkle_root) != 32:
        raise CryptoError('merkle root must be 32 bytes')
    t_int = int.from_bytes(taptweak(internal_xonly, merkle_root), 'big')
    qx, parity = curve.tweak_add(internal_xonly, t_int)
    return OutputKey(qx, parity)


def build_taproot_output(internal_xonly: bytes, leaves: Sequence[Any], curve: Secp256k1) -> TaprootOutput:
    """Build the script tree for ``leaves`` and commit ``internal_xonly`` to it."""
    tree = build_taptree(leaves)
    output_key = tweak_internal_key(internal_xonly, tree.merkle_root, curve)
    for i, leaf in enumerate(tree.leaves):
        if leaf.pubkey == internal_xonly:
            log.warning(
                'internal key %s also signs leaf %d; its holder can spend via the key path and skip the script tree',
                internal_xonly.hex(), i,
            )
    log.debug('output key %s parity=%d', output_key.key.hex(), output_key.parity)
    return TaprootOutput(bytes(internal_xonly), tree, output_key)


def compute_control_block(output: TaprootOutput, leaf_index: int) -> ControlBlock:
    """Control block proving leaf ``leaf_index`` is committed in ``output``.

    Raises:
        IndexError: leaf_index is out of range.
    """
    path = output.tree.merkle_path(leaf_index)
    leaf = output.tree.leaves[leaf_index]
    cb = ControlBlock(
        leaf_version=leaf.leaf_version,
        internal_key=output.internal_key,
        parity=output.output_key.parity,
        merkle_path=path,
    )
    log.debug('control block for leaf %d: depth=%d', leaf_index, len(path))
    return cb


def scriptpubkey_from_xonly(xonly_q: bytes) -> bytes:
    if len(xonly_q) != 32:
        raise ValueError('x-only pubkey must be 32 bytes')
    return b"\x51\x20" + xonly_q


def derive_address(output: Optional[TaprootOutput], network: str = 'bitcoin/regtest') -> str:
    """bech32m address of ``output`` on ``network`` (python-bitcointx chain name).

    Raises:
        AddressError: no output was supplied or the encoder rejected it.
    """
    if output is None:
        raise AddressError('no taproot output to derive an address from')
    from .txio import address_from_scriptpubkey
    try:
        return address_from_scriptpubkey(output.script_pubkey, network)
    except ImportError:
        raise
    except Exception as exc:
        raise AddressError(f'cannot encode address on {network}: {exc}') from exc
