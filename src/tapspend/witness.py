from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import CryptoError, MissingDataError, PolicyError, SerializationError
from .taproot import ControlBlock
from .tapscript import Leaf, LeafKind, compactsize, compactsize_len

log = logging.getLogger(__name__)

Signatures = Mapping[bytes, bytes]
AuxData = Optional[Mapping[str, Any]]


def _validate_signature(sig: bytes) -> None:
    if len(sig) not in (64, 65):
        raise CryptoError("signature must be 64 bytes (or 65 bytes including sighash byte)")


def _signature_for(leaf: Leaf, signatures: Signatures) -> bytes:
    sig = signatures.get(leaf.pubkey)
    if not sig:
        raise MissingDataError(f"no signature for leaf key {leaf.pubkey.hex()}")
    sig = bytes(sig)
    _validate_signature(sig)
    return sig


def _key_only_items(leaf: Leaf, signatures: Signatures, aux: AuxData) -> List[bytes]:
    return [_signature_for(leaf, signatures)]


def _hash_then_key_items(leaf: Leaf, signatures: Signatures, aux: AuxData) -> List[bytes]:
    # OP_CHECKSIG runs after OP_SHA256 pops the preimage, so sig sits below it.
    sig = _signature_for(leaf, signatures)
    preimage = (aux or {}).get('preimage')
    if preimage is None:
        raise MissingDataError("preimage is required for a hash-then-key leaf")
    return [sig, bytes(preimage)]


_WITNESS_BUILDERS: Dict[LeafKind, Callable[[Leaf, Signatures, AuxData], List[bytes]]] = {
    LeafKind.KEY_ONLY: _key_only_items,
    LeafKind.HASH_THEN_KEY: _hash_then_key_items,
}


def witness_items(leaf: Leaf, signatures: Signatures, aux: AuxData = None) -> List[bytes]:
    """Stack items satisfying ``leaf.script``, in push order."""
    builder = _WITNESS_BUILDERS.get(leaf.kind)
    if builder is None:
        raise PolicyError(f"no finalizer for leaf kind {leaf.kind!r}")
    return builder(leaf, signatures, aux)


def finalize(leaf: Leaf, control_block: ControlBlock, signatures: Signatures, aux: AuxData = None) -> List[bytes]:
    """Build the Taproot script-path witness stack for ``leaf``.

    hash-then-key: [sig, preimage, script, control]
    key-only:      [sig, script, control]

    Raises:
        MissingDataError: the leaf's signature or a required aux value is absent.
    """
    items = witness_items(leaf, signatures, aux)
    items.append(leaf.script)
    items.append(control_block.serialize())
    log.debug('finalized %s witness with %d items', leaf.kind.value, len(items))
    return items


def serialize_witness(items: Sequence[bytes]) -> bytes:
    """compactSize(count) then compactSize(len) || item for each item."""
    total = compactsize_len(len(items))
    for item in items:
        total += compactsize_len(len(item)) + len(item)
    buf = bytearray(total)
    view = memoryview(buf)
    pos = 0
    for chunk in _witness_chunks(items):
        view[pos:pos + len(chunk)] = chunk
        pos += len(chunk)
    return bytes(buf)


def _witness_chunks(items: Sequence[bytes]):
    yield compactsize(len(items))
    for item in items:
        yield compactsize(len(item))
        yield item


def read_compactsize(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a compact size at ``offset``; returns (value, next_offset)."""
    if offset >= len(data):
        raise SerializationError("truncated compact size")
    first = data[offset]
    if first < 0xfd:
        return first, offset + 1
    width = {0xfd: 2, 0xfe: 4, 0xff: 8}[first]
    end = offset + 1 + width
    if end > len(data):
        raise SerializationError("truncated compact size")
    return int.from_bytes(data[offset + 1:end], 'little'), end


def deserialize_witness(data: bytes) -> List[bytes]:
    count, pos = read_compactsize(data)
    items: List[bytes] = []
    for _ in range(count):
        n, pos = read_compactsize(data, pos)
        if pos + n > len(data):
            raise SerializationError("truncated witness item")
        items.append(bytes(data[pos:pos + n]))
        pos += n
    if pos != len(data):
        raise SerializationError(f"{len(data) - pos} trailing bytes after witness")
    return items
