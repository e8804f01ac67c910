"""
Tapscript leaf construction

Leaf kinds
1) hash-then-key:  OP_SHA256 <h> OP_EQUALVERIFY <pk> OP_CHECKSIG
2) key-only:       <pk> OP_CHECKSIG

Witness (script-path)
- hash-then-key: [sig, preimage, script, control]
- key-only:      [sig, script, control]

Also: compact-size encoding, BIP-340 tagged hashes, TapLeaf hashes and a
small disassembler for debugging output.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .curve import Secp256k1
from .errors import PolicyError, SerializationError
from .policy import HashLockPolicy, KeyLockPolicy, LeafPolicy

# Opcodes
OP_1 = 0x51
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_SHA256 = 0xa8
OP_CHECKSIG = 0xac

LEAF_VERSION = 0xC0  # BIP-342 tapscript leaf version
MAX_COMPACT_SIZE = 0xFFFFFFFFFFFFFFFF


def pushdata(data: bytes) -> bytes:
    n = len(data)
    if n < 0x4c:
        return bytes([n]) + data
    elif n <= 0xff:
        return b"\x4c" + bytes([n]) + data
    elif n <= 0xffff:
        return b"\x4d" + n.to_bytes(2, "little") + data
    else:
        return b"\x4e" + n.to_bytes(4, "little") + data


def compactsize(n: int) -> bytes:
    if n < 0 or n > MAX_COMPACT_SIZE:
        raise SerializationError(f"{n} is not representable as a compact size")
    if n < 0xfd:
        return bytes([n])
    elif n <= 0xffff:
        return b"\xfd" + n.to_bytes(2, "little")
    elif n <= 0xffffffff:
        return b"\xfe" + n.to_bytes(4, "little")
    else:
        return b"\xff" + n.to_bytes(8, "little")


def compactsize_len(n: int) -> int:
    if n < 0 or n > MAX_COMPACT_SIZE:
        raise SerializationError(f"{n} is not representable as a compact size")
    if n < 0xfd:
        return 1
    elif n <= 0xffff:
        return 3
    elif n <= 0xffffffff:
        return 5
    return 9


def tagged_sha256(tag: str, msg: bytes) -> bytes:
    t = hashlib.sha256(tag.encode()).digest()
    return hashlib.sha256(t + t + msg).digest()


def tapleaf_hash(script: bytes, leaf_version: int = LEAF_VERSION) -> bytes:
    """BIP-341 tagged TapLeaf hash."""
    data = bytes([leaf_version]) + compactsize(len(script)) + script
    return tagged_sha256("TapLeaf", data)


def hash_lock(preimage: bytes) -> bytes:
    return hashlib.sha256(preimage).digest()


class LeafKind(Enum):
    HASH_THEN_KEY = "hash-then-key"
    KEY_ONLY = "key-only"


@dataclass(frozen=True)
class Leaf:
    """One alternative spending path.

    ``pubkey`` is the x-only key whose signature the script checks; the
    finalizer looks signatures up by it.
    """
    script: bytes
    kind: LeafKind
    pubkey: bytes
    leaf_version: int = LEAF_VERSION
    name: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.script:
            raise PolicyError("leaf script must not be empty")
        if not 0 <= self.leaf_version <= 0xFE or self.leaf_version & 0x01:
            raise PolicyError(f"invalid leaf version {self.leaf_version:#04x} (must be even)")

    @property
    def leaf_hash(self) -> bytes:
        return tapleaf_hash(self.script, self.leaf_version)


def build_leaf(policy: LeafPolicy, curve: Secp256k1, *, name: Optional[str] = None) -> Leaf:
    """Turn a declarative policy into a tapscript leaf.

    Raises:
        PolicyError: a field is malformed or the pubkey is not a curve point.
    """
    policy.validate()
    if not curve.is_xonly_point(bytes(policy.pubkey)):
        raise PolicyError("pubkey is not a valid x-only secp256k1 point")
    pk = bytes(policy.pubkey)

    script = bytearray()
    if isinstance(policy, HashLockPolicy):
        script += bytes([OP_SHA256]) + pushdata(bytes(policy.payment_hash)) + bytes([OP_EQUALVERIFY])
        script += pushdata(pk) + bytes([OP_CHECKSIG])
        kind = LeafKind.HASH_THEN_KEY
    elif isinstance(policy, KeyLockPolicy):
        script += pushdata(pk) + bytes([OP_CHECKSIG])
        kind = LeafKind.KEY_ONLY
    else:
        raise PolicyError(f"unsupported policy {type(policy).__name__}")
    return Leaf(bytes(script), kind, pk, name=name)


def disasm(script: bytes) -> str:
    names: Dict[int, str] = {
        OP_1: 'OP_1',
        OP_EQUAL: 'OP_EQUAL',
        OP_EQUALVERIFY: 'OP_EQUALVERIFY',
        OP_SHA256: 'OP_SHA256',
        OP_CHECKSIG: 'OP_CHECKSIG',
    }
    out: list[str] = []
    i = 0
    while i < len(script):
        op = script[i]; i += 1
        if op in names:
            out.append(names[op])
            continue
        if op < 0x4c:
            ln = op
        elif op == 0x4c:
            ln = script[i]; i += 1
        elif op == 0x4d:
            ln = int.from_bytes(script[i:i+2], 'little'); i += 2
        elif op == 0x4e:
            ln = int.from_bytes(script[i:i+4], 'little'); i += 4
        else:
            out.append(f'OP_UNKNOWN<{op:#04x}>')
            continue
        data = script[i:i+ln]; i += ln
        out.append(data.hex())
    return ' '.join(out)
