"""
Taproot script-path verification.

Given a leaf script and a control block, recompute the output scriptPubKey
the pair commits to and compare it with an expected scriptPubKey (for
example the funded output's).
"""
from __future__ import annotations

from typing import Iterable, Optional, TypedDict

from .curve import Secp256k1
from .errors import TaprootError
from .taproot import parse_control_block, scriptpubkey_from_xonly, tweak_internal_key
from .tapscript import tapleaf_hash
from .taptree import tapbranch_hash


class VerifyResult(TypedDict):
    ok: Optional[bool]
    expected_spk: Optional[str]
    actual_spk: str
    reason: Optional[str]


def merkle_ascend(leaf_hash: bytes, nodes: Iterable[bytes]) -> bytes:
    h = leaf_hash
    for n in nodes:
        h = tapbranch_hash(h, n)
    return h


def verify_script_path(script: bytes, control_block: bytes, witness_spk: bytes, curve: Secp256k1) -> VerifyResult:
    actual_spk = witness_spk.hex()
    try:
        cb = parse_control_block(control_block)
        root = merkle_ascend(tapleaf_hash(script, cb.leaf_version), cb.merkle_path)
        out = tweak_internal_key(cb.internal_key, root, curve)
        expected_spk = scriptpubkey_from_xonly(out.key).hex()
    except TaprootError as e:
        return {
            'ok': None,
            'expected_spk': None,
            'actual_spk': actual_spk,
            'reason': str(e),
        }

    if out.parity != cb.parity:
        return {
            'ok': False,
            'expected_spk': expected_spk,
            'actual_spk': actual_spk,
            'reason': 'control block parity mismatch',
        }

    ok = (expected_spk == actual_spk)
    return {
        'ok': ok,
        'expected_spk': expected_spk,
        'actual_spk': actual_spk,
        'reason': None if ok else 'scriptPubKey mismatch',
    }
