import hashlib
import importlib

import pytest

from tapspend.errors import FundingMismatchError, MissingDataError
from tapspend.policy import HashLockPolicy, KeyLockPolicy
from tapspend.taproot import build_taproot_output, compute_control_block
from tapspend.tapscript import build_leaf, hash_lock
from tapspend.witness import serialize_witness

PREIMAGE = bytes.fromhex('00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff')
ALICE_SECRET = bytes.fromhex('00112233445566778899aabbccddee0000112233445566778899aabbccddee00')
BOB_SECRET = bytes.fromhex('00112233445566778899aabbccddee0100112233445566778899aabbccddee01')
PREV_TXID = 'cc6bbc55755d2b3fc3a55bcb3fc9505804960a239abc0db9098c752aabd11003'
DEST_SPK = bytes.fromhex('0014' + '11' * 20)


def _bitcointx_available() -> bool:
    try:
        m = importlib.import_module('bitcointx.core.script')
        return hasattr(m, 'SignatureHashSchnorr')
    except Exception:
        return False


pytestmark = pytest.mark.skipif(not _bitcointx_available(), reason='python-bitcointx not available')


def _setup():
    pytest.importorskip('coincurve', reason='coincurve not installed')
    from tapspend.curve import Secp256k1
    curve = Secp256k1()
    alice = curve.xonly_from_secret(ALICE_SECRET)
    bob = curve.xonly_from_secret(BOB_SECRET)
    leaves = [
        build_leaf(HashLockPolicy(hash_lock(PREIMAGE), alice), curve),
        build_leaf(KeyLockPolicy(bob), curve),
    ]
    return build_taproot_output(bob, leaves, curve)


def _funding(output, value=10_000):
    from tapspend.assembler import Funding, Outpoint
    return Funding(Outpoint(PREV_TXID, 1), value, output.script_pubkey)


def _spend(output, leaf_index, secret, aux=None, funding=None):
    from tapspend.assembler import TxOutput, assemble_script_path_spend
    from tapspend.signer import KeySigner
    return assemble_script_path_spend(
        funding or _funding(output),
        output,
        leaf_index,
        [TxOutput(9_670, DEST_SPK)],
        KeySigner(secret),
        aux,
    )


def test_hash_lock_spend_end_to_end():
    output = _setup()
    res = _spend(output, 0, ALICE_SECRET, {'preimage': PREIMAGE})
    leaf = output.tree.leaves[0]
    cb = compute_control_block(output, 0).serialize()

    assert len(res.witness) == 4
    assert len(res.witness[0]) == 64
    assert res.witness[1:] == (PREIMAGE, leaf.script, cb)
    assert res.witness_bytes == serialize_witness(list(res.witness))
    assert len(res.witness_bytes) == 1 + sum(1 + len(i) for i in res.witness)

    raw = res.raw
    # version | marker+flag | vin/vout | witness | locktime
    assert raw[:4] == (2).to_bytes(4, 'little')
    assert raw[4:6] == b'\x00\x01'
    assert raw[-4:] == b'\x00' * 4
    assert raw[-4 - len(res.witness_bytes):-4] == res.witness_bytes
    assert bytes.fromhex(PREV_TXID)[::-1] in raw

    stripped = raw[:4] + raw[6:-4 - len(res.witness_bytes)] + raw[-4:]
    txid = hashlib.sha256(hashlib.sha256(stripped).digest()).digest()[::-1].hex()
    assert res.txid == txid


def test_hash_lock_signature_commits_to_tapscript_sighash():
    output = _setup()
    res = _spend(output, 0, ALICE_SECRET, {'preimage': PREIMAGE})

    from tapspend import txio
    tx = txio.build_unsigned_tx(PREV_TXID, 1, [(9_670, DEST_SPK)])
    msg = txio.tapscript_sighash(tx, 0, [(10_000, output.script_pubkey)], output.tree.leaves[0].leaf_hash)
    import coincurve.keys
    PublicKeyXOnly = getattr(coincurve.keys, 'PublicKeyXOnly', None)
    if PublicKeyXOnly is None:
        pytest.skip('coincurve without x-only key support')
    assert PublicKeyXOnly(output.tree.leaves[0].pubkey).verify(res.witness[0], msg)


def test_key_lock_spend_has_three_items():
    output = _setup()
    res = _spend(output, 1, BOB_SECRET)
    assert len(res.witness) == 3
    assert res.witness[1] == output.tree.leaves[1].script
    assert len(res.witness[2]) == 65


def test_spend_requires_preimage_and_matching_signer():
    output = _setup()
    with pytest.raises(MissingDataError, match='preimage'):
        _spend(output, 0, ALICE_SECRET)
    with pytest.raises(MissingDataError, match='signature'):
        _spend(output, 0, BOB_SECRET, {'preimage': PREIMAGE})


def test_spend_rejects_funding_mismatch_and_bad_index():
    from tapspend.assembler import Funding, Outpoint
    output = _setup()
    bad = Funding(Outpoint(PREV_TXID, 1), 10_000, b'\x51\x20' + b'\x00' * 32)
    with pytest.raises(FundingMismatchError):
        _spend(output, 0, ALICE_SECRET, {'preimage': PREIMAGE}, funding=bad)
    with pytest.raises(IndexError):
        _spend(output, 2, ALICE_SECRET, {'preimage': PREIMAGE})


def test_derive_address_regtest():
    from tapspend.taproot import derive_address
    from tapspend.txio import scriptpubkey_from_address
    output = _setup()
    addr = derive_address(output, 'bitcoin/regtest')
    assert addr.startswith('bcrt1p')
    assert scriptpubkey_from_address(addr, 'bitcoin/regtest') == output.script_pubkey
