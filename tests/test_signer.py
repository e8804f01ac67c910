import hashlib

import pytest

from tapspend.errors import CryptoError

ALICE_SECRET = bytes.fromhex('00112233445566778899aabbccddee0000112233445566778899aabbccddee00')


def test_key_signer_pubkey_and_signature():
    pytest.importorskip('coincurve', reason='coincurve not installed')
    from tapspend.curve import Secp256k1
    from tapspend.signer import KeySigner

    signer = KeySigner(ALICE_SECRET, aux_randomness=b'\x00' * 32)
    assert signer.xonly_pubkey == Secp256k1().xonly_from_secret(ALICE_SECRET)
    msg = hashlib.sha256(b'sighash').digest()
    sig = signer.sign(msg)
    assert len(sig) == 64
    # zero aux randomness makes BIP-340 signing deterministic
    assert signer.sign(msg) == sig

    import coincurve.keys
    PublicKeyXOnly = getattr(coincurve.keys, 'PublicKeyXOnly', None)
    if PublicKeyXOnly is None:
        pytest.skip('coincurve without x-only key support')
    assert PublicKeyXOnly(signer.xonly_pubkey).verify(sig, msg)


def test_key_signer_rejects_bad_inputs():
    pytest.importorskip('coincurve', reason='coincurve not installed')
    from tapspend.signer import KeySigner

    with pytest.raises(CryptoError):
        KeySigner(b'\x00' * 32)
    with pytest.raises(CryptoError, match='sighash'):
        KeySigner(ALICE_SECRET).sign(b'\x01' * 31)
