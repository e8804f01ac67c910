import pytest
from typing import Any, cast

from tapspend.errors import PolicyError
from tapspend.policy import HashLockPolicy, KeyLockPolicy, SpendParams

TXID = 'cc6bbc55755d2b3fc3a55bcb3fc9505804960a239abc0db9098c752aabd11003'


def test_policies_validate_lengths():
    HashLockPolicy(b'\xaa' * 32, b'\xbb' * 32).validate()
    KeyLockPolicy(b'\xbb' * 32).validate()
    with pytest.raises(PolicyError, match='payment_hash'):
        HashLockPolicy(b'\xaa' * 31, b'\xbb' * 32).validate()
    with pytest.raises(PolicyError, match='pubkey'):
        HashLockPolicy(b'\xaa' * 32, b'\xbb' * 33).validate()
    with pytest.raises(PolicyError, match='pubkey'):
        KeyLockPolicy(cast(Any, 'bb' * 32)).validate()


def test_spend_params_validate_ok_and_coercion():
    p = SpendParams(outpoint=f'{TXID}:1', amount=cast(Any, '10000'), fee=330, destination_spk='0014' + '11' * 20)
    p.validate()
    assert p.amount == 10000
    assert p.send_amount == 9670


@pytest.mark.parametrize('kwargs', [
    {'outpoint': TXID},
    {'amount': -1},
    {'fee': 10000},
    {'destination_spk': None},
    {'destination_spk': 'zz'},
    {'network': 'litecoin'},
])
def test_spend_params_invalid(kwargs: dict) -> None:
    base: dict[str, Any] = {
        'outpoint': f'{TXID}:1',
        'amount': 10000,
        'fee': 330,
        'destination_spk': '0014' + '11' * 20,
    }
    base.update(kwargs)
    with pytest.raises(ValueError):
        SpendParams(**base).validate()
