import os
import tempfile

import pytest

from tapspend.hexutil import parse_hex, file_or_hex, parse_outpoint


def test_parse_hex_valid_and_length():
    b = parse_hex('x', '00ff', length=2)
    assert b == bytes.fromhex('00ff')


def test_parse_hex_ignores_whitespace():
    assert parse_hex('x', ' 00 ff\n') == b'\x00\xff'


def test_parse_hex_invalid_raises():
    with pytest.raises(ValueError, match='Invalid hex'):
        parse_hex('x', 'zz')
    with pytest.raises(ValueError, match='must be 2 bytes'):
        parse_hex('x', '00', length=2)
    with pytest.raises(ValueError, match='required'):
        parse_hex('x', None)


def test_file_or_hex_precedence_and_file_reading():
    with tempfile.TemporaryDirectory() as td:
        p = os.path.join(td, 'h.txt')
        with open(p, 'wt') as f:
            f.write('0a\n')
        # hex arg takes precedence
        assert file_or_hex('x', 'ff', p) == b'\xff'
        assert file_or_hex('x', None, p) == b'\x0a'
    with pytest.raises(ValueError):
        file_or_hex('x', None, None)


def test_parse_outpoint():
    txid = 'CC6BBC55755D2B3FC3A55BCB3FC9505804960A239ABC0DB9098C752AABD11003'
    assert parse_outpoint(f'{txid}:1') == (txid.lower(), 1)


@pytest.mark.parametrize('value', [
    'cc' * 32,
    'cc' * 31 + ':0',
    'cc' * 32 + ':x',
    'cc' * 32 + ':-1',
    'cc' * 32 + ':4294967296',
])
def test_parse_outpoint_rejects_malformed(value: str) -> None:
    with pytest.raises(ValueError):
        parse_outpoint(value)
