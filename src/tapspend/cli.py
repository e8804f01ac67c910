#!/usr/bin/env python3
"""
tapspend CLI: two-leaf taptree builder + script-path spender + path verifier

Tree
  leaf 0 (hash-lock): OP_SHA256 <sha256(preimage)> OP_EQUALVERIFY <alice> OP_CHECKSIG
  leaf 1 (key-lock):  <bob> OP_CHECKSIG
  internal key: bob (default) or the BIP-341 NUMS point (--nums-internal-key)

Quick start (regtest sketch)
1) python -m tapspend.cli build-tree --alice-secret <a> --bob-secret <b> --preimage <s>
2) bitcoin-cli -regtest sendtoaddress <address> 0.00010000
3) python -m tapspend.cli spend --alice-secret <a> --bob-secret <b> --preimage <s> \\
       --leaf hash-lock --signer-secret <a> --outpoint <txid>:<vout> --amount 10000 --fee 330 \\
       --dest-address <bcrt1...>
4) bitcoin-cli -regtest sendrawtransaction <raw_hex>
"""
import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .assembler import Funding, Outpoint, TxOutput, assemble_script_path_spend
from .curve import Secp256k1
from .hexutil import file_or_hex, parse_hex, parse_outpoint
from .policy import NETWORKS, HashLockPolicy, KeyLockPolicy, SpendParams
from .signer import KeySigner
from .taproot import (
    NUMS_INTERNAL_KEY,
    TaprootOutput,
    build_taproot_output,
    compute_control_block,
    derive_address,
)
from .tapscript import build_leaf, disasm, hash_lock
from .verify import verify_script_path

LEAF_NAMES = ('hash-lock', 'key-lock')


def _xonly_arg(curve: Secp256k1, name: str, pk_hex: Optional[str], secret_hex: Optional[str]) -> bytes:
    if pk_hex:
        return parse_hex(f'{name}-pk', pk_hex, length=32)
    if secret_hex:
        return curve.xonly_from_secret(parse_hex(f'{name}-secret', secret_hex, length=32))
    raise ValueError(f'--{name}-pk or --{name}-secret required')


def _payment_hash(args: argparse.Namespace) -> bytes:
    if args.payment_hash:
        return parse_hex('payment-hash', args.payment_hash, length=32)
    if args.preimage:
        return hash_lock(parse_hex('preimage', args.preimage))
    raise ValueError('--payment-hash or --preimage required')


def _taproot_from_args(args: argparse.Namespace, curve: Secp256k1) -> TaprootOutput:
    alice = _xonly_arg(curve, 'alice', args.alice_pk, args.alice_secret)
    bob = _xonly_arg(curve, 'bob', args.bob_pk, args.bob_secret)
    leaves = [
        build_leaf(HashLockPolicy(_payment_hash(args), alice), curve, name='hash-lock'),
        build_leaf(KeyLockPolicy(bob), curve, name='key-lock'),
    ]
    if args.nums_internal_key:
        internal = NUMS_INTERNAL_KEY
    elif args.internal_key:
        internal = parse_hex('internal-key', args.internal_key, length=32)
    else:
        internal = bob
    return build_taproot_output(internal, leaves, curve)


def _leaf_index(name: str) -> int:
    return LEAF_NAMES.index(name)


def _emit(args: argparse.Namespace, out: Dict[str, Any]) -> None:
    if args.json:
        print(json.dumps(out))
        return
    width = max(len(k) for k in out)
    for k, v in out.items():
        if isinstance(v, list):
            v = ' '.join(str(x) for x in v)
        print(f'{k.ljust(width)} = {v}')


def cmd_build_tree(args: argparse.Namespace) -> None:
    curve = Secp256k1()
    output = _taproot_from_args(args, curve)
    out: Dict[str, Any] = {}
    for i, leaf in enumerate(output.tree.leaves):
        out[f'script{i}'] = leaf.script.hex()
        out[f'leaf_hash{i}'] = leaf.leaf_hash.hex()
        if args.disasm:
            out[f'disasm{i}'] = disasm(leaf.script)
    out['internal_key'] = output.internal_key.hex()
    out['merkle_root'] = output.tree.merkle_root.hex()
    out['output_key'] = output.output_key.key.hex()
    out['parity'] = output.output_key.parity
    out['script_pubkey'] = output.script_pubkey.hex()
    out['address'] = derive_address(output, args.network)
    _emit(args, out)


def cmd_control_block(args: argparse.Namespace) -> None:
    curve = Secp256k1()
    output = _taproot_from_args(args, curve)
    cb = compute_control_block(output, _leaf_index(args.leaf))
    _emit(args, {
        'leaf': args.leaf,
        'leaf_version': cb.leaf_version,
        'parity': cb.parity,
        'merkle_path': [h.hex() for h in cb.merkle_path],
        'control_block': cb.hex(),
    })


def cmd_spend(args: argparse.Namespace) -> None:
    params = SpendParams(
        outpoint=args.outpoint,
        amount=args.amount,
        fee=args.fee,
        destination=args.dest_address,
        destination_spk=args.dest_spk,
        network=args.network,
    )
    params.validate()
    curve = Secp256k1()
    output = _taproot_from_args(args, curve)
    txid, vout = parse_outpoint(params.outpoint)
    if params.destination_spk is not None:
        dest_spk = parse_hex('dest-spk', params.destination_spk)
    else:
        from .txio import scriptpubkey_from_address
        dest_spk = scriptpubkey_from_address(params.destination, params.network)

    aux: Dict[str, bytes] = {}
    if args.preimage:
        aux['preimage'] = parse_hex('preimage', args.preimage)
    signer = KeySigner(parse_hex('signer-secret', args.signer_secret, length=32))
    funding_spk = output.script_pubkey
    if args.funding_spk:
        funding_spk = parse_hex('funding-spk', args.funding_spk)

    res = assemble_script_path_spend(
        Funding(Outpoint(txid, vout), params.amount, funding_spk),
        output,
        _leaf_index(args.leaf),
        [TxOutput(params.send_amount, dest_spk)],
        signer,
        aux,
    )
    _emit(args, {
        'txid': res.txid,
        'witness': [w.hex() for w in res.witness],
        'raw_hex': res.raw_hex,
    })


def cmd_verify_path(args: argparse.Namespace) -> None:
    script = file_or_hex('tapscript', args.tapscript, args.tapscript_file)
    control = file_or_hex('control', args.control, args.control_file)
    spk = parse_hex('witness-spk', args.witness_spk)
    res = verify_script_path(script, control, spk, Secp256k1())
    if args.json:
        print(json.dumps(res))
        return
    print('[OK] taproot path verified' if res['ok'] else '[FAIL] taproot path mismatch')
    print('expected_spk =', res['expected_spk'])
    print('actual_spk   =', res['actual_spk'])
    if res['reason']:
        print('reason       =', res['reason'])


def _add_tree_args(p: argparse.ArgumentParser) -> None:
    p.add_argument('--alice-pk', help='32B hex x-only key signing the hash-lock leaf')
    p.add_argument('--alice-secret', help='32B hex secret; derives --alice-pk')
    p.add_argument('--bob-pk', help='32B hex x-only key signing the key-lock leaf')
    p.add_argument('--bob-secret', help='32B hex secret; derives --bob-pk')
    p.add_argument('--payment-hash', help='32B hex sha256(preimage)')
    p.add_argument('--preimage', help='hex preimage (hash-lock spend, or to derive --payment-hash)')
    p.add_argument('--internal-key', help='32B hex x-only internal key (default: bob)')
    p.add_argument('--nums-internal-key', action='store_true', help='use the BIP-341 NUMS point as internal key')
    p.add_argument('--network', default='bitcoin/regtest', choices=NETWORKS, help='chain for address encoding')
    p.add_argument('--json', action='store_true', help='print JSON output')


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description='tapspend CLI (build taptree, spend a leaf, verify a path)',
                                 epilog=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument('-v', '--verbose', action='count', default=0, help='-v info, -vv debug logging')
    sub = ap.add_subparsers(dest='cmd', required=True)

    ap_b = sub.add_parser('build-tree', help='build the two-leaf taptree, output key and address')
    _add_tree_args(ap_b)
    ap_b.add_argument('--disasm', action='store_true', help='print leaf script disassembly')
    ap_b.set_defaults(func=cmd_build_tree)

    ap_c = sub.add_parser('control-block', help='print the control block for one leaf')
    _add_tree_args(ap_c)
    ap_c.add_argument('--leaf', choices=LEAF_NAMES, required=True)
    ap_c.set_defaults(func=cmd_control_block)

    ap_s = sub.add_parser('spend', help='sign and finalize a script-path spend of a funded output')
    _add_tree_args(ap_s)
    ap_s.add_argument('--leaf', choices=LEAF_NAMES, required=True)
    ap_s.add_argument('--signer-secret', required=True, help='32B hex secret of the leaf key')
    ap_s.add_argument('--outpoint', required=True, help='<txid>:<vout> of the funding output')
    ap_s.add_argument('--amount', required=True, type=int, help='funding output value (sats)')
    ap_s.add_argument('--fee', required=True, type=int, help='fee (sats)')
    ap_s.add_argument('--dest-address', help='destination address')
    ap_s.add_argument('--dest-spk', help='destination scriptPubKey hex')
    ap_s.add_argument('--funding-spk', help='funded scriptPubKey hex (default: derived output)')
    ap_s.set_defaults(func=cmd_spend)

    ap_v = sub.add_parser('verify-path', help='verify leaf script + control block against a scriptPubKey')
    ap_v.add_argument('--tapscript', help='leaf script hex')
    ap_v.add_argument('--tapscript-file', help='read leaf script hex from file')
    ap_v.add_argument('--control', help='control block hex')
    ap_v.add_argument('--control-file', help='read control block hex from file')
    ap_v.add_argument('--witness-spk', required=True, help='expected P2TR scriptPubKey hex')
    ap_v.add_argument('--json', action='store_true', help='print JSON output')
    ap_v.set_defaults(func=cmd_verify_path)

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )
    try:
        args.func(args)
    except (ValueError, IndexError) as e:
        print(f'ERROR: {e}', file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
