"""
Script-path spend assembly.

Builds the one-input transaction spending a funded Taproot output through
one of its leaves: unsigned tx, tapscript sighash, external signature,
finalized witness, serialized transaction. Signatures are not verified
here; the signer's output is trusted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

from . import txio
from .errors import FundingMismatchError
from .signer import Signer
from .taproot import TaprootOutput, compute_control_block
from .witness import finalize, serialize_witness

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outpoint:
    txid: str  # display (big-endian) hex
    index: int


@dataclass(frozen=True)
class Funding:
    outpoint: Outpoint
    value: int
    script_pubkey: bytes


@dataclass(frozen=True)
class TxOutput:
    value: int
    script_pubkey: bytes


@dataclass(frozen=True)
class FinalizedTransaction:
    txid: str
    raw_hex: str
    witness: Tuple[bytes, ...]
    witness_bytes: bytes

    @property
    def raw(self) -> bytes:
        return bytes.fromhex(self.raw_hex)


def assemble_script_path_spend(
    funding: Funding,
    output: TaprootOutput,
    leaf_index: int,
    outputs: Sequence[TxOutput],
    signer: Signer,
    aux: Optional[Mapping[str, Any]] = None,
    *,
    version: int = 2,
    locktime: int = 0,
    sequence: int = 0xFFFFFFFF,
) -> FinalizedTransaction:
    """Spend ``funding`` via leaf ``leaf_index`` of ``output``.

    Raises:
        FundingMismatchError: the funded scriptPubKey is not ``output``'s.
        IndexError: leaf_index is out of range.
        MissingDataError: the signer's key does not sign this leaf, or aux
            lacks a value the leaf needs.
    """
    spk = output.script_pubkey
    if bytes(funding.script_pubkey) != spk:
        raise FundingMismatchError(
            f'funded scriptPubKey {bytes(funding.script_pubkey).hex()} does not match taproot output {spk.hex()}'
        )
    control_block = compute_control_block(output, leaf_index)
    leaf = output.tree.leaves[leaf_index]

    tx = txio.build_unsigned_tx(
        funding.outpoint.txid, funding.outpoint.index,
        [(o.value, o.script_pubkey) for o in outputs],
        version=version, locktime=locktime, sequence=sequence,
    )
    sighash = txio.tapscript_sighash(tx, 0, [(funding.value, spk)], leaf.leaf_hash)
    log.debug('tapscript sighash for leaf %d: %s', leaf_index, sighash.hex())

    signatures = {bytes(signer.xonly_pubkey): bytes(signer.sign(sighash))}
    items = finalize(leaf, control_block, signatures, aux)
    witness_bytes = serialize_witness(items)
    txio.set_input_witness(tx, 0, items)

    raw = txio.serialize_tx(tx)
    txid = txio.txid_hex(tx)
    log.info('assembled script-path spend %s (%d bytes)', txid, len(raw))
    return FinalizedTransaction(txid, raw.hex(), tuple(items), witness_bytes)
