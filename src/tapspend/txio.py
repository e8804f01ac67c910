"""
Transaction IO helpers (thin wrappers around python-bitcointx via dynamic import).

Builds the unsigned spending transaction, computes the BIP-341 tapscript
sighash, attaches a finalized witness, serializes the result and converts
between scriptPubKeys and address strings.
"""
from __future__ import annotations

from typing import Any, Sequence, Tuple


def _imp_core() -> Any:
    import importlib
    return importlib.import_module('bitcointx.core')


def _imp_script() -> Any:
    import importlib
    return importlib.import_module('bitcointx.core.script')


def _imp_wallet() -> Any:
    import importlib
    return importlib.import_module('bitcointx.wallet')


def _imp_chain_params() -> Any:
    import importlib
    return importlib.import_module('bitcointx').ChainParams


def _txouts(outputs: Sequence[Tuple[int, bytes]]) -> list:
    core = _imp_core()
    CScript = _imp_script().CScript
    return [core.CTxOut(value, CScript(spk)) for value, spk in outputs]


def build_unsigned_tx(prev_txid: str, prev_index: int, outputs: Sequence[Tuple[int, bytes]], *,
                      version: int = 2, locktime: int = 0, sequence: int = 0xFFFFFFFF) -> Any:
    """One-input unsigned transaction spending ``prev_txid:prev_index``.

    Args:
        prev_txid: funding txid in display (big-endian) hex.
        outputs: (value_sats, scriptPubKey) pairs.
    Returns:
        A bitcointx.core.CMutableTransaction.
    """
    core = _imp_core()
    outpoint = core.COutPoint(core.lx(prev_txid), prev_index)
    vin = [core.CTxIn(prevout=outpoint, nSequence=sequence)]
    return core.CMutableTransaction(vin, _txouts(outputs), nLockTime=locktime, nVersion=version)


def tapscript_sighash(tx: Any, input_index: int, spent_outputs: Sequence[Tuple[int, bytes]], tapleaf_hash: bytes) -> bytes:
    """BIP-341 SIGHASH_DEFAULT message for a script-path spend of ``input_index``."""
    script = _imp_script()
    return script.SignatureHashSchnorr(
        tx, input_index, _txouts(spent_outputs),
        hashtype=None,
        sigversion=script.SIGVERSION_TAPSCRIPT,
        tapleaf_hash=tapleaf_hash,
    )


def set_input_witness(tx: Any, input_index: int, items: Sequence[bytes]) -> None:
    core = _imp_core()
    CScriptWitness = _imp_script().CScriptWitness
    tx.wit.vtxinwit[input_index] = core.CTxInWitness(CScriptWitness(list(items)))


def serialize_tx(tx: Any) -> bytes:
    return tx.serialize()


def txid_hex(tx: Any) -> str:
    """txid in display order (double-SHA256 of the non-witness serialization)."""
    core = _imp_core()
    return core.b2lx(tx.GetTxid())


def address_from_scriptpubkey(spk: bytes, network: str) -> str:
    ChainParams = _imp_chain_params()
    CScript = _imp_script().CScript
    with ChainParams(network):
        return str(_imp_wallet().CCoinAddress.from_scriptPubKey(CScript(spk)))


def scriptpubkey_from_address(address: str, network: str) -> bytes:
    ChainParams = _imp_chain_params()
    with ChainParams(network):
        return bytes(_imp_wallet().CCoinAddress(address).to_scriptPubKey())
