"""
Spending policies and spend parameters.

A policy is a declarative description of one leaf script; ``build_leaf`` in
``tapscript`` turns it into bytes. ``SpendParams`` collects the literal
values a caller supplies to spend a funded output.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from .errors import PolicyError

MAX_MONEY = 21_000_000 * 100_000_000
NETWORKS = ('bitcoin', 'bitcoin/testnet', 'bitcoin/signet', 'bitcoin/regtest')


def _check_xonly(name: str, value: bytes) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
        raise PolicyError(f"{name} must be a 32-byte x-only pubkey")


@dataclass(frozen=True)
class HashLockPolicy:
    """``OP_SHA256 <payment_hash> OP_EQUALVERIFY <pubkey> OP_CHECKSIG``.

    Attributes:
        payment_hash: 32-byte sha256 of the preimage revealed when spending.
        pubkey: 32-byte x-only key whose signature the leaf checks.
    """
    payment_hash: bytes
    pubkey: bytes

    def validate(self) -> None:
        if not isinstance(self.payment_hash, (bytes, bytearray)) or len(self.payment_hash) != 32:
            raise PolicyError("payment_hash must be 32 bytes (sha256)")
        _check_xonly('pubkey', self.pubkey)


@dataclass(frozen=True)
class KeyLockPolicy:
    """``<pubkey> OP_CHECKSIG``."""
    pubkey: bytes

    def validate(self) -> None:
        _check_xonly('pubkey', self.pubkey)


LeafPolicy = Union[HashLockPolicy, KeyLockPolicy]


def normalize_sats(name: str, value: Any) -> int:
    """Coerce a satoshi amount to int within 0..MAX_MONEY."""
    try:
        n = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if n < 0:
        raise ValueError(f"{name} must be non-negative")
    if n > MAX_MONEY:
        raise ValueError(f"{name} exceeds the 21M BTC supply")
    return n


@dataclass
class SpendParams:
    """Literal parameters for spending one funded Taproot output.

    Attributes:
        outpoint: ``<txid>:<vout>`` of the funding output.
        amount: value of the funding output in sats.
        fee: fee in sats; the single destination receives amount - fee.
        destination: address string, unless ``destination_spk`` is given.
        destination_spk: raw destination scriptPubKey hex.
        network: python-bitcointx chain name used for address handling.
    """
    outpoint: str
    amount: int
    fee: int
    destination: Optional[str] = None
    destination_spk: Optional[str] = None
    network: str = 'bitcoin/regtest'

    def validate(self) -> None:
        from .hexutil import parse_outpoint, parse_hex
        parse_outpoint(self.outpoint)
        self.amount = normalize_sats('amount', self.amount)
        self.fee = normalize_sats('fee', self.fee)
        if self.fee >= self.amount:
            raise ValueError("fee must be smaller than amount")
        if not (self.destination or self.destination_spk):
            raise ValueError("destination address or destination_spk is required")
        if self.destination_spk is not None:
            parse_hex('destination_spk', self.destination_spk)
        if self.network not in NETWORKS:
            raise ValueError(f"network must be one of {', '.join(NETWORKS)}")

    @property
    def send_amount(self) -> int:
        return self.amount - self.fee
