"""Transactor that relays forwarded meta-transactions through Infura ITX."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from evmbridge import abi
from evmbridge.transactor import TransactOptions, merge_transaction_options
from evmbridge.util import keccak256

logger = logging.getLogger(__name__)

ZERO_HASH = bytes(32)

DEFAULT_TRANSACTION_OPTIONS = TransactOptions(
    gas_limit=400000,
    gas_price=1,
    priority=1,  # slow
    value=0,
)

# ITX only knows "slow" and "fast"; medium falls back to slow.
ITX_TX_PRIORITIES = {
    1: "slow",
    2: "slow",
    3: "fast",
}


@dataclass(frozen=True)
class RelayTx:
    """A transaction to be relayed: the forwarder target, its data and options."""

    to: str
    data: bytes
    opts: TransactOptions


@dataclass(frozen=True)
class SignedRelayTx:
    """A relay transaction with its id and the signature over it."""

    tx: RelayTx
    tx_id: bytes
    sig: bytes


def _hash_from_hex(text: str) -> bytes:
    digits = text[2:] if text.lower().startswith("0x") else text
    if len(digits) % 2:
        digits = "0" + digits
    raw = bytes.fromhex(digits)
    return raw[-32:].rjust(32, b"\x00")


def _relay_hash(result: Any) -> bytes:
    if result is None:
        return ZERO_HASH
    if not isinstance(result, Mapping):
        raise ValueError(f"unexpected relay response: {result!r}")
    for key, value in result.items():
        if key.lower() == "relaytransactionhash":
            return ZERO_HASH if value is None else _hash_from_hex(value)
    return ZERO_HASH


class ItxTransactor:
    """Wraps each transaction in a forwarder call, signs it and relays it.

    ``forwarder`` provides ``chain_id``, ``lock_nonce()``, ``unlock_nonce()``,
    ``unsafe_nonce()``, ``unsafe_increase_nonce()``, ``forwarder_address()``
    and ``forwarder_data(to, data, opts)``; ``relay_caller.call(method, *args)``
    performs the JSON-RPC call; ``signer.sign(digest)`` returns a signature.
    """

    def __init__(self, relay_caller: Any, forwarder: Any, signer: Any) -> None:
        self.relay_caller = relay_caller
        self.forwarder = forwarder
        self.signer = signer

    def transact(self, to: str, data: bytes, opts: TransactOptions) -> bytes:
        """Relay a forwarded transaction and return the relay transaction hash."""
        opts = merge_transaction_options(opts, DEFAULT_TRANSACTION_OPTIONS)
        opts = replace(opts, chain_id=self.forwarder.chain_id)

        self.forwarder.lock_nonce()
        try:
            nonce = self.forwarder.unsafe_nonce()
            opts = replace(opts, nonce=nonce)
            forwarder_data = self.forwarder.forwarder_data(to, data, opts)

            # The forwarder adds overhead on top of the wrapped call.
            opts = replace(opts, gas_limit=opts.gas_limit * 11 // 10)
            signed = self._sign_relay_tx(
                RelayTx(to=self.forwarder.forwarder_address(), data=bytes(forwarder_data), opts=opts)
            )
            tx_hash = self._send_transaction(signed)
            self.forwarder.unsafe_increase_nonce()
            return tx_hash
        finally:
            self.forwarder.unlock_nonce()

    def _sign_relay_tx(self, tx: RelayTx) -> SignedRelayTx:
        packed = abi.encode(
            ["address", "bytes", "uint256", "uint256", "string"],
            [
                tx.to,
                tx.data,
                tx.opts.gas_limit,
                tx.opts.chain_id,
                ITX_TX_PRIORITIES.get(tx.opts.priority, ""),
            ],
        )
        tx_id = keccak256(packed)
        message = b"\x19Ethereum Signed Message:\n" + str(len(tx_id)).encode() + tx_id
        sig = bytes(self.signer.sign(keccak256(message)))
        return SignedRelayTx(tx=tx, tx_id=tx_id, sig=sig)

    def _send_transaction(self, signed: SignedRelayTx) -> bytes:
        tx = signed.tx
        tx_arg = {
            "to": tx.to,
            "data": "0x" + tx.data.hex(),
            "gas": str(tx.opts.gas_limit),
            "schedule": ITX_TX_PRIORITIES.get(tx.opts.priority, ""),
        }
        result = self.relay_caller.call("relay_sendTransaction", tx_arg, "0x" + signed.sig.hex())
        return _relay_hash(result)