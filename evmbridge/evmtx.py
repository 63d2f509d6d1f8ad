"""Legacy and EIP-1559 transactions, their signing hashes and raw encodings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Sequence

from evmbridge import rlp
from evmbridge.util import keccak256


class TxType(IntEnum):
    """Envelope type of a transaction."""

    LEGACY = 0
    DYNAMIC_FEE = 2


def _to_bytes(to: str | bytes | None) -> bytes:
    if to is None:
        return b""
    if isinstance(to, str):
        text = to[2:] if to.lower().startswith("0x") else to
        raw = bytes.fromhex(text)
    else:
        raw = bytes(to)
    if len(raw) != 20:
        raise ValueError("address must be 20 bytes")
    return raw


@dataclass
class Transaction:
    """An EVM transaction; ``v``, ``r`` and ``s`` are zero until it is signed."""

    tx_type: TxType
    nonce: int
    to: str | bytes | None
    value: int
    gas: int
    data: bytes = b""
    gas_price: int = 0
    gas_tip_cap: int = 0
    gas_fee_cap: int = 0
    chain_id: int | None = None
    v: int = 0
    r: int = 0
    s: int = 0

    def _common(self) -> tuple[bytes, int, bytes]:
        return _to_bytes(self.to), self.value or 0, bytes(self.data or b"")

    def signing_hash(self, chain_id: int) -> bytes:
        """Return the digest that is signed for this transaction on ``chain_id``."""
        to, value, data = self._common()
        if self.tx_type is TxType.DYNAMIC_FEE:
            payload = rlp.encode([
                chain_id, self.nonce, self.gas_tip_cap, self.gas_fee_cap,
                self.gas, to, value, data, [],
            ])
            return keccak256(bytes([TxType.DYNAMIC_FEE]) + payload)
        return keccak256(rlp.encode([
            self.nonce, self.gas_price, self.gas, to, value, data, chain_id, 0, 0,
        ]))

    def encode(self) -> bytes:
        """Return the binary encoding of the transaction with its current signature."""
        to, value, data = self._common()
        if self.tx_type is TxType.DYNAMIC_FEE:
            payload = rlp.encode([
                self.chain_id or 0, self.nonce, self.gas_tip_cap, self.gas_fee_cap,
                self.gas, to, value, data, [], self.v, self.r, self.s,
            ])
            return bytes([TxType.DYNAMIC_FEE]) + payload
        return rlp.encode([
            self.nonce, self.gas_price, self.gas, to, value, data, self.v, self.r, self.s,
        ])

    def hash(self) -> bytes:
        """Return the transaction hash."""
        return keccak256(self.encode())

    def raw_with_signature(self, signer: Any, chain_id: int | None) -> bytes:
        """Sign with ``signer`` for ``chain_id`` and return the raw signed transaction.

        ``signer.sign(digest)`` must return 65 bytes in ``R || S || V`` form
        with ``V`` equal to 0 or 1.
        """
        if chain_id is None:
            raise ValueError("no chain id specified")
        signature = bytes(signer.sign(self.signing_hash(chain_id)))
        if len(signature) != 65:
            raise ValueError(f"wrong size for signature: got {len(signature)}, want 65")
        recovery = signature[64]
        if recovery not in (0, 1):
            raise ValueError(f"invalid signature recovery id {recovery}")
        self.chain_id = chain_id
        self.r = int.from_bytes(signature[:32], "big")
        self.s = int.from_bytes(signature[32:64], "big")
        if self.tx_type is TxType.DYNAMIC_FEE:
            self.v = recovery
        else:
            self.v = recovery + 35 + chain_id * 2
        return self.encode()


def new_transaction(
    nonce: int,
    to: str | bytes | None,
    amount: int | None,
    gas_limit: int,
    gas_prices: Sequence[int],
    data: bytes,
) -> Transaction:
    """Build a transaction; two gas prices (tip cap, fee cap) make it dynamic-fee."""
    if not gas_prices:
        raise ValueError("at least one gas price is required")
    value = amount or 0
    if len(gas_prices) > 1:
        return Transaction(
            TxType.DYNAMIC_FEE, nonce, to, value, gas_limit, bytes(data or b""),
            gas_tip_cap=gas_prices[0], gas_fee_cap=gas_prices[1],
        )
    return Transaction(
        TxType.LEGACY, nonce, to, value, gas_limit, bytes(data or b""),
        gas_price=gas_prices[0],
    )