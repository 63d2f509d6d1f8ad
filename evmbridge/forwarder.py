"""Minimal forwarder: nonce management and EIP-712 signed forward requests."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from evmbridge import abi
from evmbridge.transactor import TransactOptions
from evmbridge.util import keccak256

logger = logging.getLogger(__name__)

DOMAIN_NAME = "Forwarder"
DOMAIN_VERSION = "0.0.1"
_DOMAIN_TYPEHASH = keccak256(
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
_REQUEST_TYPEHASH = keccak256(
    "ForwardRequest(address from,address to,uint256 value,uint256 gas,uint256 nonce,bytes data)"
)


@dataclass
class ForwardRequest:
    """A request executed by the forwarder on behalf of ``sender``."""

    sender: str
    to: str
    value: int
    gas: int
    nonce: int
    data: bytes


class MinimalForwarder:
    """Builds signed forwarder calls and tracks the forwarder nonce.

    ``signer`` provides ``common_address()`` and ``sign(digest)``;
    ``forwarder_contract`` provides ``address``, ``get_nonce(sender)`` and
    ``prepare_execute(request, sig)``; ``nonce_store`` provides
    ``get_nonce(chain_id)`` and ``store_nonce(chain_id, nonce)``.
    """

    def __init__(self, chain_id: int, signer: Any, forwarder_contract: Any, nonce_store: Any) -> None:
        self.chain_id = chain_id
        self.signer = signer
        self.forwarder_contract = forwarder_contract
        self.nonce_store = nonce_store
        self._nonce: int | None = None
        self._lock = threading.Lock()

    def lock_nonce(self) -> None:
        """Take the nonce lock so no two requests share a nonce."""
        self._lock.acquire()

    def unlock_nonce(self) -> None:
        """Store the current nonce and release the lock; storage errors are logged."""
        try:
            self.nonce_store.store_nonce(self.chain_id, self._nonce)
        except Exception as exc:
            logger.error("failed storing nonce: %s", exc)
        finally:
            self._lock.release()

    def unsafe_nonce(self) -> int:
        """Return the current nonce, loading the higher of stored and on-chain values."""
        if self._nonce is None:
            stored = self.nonce_store.get_nonce(self.chain_id)
            on_chain = self.forwarder_contract.get_nonce(self.signer.common_address())
            self._nonce = stored if stored >= on_chain else on_chain
        return self._nonce

    def unsafe_increase_nonce(self) -> None:
        """Advance the nonce by one; call only while holding the lock."""
        if self._nonce is None:
            raise RuntimeError("nonce has not been loaded")
        self._nonce += 1

    def forwarder_address(self) -> str:
        """Address of the forwarder contract."""
        return self.forwarder_contract.address

    def forwarder_data(self, to: str, data: bytes, opts: TransactOptions) -> bytes:
        """Return the ABI-packed, signed ``execute`` call forwarding ``data`` to ``to``."""
        if opts.nonce is None:
            raise ValueError("nonce must be set")
        sender = self.signer.common_address()
        value = opts.value or 0
        data = bytes(data or b"")
        digest = self.typed_hash(
            sender, to, data, value, opts.gas_limit, opts.nonce, self.forwarder_address()
        )
        sig = bytearray(self.signer.sign(digest))
        sig[64] += 27  # V from 0/1 to 27/28
        request = ForwardRequest(
            sender=sender, to=to, value=value, gas=opts.gas_limit, nonce=opts.nonce, data=data
        )
        return self.forwarder_contract.prepare_execute(request, bytes(sig))

    def typed_hash(
        self,
        sender: str,
        to: str,
        data: bytes,
        value: int,
        gas: int,
        nonce: int,
        verifying_contract: str,
    ) -> bytes:
        """Return the EIP-712 digest of a forward request."""
        domain_separator = keccak256(abi.encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                _DOMAIN_TYPEHASH,
                keccak256(DOMAIN_NAME),
                keccak256(DOMAIN_VERSION),
                self.chain_id,
                verifying_contract,
            ],
        ))
        struct_hash = keccak256(abi.encode(
            ["bytes32", "address", "address", "uint256", "uint256", "uint256", "bytes32"],
            [_REQUEST_TYPEHASH, sender, to, value, gas, nonce, keccak256(bytes(data))],
        ))
        return keccak256(b"\x19\x01" + domain_separator + struct_hash)