"""Generic contract wrapper: packing calls, sending transactions, deploying."""

from __future__ import annotations

import logging
from typing import Any

from evmbridge.abi import Abi
from evmbridge.rlp import create_address
from evmbridge.transactor import TransactOptions
from evmbridge.util import CallMsg, to_call_arg

logger = logging.getLogger(__name__)

DEFAULT_DEPLOY_GAS_LIMIT = 6000000


class Contract:
    """A contract at an address, reached through a client and a transactor.

    The client provides ``from_address()``, ``call_contract(args, block)``,
    ``code_at(address, block)`` and ``get_transaction_by_hash(hash)``; the
    transactor provides ``transact(to, data, opts)``.
    """

    def __init__(
        self, address: str, abi: Abi, bytecode: bytes, client: Any, transactor: Any
    ) -> None:
        self.address = address
        self.abi = abi
        self.bytecode = bytes(bytecode)
        self.client = client
        self.transactor = transactor

    def pack_method(self, method: str, *args: Any) -> bytes:
        """Encode a call of ``method`` with ``args``."""
        try:
            return self.abi.pack(method, *args)
        except Exception as exc:
            logger.error("pack method error: %s", exc)
            raise

    def unpack_result(self, method: str, output: bytes) -> list[Any]:
        """Decode the return values of ``method``."""
        try:
            return self.abi.unpack(method, output)
        except Exception as exc:
            logger.error("unpack output error: %s", exc)
            raise

    def execute_transaction(self, method: str, opts: TransactOptions, *args: Any) -> bytes:
        """Send a transaction calling ``method`` and return its hash."""
        data = self.pack_method(method, *args)
        try:
            tx_hash = self.transactor.transact(self.address, data, opts)
        except Exception as exc:
            logger.error("error on executing %s at %s: %s", method, self.address, exc)
            raise
        logger.debug("method %s executed at %s, tx %s", method, self.address, tx_hash)
        return tx_hash

    def call_contract(self, method: str, *args: Any) -> list[Any]:
        """Call ``method`` without a transaction and return its decoded output."""
        data = self.pack_method(method, *args)
        msg = CallMsg(sender=self.client.from_address(), to=self.address, data=data)
        try:
            out = self.client.call_contract(to_call_arg(msg), None)
        except Exception as exc:
            logger.error("error on calling %s at %s: %s", method, self.address, exc)
            raise
        out = bytes(out or b"")
        if not out:
            code = self.client.code_at(self.address, None)
            if not code:
                raise ValueError(f"no code at provided address {self.address}")
        logger.debug("method %s called at %s", method, self.address)
        return self.unpack_result(method, out)

    def deploy_contract(self, *args: Any) -> str:
        """Deploy the bytecode with constructor ``args`` and return the new address."""
        data = self.pack_method("", *args)
        opts = TransactOptions(gas_limit=DEFAULT_DEPLOY_GAS_LIMIT)
        tx_hash = self.transactor.transact(None, self.bytecode + data, opts)
        tx, _ = self.client.get_transaction_by_hash(tx_hash)
        address = create_address(self.client.from_address(), tx.nonce)
        self.address = address
        logger.debug("successful contract deployment to %s, tx %s", address, tx_hash)
        return address