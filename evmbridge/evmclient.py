"""JSON-RPC client for EVM chains with signing and nonce management."""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

import requests

from evmbridge.util import keccak256

logger = logging.getLogger(__name__)


class RpcError(Exception):
    """Raised when a JSON-RPC call fails."""

    def __init__(self, message: str, code: int | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class NotFoundError(RpcError):
    """Raised when the node has no record of what was asked for."""

    def __init__(self, message: str = "not found") -> None:
        super().__init__(message)


class TransactionFailedError(Exception):
    """Raised when a mined transaction reports a failed status."""

    def __init__(self, receipt: Mapping[str, Any], status: int) -> None:
        super().__init__(f"transaction failed on chain. Receipt status {status}")
        self.receipt = receipt
        self.status = status


class HttpRpc:
    """A JSON-RPC 2.0 endpoint reached over HTTP."""

    def __init__(self, url: str, session: Any = None, timeout: float = 30.0) -> None:
        self.url = url
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def call(self, method: str, *args: Any) -> Any:
        """Call ``method`` with positional ``args`` and return its result."""
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": list(args),
        }
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            raise RpcError(str(exc)) from exc
        except ValueError as exc:
            raise RpcError(f"invalid JSON-RPC response: {exc}") from exc
        error = body.get("error")
        if error:
            if isinstance(error, Mapping):
                raise RpcError(
                    str(error.get("message", "")), code=error.get("code"), data=error.get("data")
                )
            raise RpcError(str(error))
        return body.get("result")


@dataclass(frozen=True)
class TransactionInfo:
    """A transaction as reported by the node."""

    hash: bytes
    nonce: int
    to: str | None
    gas: int
    gas_price: int | None
    value: int
    data: bytes


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16)


def _to_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = value[2:] if value.lower().startswith("0x") else value
    return bytes.fromhex(text)


def _hex(data: bytes | str) -> str:
    if isinstance(data, str):
        return data if data.lower().startswith("0x") else "0x" + data
    return "0x" + bytes(data).hex()


def _block_arg(number: int | None) -> str:
    return "latest" if number is None else hex(number)


class EVMClient:
    """Talks to an EVM node and signs transactions with ``signer``.

    ``rpc.call(method, *args)`` performs JSON-RPC calls; ``signer`` provides
    ``common_address()`` and ``sign(digest)``.
    """

    def __init__(
        self,
        rpc: Any,
        signer: Any,
        *,
        sleep: Callable[[float], None] = time.sleep,
        receipt_retries: int = 50,
        receipt_interval: float = 5.0,
        nonce_retries: int = 10,
        nonce_interval: float = 1.0,
    ) -> None:
        self.rpc = rpc
        self.signer = signer
        self.sleep = sleep
        self.receipt_retries = receipt_retries
        self.receipt_interval = receipt_interval
        self.nonce_retries = nonce_retries
        self.nonce_interval = nonce_interval
        self._nonce: int | None = None
        self._nonce_lock = threading.Lock()

    @classmethod
    def from_url(cls, url: str, signer: Any, **kwargs: Any) -> "EVMClient":
        """Create a client for the HTTP JSON-RPC endpoint at ``url``."""
        return cls(HttpRpc(url), signer, **kwargs)

    def from_address(self) -> str:
        """Address transactions are sent from."""
        return self.signer.common_address()

    def relayer_address(self) -> str:
        """Address of the relayer, the same as the sending address."""
        return self.signer.common_address()

    def _latest_head(self) -> Mapping[str, Any]:
        head = self.rpc.call("eth_getBlockByNumber", _block_arg(None), False)
        if head is None:
            raise NotFoundError()
        return head

    def latest_block(self) -> int:
        """Number of the latest block."""
        head = self._latest_head()
        number = head.get("number")
        if number is None:
            raise ValueError("missing required field 'number' for Header")
        return _to_int(number)

    def transaction_receipt(self, tx_hash: bytes | str) -> Mapping[str, Any]:
        """Receipt of a mined transaction; raises ``NotFoundError`` otherwise."""
        receipt = self.rpc.call("eth_getTransactionReceipt", _hex(tx_hash))
        if receipt is None:
            raise NotFoundError()
        return receipt

    def wait_and_return_tx_receipt(self, tx_hash: bytes | str) -> Mapping[str, Any]:
        """Poll for a receipt; raise if the transaction failed or never appears."""
        for _ in range(self.receipt_retries):
            try:
                receipt = self.transaction_receipt(tx_hash)
            except Exception:
                self.sleep(self.receipt_interval)
                continue
            status = _to_int(receipt.get("status", 0))
            if status != 1:
                raise TransactionFailedError(receipt, status)
            return receipt
        raise TimeoutError("tx did not appear")

    def get_transaction_by_hash(self, tx_hash: bytes | str) -> tuple[TransactionInfo, bool]:
        """Return the transaction and whether it is still pending."""
        result = self.rpc.call("eth_getTransactionByHash", _hex(tx_hash))
        if result is None:
            raise NotFoundError()
        price = result.get("gasPrice", result.get("maxFeePerGas"))
        info = TransactionInfo(
            hash=_to_bytes(result.get("hash")),
            nonce=_to_int(result["nonce"]),
            to=result.get("to"),
            gas=_to_int(result.get("gas", 0)),
            gas_price=None if price is None else _to_int(price),
            value=_to_int(result.get("value", 0)),
            data=_to_bytes(result.get("input", result.get("data"))),
        )
        return info, result.get("blockNumber") is None

    def transaction_by_hash(self, tx_hash: bytes | str) -> tuple[TransactionInfo, bool]:
        """Same as ``get_transaction_by_hash``."""
        return self.get_transaction_by_hash(tx_hash)

    def fetch_event_logs(
        self,
        contract_address: str,
        event: str,
        start_block: int | None,
        end_block: int | None,
    ) -> list[Mapping[str, Any]]:
        """Logs of ``event`` emitted by the contract in the range, without removed ones."""
        query = {
            "fromBlock": "0x0" if start_block is None else hex(start_block),
            "toBlock": _block_arg(end_block),
            "address": [contract_address],
            "topics": [[_hex(keccak256(event))]],
        }
        logs = self.rpc.call("eth_getLogs", query) or []
        return [entry for entry in logs if not entry.get("removed", False)]

    def send_raw_transaction(self, raw_tx: bytes) -> None:
        """Submit an RLP-encoded signed transaction."""
        self.rpc.call("eth_sendRawTransaction", _hex(bytes(raw_tx)))

    def call_contract(self, call_args: Mapping[str, Any], block_number: int | None) -> bytes:
        """Execute a message call against ``block_number`` (latest if ``None``)."""
        return _to_bytes(self.rpc.call("eth_call", dict(call_args), _block_arg(block_number)))

    def pending_call_contract(self, call_args: Mapping[str, Any]) -> bytes:
        """Execute a message call against the pending state."""
        return _to_bytes(self.rpc.call("eth_call", dict(call_args), "pending"))

    def code_at(self, contract: str, block_number: int | None) -> bytes:
        """Contract code deployed at ``contract``."""
        return _to_bytes(self.rpc.call("eth_getCode", contract, _block_arg(block_number)))

    def chain_id(self) -> int:
        """Chain id reported by the node."""
        return _to_int(self.rpc.call("eth_chainId"))

    def sign_and_send_transaction(self, tx: Any) -> bytes:
        """Sign ``tx`` for this chain, send it and return its hash."""
        try:
            chain_id: int | None = self.chain_id()
        except Exception:
            # Some chains do not support the chain id call.
            chain_id = None
        raw = tx.raw_with_signature(self.signer, chain_id)
        self.send_raw_transaction(raw)
        return tx.hash()

    def lock_nonce(self) -> None:
        """Take the nonce lock."""
        self._nonce_lock.acquire()

    def unlock_nonce(self) -> None:
        """Release the nonce lock."""
        self._nonce_lock.release()

    def unsafe_nonce(self) -> int:
        """Current nonce, fetched from the node's pending state on first use."""
        if self._nonce is not None:
            return self._nonce
        last_error: Exception | None = None
        for _ in range(self.nonce_retries + 1):
            try:
                result = self.rpc.call(
                    "eth_getTransactionCount", self.signer.common_address(), "pending"
                )
            except Exception as exc:
                last_error = exc
                self.sleep(self.nonce_interval)
                continue
            self._nonce = _to_int(result)
            return self._nonce
        raise RpcError(f"could not fetch nonce: {last_error}") from last_error

    def unsafe_increase_nonce(self) -> None:
        """Advance the nonce by one; call only while holding the lock."""
        self._nonce = self.unsafe_nonce() + 1

    def base_fee(self) -> int | None:
        """Base fee of the latest block, or ``None`` before EIP-1559."""
        fee = self._latest_head().get("baseFeePerGas")
        return None if fee is None else _to_int(fee)

    def suggest_gas_price(self) -> int:
        """Legacy gas price suggested by the node."""
        return _to_int(self.rpc.call("eth_gasPrice"))

    def suggest_gas_tip_cap(self) -> int:
        """Priority fee suggested by the node."""
        return _to_int(self.rpc.call("eth_maxPriorityFeePerGas"))