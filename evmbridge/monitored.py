"""Transactor that watches sent transactions and resends stuck ones with more gas."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Callable

from evmbridge.transactor import (
    DEFAULT_TRANSACTION_OPTIONS,
    TransactOptions,
    merge_transaction_options,
)

logger = logging.getLogger(__name__)

RECEIPT_STATUS_SUCCESSFUL = 1


@dataclass(frozen=True)
class RawTx:
    """What is needed to rebuild a sent transaction."""

    nonce: int
    to: str | None
    value: int | None
    gas_limit: int
    gas_prices: tuple[int, ...]
    data: bytes
    submit_time: float
    creation_time: float


def _receipt_status(receipt: Any) -> int:
    status = receipt["status"] if isinstance(receipt, Mapping) else receipt.status
    if isinstance(status, str):
        return int(status, 16)
    return int(status)


class MonitoredTransactor:
    """Sends transactions and periodically resends stuck ones with higher gas.

    ``increase_percentage`` is the percentage added to the gas price on each
    resend; the price never rises above ``max_gas_price``. Times are seconds
    measured by ``clock``.
    """

    def __init__(
        self,
        tx_fabric: Callable[..., Any],
        gas_pricer: Any,
        client: Any,
        max_gas_price: int,
        increase_percentage: int,
        *,
        tx_timeout: float = math.inf,
        too_new_transaction: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.tx_fabric = tx_fabric
        self.gas_pricer = gas_pricer
        self.client = client
        self.max_gas_price = max_gas_price
        self.increase_percentage = increase_percentage
        self.tx_timeout = tx_timeout
        self.too_new_transaction = too_new_transaction
        self.clock = clock
        self._pending: dict[bytes, RawTx] = {}
        self._lock = threading.Lock()

    @property
    def pending(self) -> dict[bytes, RawTx]:
        """A copy of the transactions still being watched, by hash."""
        with self._lock:
            return dict(self._pending)

    def transact(self, to: str | None, data: bytes, opts: TransactOptions) -> bytes:
        """Send a transaction, start watching it and return its hash."""
        self.client.lock_nonce()
        try:
            nonce = int(self.client.unsafe_nonce())
            opts = merge_transaction_options(opts, DEFAULT_TRANSACTION_OPTIONS)
            gas_prices = [opts.gas_price]
            if opts.gas_price == 0:
                gas_prices = self.gas_pricer.gas_price(opts.priority)
            now = self.clock()
            raw = RawTx(
                nonce=nonce,
                to=to,
                value=opts.value,
                gas_limit=opts.gas_limit,
                gas_prices=tuple(gas_prices),
                data=bytes(data or b""),
                submit_time=now,
                creation_time=now,
            )
            tx = self.tx_fabric(raw.nonce, raw.to, raw.value, raw.gas_limit,
                                list(raw.gas_prices), raw.data)
            tx_hash = self.client.sign_and_send_transaction(tx)
            with self._lock:
                self._pending[tx_hash] = raw
            self.client.unsafe_increase_nonce()
            return tx_hash
        finally:
            self.client.unlock_nonce()

    def monitor(
        self,
        stop: threading.Event,
        resend_interval: float,
        tx_timeout: float,
        too_new_transaction: float,
    ) -> None:
        """Check pending transactions every ``resend_interval`` until ``stop`` is set."""
        self.tx_timeout = tx_timeout
        self.too_new_transaction = too_new_transaction
        while not stop.wait(resend_interval):
            self.check_pending()

    def check_pending(self) -> None:
        """Drop mined or timed-out transactions and resend stuck ones."""
        for old_hash, tx in self.pending.items():
            try:
                receipt = self.client.transaction_receipt(old_hash)
            except Exception:
                receipt = None
            if receipt is not None:
                if _receipt_status(receipt) == RECEIPT_STATUS_SUCCESSFUL:
                    logger.info("Executed transaction 0x%s with nonce %d", old_hash.hex(), tx.nonce)
                else:
                    logger.error("Transaction 0x%s failed on chain", old_hash.hex())
                self._forget(old_hash)
                continue

            now = self.clock()
            if now - tx.creation_time > self.tx_timeout:
                logger.error("Transaction 0x%s has timed out", old_hash.hex())
                self._forget(old_hash)
                continue
            if now - tx.submit_time < self.too_new_transaction:
                continue

            resent = replace(tx, gas_prices=tuple(self.increase_gas(tx.gas_prices)))
            try:
                new_hash = self._send(resent)
            except Exception as exc:
                logger.warning("Failed resending transaction 0x%s: %s", old_hash.hex(), exc)
                continue
            with self._lock:
                self._pending.pop(old_hash, None)
                self._pending[new_hash] = resent

    def _forget(self, tx_hash: bytes) -> None:
        with self._lock:
            self._pending.pop(tx_hash, None)

    def _send(self, tx: RawTx) -> bytes:
        built = self.tx_fabric(tx.nonce, tx.to, tx.value, tx.gas_limit,
                               list(tx.gas_prices), tx.data)
        tx_hash = self.client.sign_and_send_transaction(built)
        logger.debug("Resent transaction with nonce %d as 0x%s", tx.nonce, tx_hash.hex())
        return tx_hash

    def increase_gas(self, old_prices: Any) -> list[int]:
        """Raise each price by the preset percentage, floored and capped.

        A price the percentage does not change is raised by one.
        """
        new_prices = []
        for price in old_prices:
            increased = price + price * self.increase_percentage // 100
            if increased >= self.max_gas_price:
                increased = self.max_gas_price
            new_prices.append(price + 1 if increased == price else increased)
        return new_prices