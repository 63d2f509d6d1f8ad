"""Transactor that signs, sends and waits for each transaction."""

from __future__ import annotations

import logging
from typing import Any, Callable

from evmbridge.transactor import (
    DEFAULT_TRANSACTION_OPTIONS,
    TransactOptions,
    merge_transaction_options,
)

logger = logging.getLogger(__name__)


class SignAndSendTransactor:
    """Builds a transaction, signs and sends it, then waits for its receipt.

    ``tx_fabric(nonce, to, value, gas_limit, gas_prices, data)`` builds the
    transaction; ``gas_pricer.gas_price(priority)`` supplies gas prices;
    ``client`` manages the nonce, sends and waits.
    """

    def __init__(self, tx_fabric: Callable[..., Any], gas_pricer: Any, client: Any) -> None:
        self.tx_fabric = tx_fabric
        self.gas_pricer = gas_pricer
        self.client = client

    def transact(self, to: str | None, data: bytes, opts: TransactOptions) -> bytes:
        """Send a transaction and return its hash once it has been mined."""
        self.client.lock_nonce()
        try:
            nonce = int(self.client.unsafe_nonce())
            opts = merge_transaction_options(opts, DEFAULT_TRANSACTION_OPTIONS)
            gas_prices = [opts.gas_price]
            if opts.gas_price == 0:
                gas_prices = self.gas_pricer.gas_price(opts.priority)
            tx = self.tx_fabric(nonce, to, opts.value, opts.gas_limit, gas_prices, data)
            try:
                tx_hash = self.client.sign_and_send_transaction(tx)
            except Exception as exc:
                logger.error("sign and send error: %s", exc)
                raise
            self.client.unsafe_increase_nonce()
        finally:
            self.client.unlock_nonce()
        self.client.wait_and_return_tx_receipt(tx_hash)
        return tx_hash