"""Gas price determination for legacy and EIP-1559 transactions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

logger = logging.getLogger(__name__)

# Lowest max priority fee used when the base fee exceeds the configured limit.
TWO_AND_THE_HALF_GWEI = 2_500_000_000


@dataclass
class GasPricerOpts:
    """Configuration shared by the gas pricers.

    ``upper_limit_fee_per_gas`` caps the price; ``gas_price_factor``
    multiplies the static price; ``args`` is free for custom pricers.
    """

    upper_limit_fee_per_gas: int | None = None
    gas_price_factor: float | Decimal | None = None
    args: list[Any] = field(default_factory=list)


def multiply_gas_price(gas_estimate: int, multiplier: float | Decimal | int) -> int:
    """Multiply a gas price by a factor, truncating toward zero."""
    return int(Decimal(gas_estimate) * Decimal(multiplier))


class StaticGasPricer:
    """Uses the node's suggested gas price, scaled and capped by the options."""

    def __init__(self, client: Any, opts: GasPricerOpts | None = None) -> None:
        self.client = client
        self.opts = opts

    def gas_price(self, priority: int | None = None) -> list[int]:
        """Return a one-element list holding the legacy gas price."""
        price = self.client.suggest_gas_price()
        logger.debug("Suggested GP %s", price)
        if self.opts is not None:
            if self.opts.gas_price_factor is not None:
                price = multiply_gas_price(price, self.opts.gas_price_factor)
            limit = self.opts.upper_limit_fee_per_gas
            if limit is not None and price > limit:
                price = limit
        return [price]


class LondonGasPricer:
    """Computes ``[max_priority_fee, max_fee]`` from the chain's base fee."""

    def __init__(self, client: Any, opts: GasPricerOpts | None = None) -> None:
        self.client = client
        self.opts = opts

    def gas_price(self, priority: int | None = None) -> list[int]:
        """Return the tip cap and fee cap, or a static price without a base fee."""
        base_fee = self.client.base_fee()
        if base_fee is None:
            return StaticGasPricer(self.client, self.opts).gas_price(None)
        return list(self._estimate(base_fee))

    def _upper_limit(self) -> int | None:
        return None if self.opts is None else self.opts.upper_limit_fee_per_gas

    def _estimate(self, base_fee: int) -> tuple[int, int]:
        limit = self._upper_limit()
        if limit is not None and limit < base_fee:
            tip = TWO_AND_THE_HALF_GWEI
            return tip, base_fee + tip
        tip = self.client.suggest_gas_tip_cap()
        fee_cap = tip + base_fee * 2
        if limit is not None and fee_cap > limit:
            tip = limit - base_fee
            fee_cap = limit
        return tip, fee_cap