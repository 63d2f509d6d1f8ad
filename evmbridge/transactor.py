"""Transaction options and the calldata-printing transactor."""

from __future__ import annotations

import sys
from dataclasses import dataclass, fields, replace
from typing import TextIO

ZERO_HASH = bytes(32)

# Transaction priority is encoded as a single byte to save on data.
TX_PRIORITIES = {
    "none": 0,
    "slow": 1,
    "medium": 2,
    "fast": 3,
}


@dataclass(frozen=True)
class TransactOptions:
    """Options for sending a transaction; ``None`` and zero mean unset."""

    gas_limit: int = 0
    gas_price: int | None = None
    value: int | None = None
    nonce: int | None = None
    chain_id: int | None = None
    priority: int = 0


DEFAULT_TRANSACTION_OPTIONS = TransactOptions(gas_limit=2000000, gas_price=0, value=0)


def _is_unset(value: object) -> bool:
    return value is None or (isinstance(value, int) and not isinstance(value, bool) and value == 0
                             and not isinstance(value, _Explicit))


class _Explicit(int):
    """Marker type never used for values; keeps ``_is_unset`` readable."""


_NULLABLE = {"gas_price", "value", "nonce", "chain_id"}


def merge_transaction_options(
    primary: TransactOptions, additional: TransactOptions
) -> TransactOptions:
    """Return ``primary`` with its unset fields taken from ``additional``.

    Optional fields count as unset when ``None``; ``gas_limit`` and
    ``priority`` count as unset when zero.
    """
    updates = {}
    for field in fields(TransactOptions):
        current = getattr(primary, field.name)
        unset = current is None if field.name in _NULLABLE else current == 0
        if unset:
            updates[field.name] = getattr(additional, field.name)
    return replace(primary, **updates)


class PrepareTransactor:
    """Writes the target and calldata of each transaction instead of sending it."""

    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out

    def transact(self, to: str | None, data: bytes, opts: TransactOptions) -> bytes:
        """Print the target address and calldata; return the zero hash."""
        stream = self.out if self.out is not None else sys.stdout
        target = "<nil>" if to is None else to
        stream.write(
            "\n===============================================\n"
            f"To:\n{target}\n\n"
            f"Calldata:\n{bytes(data).hex()}\n"
            "===============================================\n"
        )
        return ZERO_HASH