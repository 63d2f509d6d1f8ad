"""Helpers for building contract calls and converting token amounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Any

from Crypto.Hash import keccak

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "00" * 20


@dataclass
class CallMsg:
    """Parameters of a message call executed against a node."""

    sender: str = ZERO_ADDRESS
    to: str | None = None
    gas: int = 0
    gas_price: int | None = None
    value: int | None = None
    data: bytes = b""


def keccak256(data: bytes | str) -> bytes:
    """Return the Keccak-256 digest of ``data``."""
    if isinstance(data, str):
        data = data.encode()
    return keccak.new(digest_bits=256, data=bytes(data)).digest()


def solidity_function_sig(signature: bytes | str) -> bytes:
    """Return the four-byte selector of a Solidity function signature."""
    return keccak256(signature)[:4]


def slice_to_32_bytes(data: bytes) -> bytes:
    """Copy ``data`` into exactly 32 bytes, zero-filling or truncating on the right."""
    return bytes(data[:32]).ljust(32, b"\x00")


def to_call_arg(msg: CallMsg) -> dict[str, Any]:
    """Convert a call message into the JSON-RPC argument object of ``eth_call``."""
    arg: dict[str, Any] = {"from": msg.sender, "to": msg.to}
    if msg.data:
        arg["data"] = "0x" + bytes(msg.data).hex()
    if msg.value is not None:
        arg["value"] = hex(msg.value)
    if msg.gas != 0:
        arg["gas"] = hex(msg.gas)
    if msg.gas_price is not None:
        arg["gasPrice"] = hex(msg.gas_price)
    return arg


def user_amount_to_wei(amount: str, decimals: int) -> int:
    """Convert a decimal token amount into its integer base-unit value.

    The fractional remainder beyond ``decimals`` places is truncated.
    """
    if decimals < 0:
        raise ValueError("decimals must not be negative")
    if not isinstance(amount, str) or amount != amount.strip() or "_" in amount:
        raise ValueError("wrong amount format")
    try:
        value = Decimal(amount)
    except InvalidOperation as exc:
        raise ValueError("wrong amount format") from exc
    if not value.is_finite():
        raise ValueError("wrong amount format")
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(amount) + decimals + 2)
        scaled = value.scaleb(decimals)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def wei_amount_to_user(amount: int, decimals: int) -> Decimal:
    """Convert an integer base-unit value into a decimal token amount."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(amount))) + abs(decimals) + 2)
        return Decimal(amount).scaleb(-decimals)


def simulate(caller: Any, block: int | None, tx_hash: bytes, sender: str) -> bytes:
    """Replay a known transaction as a call against ``block`` and return its output.

    ``caller`` must provide ``transaction_by_hash(tx_hash)`` returning
    ``(tx, is_pending)`` and ``call_contract(call_args, block)``.
    """
    try:
        tx, _ = caller.transaction_by_hash(tx_hash)
    except Exception as exc:
        logger.debug("[client] tx by hash error: %s", exc)
        raise
    logger.debug(
        "from: %s to: %s gas: %s gasPrice: %s value: %s data: %s",
        sender, tx.to, tx.gas, tx.gas_price, tx.value, tx.data,
    )
    msg = CallMsg(
        sender=sender,
        to=tx.to,
        gas=tx.gas,
        gas_price=tx.gas_price,
        value=tx.value,
        data=tx.data,
    )
    try:
        result = caller.call_contract(to_call_arg(msg), block)
    except Exception as exc:
        logger.debug("[client] call contract error: %s", exc)
        raise
    output = bytes(result)
    logger.debug("%r", output)
    return output