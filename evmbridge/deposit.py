"""Byte layouts of the data passed to the bridge ``deposit`` method."""

from __future__ import annotations


def _padded(value: int, width: int) -> bytes:
    if value < 0:
        raise ValueError("value must not be negative")
    size = max(width, (value.bit_length() + 7) // 8)
    return value.to_bytes(size, "big")


def _priority_bytes(priority: int) -> bytes:
    if not 0 <= priority <= 0xFF:
        raise ValueError("priority must fit in one byte")
    return _padded(1, 1) + _padded(priority, 1)


def _main_deposit_data(token_stats: int, recipient: bytes) -> bytes:
    recipient = bytes(recipient)
    return _padded(token_stats, 32) + _padded(len(recipient), 32) + recipient


def construct_erc20_deposit_data(recipient: bytes, amount: int) -> bytes:
    """Amount, recipient length and recipient."""
    return _main_deposit_data(amount, recipient)


def construct_erc20_deposit_data_with_priority(
    recipient: bytes, amount: int, priority: int
) -> bytes:
    """ERC20 deposit data followed by the priority length and priority."""
    return _main_deposit_data(amount, recipient) + _priority_bytes(priority)


def construct_erc721_deposit_data(recipient: bytes, token_id: int, metadata: bytes) -> bytes:
    """Token id, recipient length, recipient, metadata length and metadata."""
    metadata = bytes(metadata)
    return _main_deposit_data(token_id, recipient) + _padded(len(metadata), 32) + metadata


def construct_erc721_deposit_data_with_priority(
    recipient: bytes, token_id: int, metadata: bytes, priority: int
) -> bytes:
    """ERC721 deposit data followed by the priority length and priority."""
    return construct_erc721_deposit_data(recipient, token_id, metadata) + _priority_bytes(priority)


def construct_generic_deposit_data(metadata: bytes) -> bytes:
    """Metadata length followed by metadata."""
    metadata = bytes(metadata)
    return _padded(len(metadata), 32) + metadata