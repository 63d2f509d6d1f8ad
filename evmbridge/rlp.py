"""Recursive length prefix encoding and contract address derivation."""

from __future__ import annotations

from typing import Any

from evmbridge.util import keccak256


def _length_prefix(length: int, offset: int) -> bytes:
    if length < 56:
        return bytes([offset + length])
    length_bytes = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([offset + 55 + len(length_bytes)]) + length_bytes


def encode(item: Any) -> bytes:
    """RLP-encode bytes, strings, non-negative integers and nested sequences."""
    if isinstance(item, (bytes, bytearray, memoryview)):
        payload = bytes(item)
        if len(payload) == 1 and payload[0] < 0x80:
            return payload
        return _length_prefix(len(payload), 0x80) + payload
    if isinstance(item, bool):
        raise TypeError("booleans cannot be RLP-encoded")
    if isinstance(item, int):
        if item < 0:
            raise ValueError("negative integers cannot be RLP-encoded")
        return encode(item.to_bytes((item.bit_length() + 7) // 8, "big"))
    if isinstance(item, str):
        return encode(item.encode())
    if isinstance(item, (list, tuple)):
        payload = b"".join(encode(element) for element in item)
        return _length_prefix(len(payload), 0xC0) + payload
    raise TypeError(f"cannot RLP-encode {type(item).__name__}")


def _address_bytes(address: str | bytes) -> bytes:
    if isinstance(address, str):
        text = address[2:] if address.lower().startswith("0x") else address
        raw = bytes.fromhex(text)
    else:
        raw = bytes(address)
    if len(raw) != 20:
        raise ValueError("address must be 20 bytes")
    return raw


def create_address(sender: str | bytes, nonce: int) -> str:
    """Return the address of a contract created by ``sender`` at ``nonce``."""
    digest = keccak256(encode([_address_bytes(sender), nonce]))
    return "0x" + digest[12:].hex()