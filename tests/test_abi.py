import json

import pytest

from evmbridge.abi import Abi, AbiError, decode, encode

ZERO = "0x" + "00" * 20
APPROVE_PACKED = bytes.fromhex(
    "095ea7b30000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000a"
)

ABI_JSON = json.dumps([
    {"type": "constructor", "inputs": [{"name": "n", "type": "string"}]},
    {"type": "function", "name": "approve",
     "inputs": [{"name": "to", "type": "address"}, {"name": "id", "type": "uint256"}],
     "outputs": []},
    {"type": "function", "name": "get", "inputs": [],
     "outputs": [{"name": "a", "type": "uint256"}, {"name": "b", "type": "address"}]},
    {"type": "event", "name": "E", "inputs": [
        {"name": "x", "type": "uint8", "indexed": False},
        {"name": "who", "type": "address", "indexed": True},
        {"name": "d", "type": "bytes", "indexed": False}]},
])


def test_encode_uint_word():
    assert encode(["uint256"], [10]) == bytes(31) + b"\x0a"


def test_round_trip_mixed_types():
    types = ["uint8", "bytes32", "uint64", "address", "bytes", "string",
             "uint256[]", "bool", "int16", "(uint256,bytes)", "uint8[2]"]
    values = [2, b"\x01" * 32, 7, "0x" + "ab" * 20, b"hello", "world",
              [1, 2, 3], True, -5, (9, b"xy"), [4, 5]]
    assert decode(types, encode(types, values)) == values


def test_encoding_is_word_aligned():
    assert len(encode(["bytes", "string"], [b"abc", "defgh"])) % 32 == 0


def test_overflow_rejected():
    with pytest.raises(AbiError):
        encode(["uint8"], [256])


def test_bad_bool_rejected():
    with pytest.raises(AbiError):
        decode(["bool"], bytes(31) + b"\x02")


def test_short_data_rejected():
    with pytest.raises(AbiError):
        decode(["uint256"], b"invalid")


def test_pack_approve():
    abi = Abi.from_json(ABI_JSON)
    assert abi.pack("approve", ZERO, 10) == APPROVE_PACKED


def test_pack_unknown_method_and_wrong_count():
    abi = Abi.from_json(ABI_JSON)
    with pytest.raises(AbiError):
        abi.pack("missing", ZERO)
    with pytest.raises(AbiError):
        abi.pack("approve", ZERO)


def test_constructor_pack_has_no_selector():
    abi = Abi.from_json(ABI_JSON)
    assert abi.pack("", "name") == encode(["string"], ["name"])


def test_unpack_outputs():
    abi = Abi.from_json(ABI_JSON)
    data = encode(["uint256", "address"], [5, "0x" + "12" * 20])
    assert abi.unpack("get", data) == [5, "0x" + "12" * 20]


def test_unpack_misaligned_fails():
    abi = Abi.from_json(ABI_JSON)
    with pytest.raises(AbiError):
        abi.unpack("approve", APPROVE_PACKED)


def test_unpack_empty_with_outputs_fails():
    abi = Abi.from_json(ABI_JSON)
    with pytest.raises(AbiError):
        abi.unpack("get", b"")


def test_unpack_event_skips_indexed():
    abi = Abi.from_json(ABI_JSON)
    data = encode(["uint8", "bytes"], [3, b"zz"])
    assert abi.unpack_event("E", data) == {"x": 3, "d": b"zz"}