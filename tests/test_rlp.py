import pytest

from evmbridge.rlp import create_address, encode


def test_empty_bytes_and_list_are_fixed_markers():
    assert encode(b"") == b"\x80"
    assert encode([]) == b"\xc0"


def test_zero_encodes_like_empty_string():
    assert encode(0) == encode(b"")


def test_single_low_byte_encodes_as_itself():
    assert encode(b"\x7f") == b"\x7f"


def test_short_string_has_one_byte_prefix():
    payload = b"x" * 55
    encoded = encode(payload)
    assert len(encoded) == 56
    assert encoded[1:] == payload


def test_long_string_has_length_of_length_prefix():
    payload = b"x" * 56
    encoded = encode(payload)
    assert encoded[1] == 56
    assert encoded[2:] == payload


def test_list_payload_is_concatenation_of_items():
    encoded = encode([b"cat", b"dog"])
    assert encoded[1:] == encode(b"cat") + encode(b"dog")
    assert encode(("cat", "dog")) == encoded


def test_integer_matches_big_endian_bytes():
    assert encode(1024) == encode(b"\x04\x00")


def test_negative_integer_rejected():
    with pytest.raises(ValueError):
        encode(-1)


def test_unsupported_type_rejected():
    with pytest.raises(TypeError):
        encode(1.5)


def test_create_address_known_value():
    sender = "0x6ac7ea33f8831ea9dcc53393aaa88b25a785dbf0"
    assert create_address(sender, 0) == "0xcd234a471b72ba2f1ccf0a70fcaba648a5eecd8d"


def test_create_address_depends_on_nonce_and_accepts_bytes():
    sender = "0x6ac7ea33f8831ea9dcc53393aaa88b25a785dbf0"
    first = create_address(sender, 0)
    second = create_address(sender, 1)
    assert first != second
    assert len(second) == 42
    assert create_address(bytes.fromhex(sender[2:]), 1) == second


def test_create_address_rejects_bad_sender():
    with pytest.raises(ValueError):
        create_address("0x1234", 0)