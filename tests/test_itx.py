import hashlib
import hmac

import pytest

from evmbridge.itx import ItxTransactor
from evmbridge.transactor import TransactOptions
from evmbridge.util import keccak256

SIGNER_SCALAR = "e8e0f5427111dee651e63a6f1029da6929ebf7d2d61cefaf166cebefdf2c012e"
TO = "0x04005C8A516292af163b1AFe3D855b9f4f4631B5"

_P = 2**256 - 2**32 - 977
_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)


def _add(a, b):
    if a is None:
        return b
    if b is None:
        return a
    if a[0] == b[0] and (a[1] + b[1]) % _P == 0:
        return None
    if a == b:
        lam = 3 * a[0] * a[0] * pow(2 * a[1] % _P, -1, _P) % _P
    else:
        lam = (b[1] - a[1]) * pow((b[0] - a[0]) % _P, -1, _P) % _P
    x = (lam * lam - a[0] - b[0]) % _P
    return x, (lam * (a[0] - x) - a[1]) % _P


def _mul(k, point):
    result = None
    while k:
        if k & 1:
            result = _add(result, point)
        point = _add(point, point)
        k >>= 1
    return result


def _hmac(k, msg):
    return hmac.new(k, msg, hashlib.sha256).digest()


class _Signer:
    def __init__(self, scalar_hex):
        self.d = int(scalar_hex, 16)
        pub = _mul(self.d, _G)
        raw = pub[0].to_bytes(32, "big") + pub[1].to_bytes(32, "big")
        self.address = "0x" + keccak256(raw)[12:].hex()

    def common_address(self):
        return self.address

    def _k(self, z):
        seed = self.d.to_bytes(32, "big") + z.to_bytes(32, "big")
        v, k = b"\x01" * 32, b"\x00" * 32
        k = _hmac(k, v + b"\x00" + seed)
        v = _hmac(k, v)
        k = _hmac(k, v + b"\x01" + seed)
        v = _hmac(k, v)
        while True:
            v = _hmac(k, v)
            cand = int.from_bytes(v, "big")
            if 1 <= cand < _N:
                return cand
            k = _hmac(k, v + b"\x00")
            v = _hmac(k, v)

    def sign(self, digest):
        z = int.from_bytes(digest, "big") % _N
        k = self._k(z)
        point = _mul(k, _G)
        r = point[0] % _N
        s = pow(k, -1, _N) * (z + r * self.d) % _N
        rec = (point[1] & 1) | (2 if point[0] >= _N else 0)
        if s > _N // 2:
            s = _N - s
            rec ^= 1
        return r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([rec])


class _Forwarder:
    def __init__(self, nonce=1, nonce_error=None, data=b"", data_error=None):
        self.chain_id = 5
        self.calls = []
        self.seen = []
        self.nonce = nonce
        self.nonce_error = nonce_error
        self.data = data
        self.data_error = data_error

    def lock_nonce(self):
        self.calls.append("lock")

    def unlock_nonce(self):
        self.calls.append("unlock")

    def unsafe_nonce(self):
        self.calls.append("nonce")
        if self.nonce_error:
            raise self.nonce_error
        return self.nonce

    def unsafe_increase_nonce(self):
        self.calls.append("increase")

    def forwarder_address(self):
        return TO

    def forwarder_data(self, to, data, opts):
        self.seen.append((to, data, opts))
        if self.data_error:
            raise self.data_error
        return self.data


class _Relay:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def call(self, method, *args):
        self.calls.append((method, args))
        if self.error:
            raise self.error
        return self.result


FULL_OPTS = TransactOptions(
    gas_limit=200000, gas_price=1, priority=1, value=0, chain_id=5, nonce=1
)


@pytest.fixture(scope="module")
def signer():
    return _Signer(SIGNER_SCALAR)


def test_failed_fetching_nonce(signer):
    forwarder = _Forwarder(nonce_error=RuntimeError("error"))
    transactor = ItxTransactor(_Relay(), forwarder, signer)
    with pytest.raises(RuntimeError):
        transactor.transact(TO, b"", TransactOptions())
    assert forwarder.calls == ["lock", "nonce", "unlock"]


def test_failed_fetching_forwarder_data(signer):
    forwarder = _Forwarder(data_error=RuntimeError("error"))
    transactor = ItxTransactor(_Relay(), forwarder, signer)
    with pytest.raises(RuntimeError):
        transactor.transact(TO, b"", FULL_OPTS)
    assert forwarder.seen == [(TO, b"", FULL_OPTS)]
    assert "increase" not in forwarder.calls
    assert forwarder.calls[-1] == "unlock"


def test_failed_sending_transaction(signer):
    forwarder = _Forwarder()
    relay = _Relay(error=RuntimeError("error"))
    transactor = ItxTransactor(relay, forwarder, signer)
    with pytest.raises(RuntimeError):
        transactor.transact(TO, b"", FULL_OPTS)
    assert relay.calls[0][0] == "relay_sendTransaction"
    assert "increase" not in forwarder.calls
    assert forwarder.calls[-1] == "unlock"


def test_successful_send(signer):
    forwarder = _Forwarder()
    relay = _Relay()
    transactor = ItxTransactor(relay, forwarder, signer)
    tx_hash = transactor.transact(TO, b"", FULL_OPTS)
    expected_sig = "0x68ad089b7daeabcdd76520377822cc32eba0b41ea702358bc8f7249bc296d408781eb60366a3bb6ad9fc62dca08bdf440a7c4f02e3680aa0b477a2dd5423d5af01"
    method, args = relay.calls[0]
    assert method == "relay_sendTransaction"
    assert args[1] == expected_sig
    assert args[0]["gas"] == "220000"
    assert args[0]["schedule"] == "slow"
    assert args[0]["data"] == "0x"
    assert tx_hash == bytes(32)
    assert forwarder.calls == ["lock", "nonce", "increase", "unlock"]


def test_successful_send_with_default_opts_and_set_priority(signer):
    forwarder = _Forwarder()
    relay = _Relay()
    transactor = ItxTransactor(relay, forwarder, signer)
    transactor.transact(TO, b"", TransactOptions(priority=2))
    expected_opts = TransactOptions(
        gas_limit=400000, gas_price=1, priority=2, value=0, chain_id=5, nonce=1
    )
    expected_sig = "0x97e8845b060718b04c710e2e4bd786d80bc5d5843f41b0b461d756f5c5a5865f32fe1d82f838de6ac212d7caaf7e7f469510a75d3803173f5b5c21fec62a989900"
    assert forwarder.seen == [(TO, b"", expected_opts)]
    assert relay.calls[0][1][1] == expected_sig


def test_successful_send_with_default_opts_and_default_priority(signer):
    forwarder = _Forwarder()
    relay = _Relay()
    transactor = ItxTransactor(relay, forwarder, signer)
    transactor.transact(TO, b"", TransactOptions())
    expected_opts = TransactOptions(
        gas_limit=400000, gas_price=1, priority=1, value=0, chain_id=5, nonce=1
    )
    expected_sig = "0x97e8845b060718b04c710e2e4bd786d80bc5d5843f41b0b461d756f5c5a5865f32fe1d82f838de6ac212d7caaf7e7f469510a75d3803173f5b5c21fec62a989900"
    assert forwarder.seen == [(TO, b"", expected_opts)]
    assert relay.calls[0][1][1] == expected_sig
    assert relay.calls[0][1][0]["gas"] == "440000"


def test_relay_hash_is_returned_left_padded(signer):
    relay = _Relay(result={"relayTransactionHash": "0x0102"})
    transactor = ItxTransactor(relay, _Forwarder(), signer)
    tx_hash = transactor.transact(TO, b"", FULL_OPTS)
    assert tx_hash == bytes(30) + b"\x01\x02"