import io

from evmbridge.transactor import (
    DEFAULT_TRANSACTION_OPTIONS,
    PrepareTransactor,
    TransactOptions,
    merge_transaction_options,
)

BYTE_DATA = bytes([47, 47, 241, 93, 159, 45, 240, 254, 210, 199, 118, 72, 222, 88, 96, 164, 204, 80, 140, 208, 129, 140, 133, 184, 184, 161, 171, 76, 238, 239, 141, 152, 28, 137, 86, 166, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 60, 48, 181, 109, 237, 4, 127, 230, 34, 95, 112, 4, 234, 75, 225, 174, 112, 201, 2, 106])
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def test_transactor_with_prepare_success(capsys):
    tx_hash = PrepareTransactor().transact(ZERO_ADDRESS, BYTE_DATA, TransactOptions())
    assert "0x" + tx_hash.hex() == (
        "0x0000000000000000000000000000000000000000000000000000000000000000"
    )
    printed = capsys.readouterr().out
    assert BYTE_DATA.hex() in printed
    assert ZERO_ADDRESS in printed


def test_prepare_writes_to_given_stream():
    out = io.StringIO()
    PrepareTransactor(out).transact(None, b"\xab", TransactOptions())
    text = out.getvalue()
    assert "Calldata:\nab\n" in text
    assert "To:\n<nil>\n" in text


def test_merge_fills_all_unset_fields():
    merged = merge_transaction_options(TransactOptions(), DEFAULT_TRANSACTION_OPTIONS)
    assert merged == DEFAULT_TRANSACTION_OPTIONS


def test_merge_keeps_set_fields():
    primary = TransactOptions(gas_limit=10, gas_price=5, priority=2)
    merged = merge_transaction_options(primary, DEFAULT_TRANSACTION_OPTIONS)
    assert merged.gas_limit == 10
    assert merged.gas_price == 5
    assert merged.priority == 2
    assert merged.value == 0
    assert merged.nonce is None


def test_merge_keeps_explicit_zero_price():
    additional = TransactOptions(gas_price=7)
    merged = merge_transaction_options(TransactOptions(gas_price=0), additional)
    assert merged.gas_price == 0


def test_merge_does_not_modify_inputs():
    primary = TransactOptions()
    merge_transaction_options(primary, DEFAULT_TRANSACTION_OPTIONS)
    assert primary == TransactOptions()