# evmbridge

Building blocks for a relayer that moves deposits between EVM chains:
ABI encoding, contract calls, deposit payloads, event decoding, gas
pricing, transaction building and several ways of sending transactions.

## Modules

- `evmbridge.util`: `keccak256`, `solidity_function_sig`, `slice_to_32_bytes`,
  the `CallMsg` dataclass and `to_call_arg` (builds the `eth_call` argument
  object), `user_amount_to_wei` / `wei_amount_to_user` for token amounts, and
  `simulate`, which replays a known transaction as a call against a block.
- `evmbridge.rlp`: `encode` (RLP) and `create_address` (address of a
  contract created by a sender at a nonce).
- `evmbridge.abi`: `encode` / `decode` for Solidity ABI values, and `Abi`,
  built with `Abi.from_json`, with `pack`, `unpack` and `unpack_event`.
  Errors are raised as `AbiError`.
- `evmbridge.contract`: `Contract` with `pack_method`, `unpack_result`,
  `execute_transaction`, `call_contract` and `deploy_contract`.
- `evmbridge.centrifuge`: `AssetStoreContract.is_centrifuge_asset_stored`.
- `evmbridge.deposit`: byte payloads for ERC20, ERC721 and generic deposits,
  with or without a priority byte.
- `evmbridge.events`: `EventSig` (bridge event signatures and their log
  topics), the `Deposit` dataclass, and `Listener` with `fetch_deposits`
  and `unpack_deposit`.
- `evmbridge.gaspricer`: `GasPricerOpts`, `StaticGasPricer` (suggested price,
  optionally scaled by a factor and capped) and `LondonGasPricer`
  (`[max_priority_fee, max_fee]` from the base fee; falls back to the static
  price when the chain has no base fee).
- `evmbridge.evmtx`: `Transaction` (legacy or dynamic-fee) and
  `new_transaction`, which makes a dynamic-fee transaction when given two gas
  prices. `raw_with_signature` signs and returns the raw encoded transaction.
- `evmbridge.transactor`: `TransactOptions`, `merge_transaction_options` and
  `PrepareTransactor`, which prints the target and calldata instead of sending.
- `evmbridge.signandsend`: `SignAndSendTransactor` signs, sends and waits for
  the receipt.
- `evmbridge.monitored`: `MonitoredTransactor` keeps sent transactions and,
  through `monitor` or `check_pending`, drops mined or timed-out ones and
  resends stuck ones with gas raised by `increase_gas`.
- `evmbridge.forwarder`: `MinimalForwarder` tracks the forwarder nonce and
  builds EIP-712 signed `execute` calls from a `ForwardRequest`.
- `evmbridge.itx`: `ItxTransactor` wraps calls in forwarder requests and
  relays them with `relay_sendTransaction`.
- `evmbridge.evmclient`: `EVMClient` talks to a node through `HttpRpc`
  (JSON-RPC over HTTP), with receipts, logs, calls, nonce handling, base fee
  and gas price suggestions. `EVMClient.from_url` builds one from a URL.

## Installation

```
pip install evmbridge
```

## Examples

Convert a user-facing amount into its smallest unit:

```python
from evmbridge.util import user_amount_to_wei

assert user_amount_to_wei("1", 18) == 10**18
```

Compute a function selector and an event topic:

```python
from evmbridge.util import solidity_function_sig
from evmbridge.events import EventSig

assert solidity_function_sig(b"store(bytes32)") == bytes.fromhex("654cf88c")
topic = EventSig.DEPOSIT.topic
```

Build an ERC20 deposit payload:

```python
from evmbridge.deposit import construct_erc20_deposit_data

recipient = bytes.fromhex("8e5f72b158bedf0ab50eda78c70dfc118158c272")
payload = construct_erc20_deposit_data(recipient, 10)
assert len(payload) == 32 + 32 + 20
```

Print calldata for a multisig instead of sending it:

```python
from evmbridge.transactor import PrepareTransactor, TransactOptions

PrepareTransactor().transact("0x" + "00" * 20, b"\x01\x02", TransactOptions())
```

## What the package does not do

- It does not create or hold keys and does not compute ECDSA signatures.
  Wherever a signer is needed you supply an object with `common_address()` and
  `sign(digest)`, the latter returning 65 bytes in `R || S || V` form with `V`
  equal to 0 or 1.
- It has no persistent storage. `MinimalForwarder` takes a nonce store object
  with `get_nonce(chain_id)` and `store_nonce(chain_id, nonce)`.
- It has no command-line tool and no long-running relayer process; it is a
  library of parts for one.
- Apart from `AssetStoreContract`, it has no ready-made wrappers for specific
  contracts; use `Contract` with the contract's ABI.
- `EVMClient` speaks JSON-RPC over HTTP only; it has no subscriptions.

## Running the tests

```
pip install -e .[test]
pytest
```