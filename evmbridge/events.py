"""Bridge event signatures and the deposit event listener."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from evmbridge.abi import Abi, AbiError
from evmbridge.util import ZERO_ADDRESS, keccak256

logger = logging.getLogger(__name__)


class EventSig(str, Enum):
    """Solidity signatures of the bridge events."""

    DEPOSIT = "Deposit(uint8,bytes32,uint64,address,bytes,bytes)"
    THRESHOLD_CHANGED = "RelayerThresholdChanged(uint256)"
    PROPOSAL_EVENT = "ProposalEvent(uint8,uint64,uint8,bytes32)"
    PROPOSAL_VOTE = "ProposalVote(uint8,uint64,uint8,bytes32)"

    @property
    def topic(self) -> bytes:
        """The log topic identifying this event."""
        return keccak256(self.value)


DEPOSIT_EVENT_ABI = [
    {
        "anonymous": False,
        "type": "event",
        "name": "Deposit",
        "inputs": [
            {"indexed": False, "name": "destinationDomainID", "type": "uint8"},
            {"indexed": False, "name": "resourceID", "type": "bytes32"},
            {"indexed": False, "name": "depositNonce", "type": "uint64"},
            {"indexed": True, "name": "user", "type": "address"},
            {"indexed": False, "name": "data", "type": "bytes"},
            {"indexed": False, "name": "handlerResponse", "type": "bytes"},
        ],
    }
]


@dataclass
class Deposit:
    """A deposit made on the bridge, with the handler's response."""

    destination_domain_id: int
    resource_id: bytes
    deposit_nonce: int
    sender_address: str = ZERO_ADDRESS
    data: bytes = b""
    handler_response: bytes = b""


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        text = value[2:] if value.lower().startswith("0x") else value
        return bytes.fromhex(text)
    return bytes(value)


class Listener:
    """Fetches and decodes deposit events from a chain client.

    The client provides ``fetch_event_logs(address, event, start, end)``
    returning log mappings with ``topics`` and ``data``.
    """

    def __init__(self, client: Any, abi: Abi | None = None) -> None:
        self.client = client
        self.abi = abi if abi is not None else Abi.from_json(DEPOSIT_EVENT_ABI)

    def fetch_deposits(self, contract_address: str, start_block: int, end_block: int) -> list[Deposit]:
        """Return the deposits logged by the contract in the block range."""
        logs = self.client.fetch_event_logs(
            contract_address, EventSig.DEPOSIT.value, start_block, end_block
        )
        deposits = []
        for entry in logs:
            try:
                deposit = self.unpack_deposit(_as_bytes(entry["data"]))
            except AbiError as exc:
                logger.error("failed unpacking deposit event log: %s", exc)
                continue
            deposit.sender_address = "0x" + _as_bytes(entry["topics"][1])[-20:].hex()
            logger.debug(
                "Found deposit log in block: %s, TxHash: %s, contractAddress: %s, sender: %s",
                entry.get("blockNumber"), entry.get("transactionHash"),
                entry.get("address"), deposit.sender_address,
            )
            deposits.append(deposit)
        return deposits

    def unpack_deposit(self, data: bytes) -> Deposit:
        """Decode the data of a deposit log."""
        fields = self.abi.unpack_event("Deposit", data)
        return Deposit(
            destination_domain_id=fields["destinationDomainID"],
            resource_id=fields["resourceID"],
            deposit_nonce=fields["depositNonce"],
            data=fields["data"],
            handler_response=fields["handlerResponse"],
        )