"""The Centrifuge asset store contract."""

from __future__ import annotations

import logging
from typing import Any

from evmbridge.abi import Abi
from evmbridge.contract import Contract

logger = logging.getLogger(__name__)

CENTRIFUGE_ASSET_STORE_ABI = '[{"anonymous":false,"inputs":[{"indexed":true,"internalType":"bytes32","name":"asset","type":"bytes32"}],"name":"AssetStored","type":"event"},{"inputs":[{"internalType":"bytes32","name":"","type":"bytes32"}],"name":"_assetsStored","outputs":[{"internalType":"bool","name":"","type":"bool"}],"stateMutability":"view","type":"function"},{"inputs":[{"internalType":"bytes32","name":"asset","type":"bytes32"}],"name":"store","outputs":[],"stateMutability":"nonpayable","type":"function"}]'
CENTRIFUGE_ASSET_STORE_BIN = "0x608060405234801561001057600080fd5b5061017c806100206000396000f3fe608060405234801561001057600080fd5b50600436106100365760003560e01c8063654cf88c1461003b57806396add60014610050575b600080fd5b61004e61004936600461012d565b610087565b005b61007361005e36600461012d565b60006020819052908152604090205460ff1681565b604051901515815260200160405180910390f35b60008181526020819052604090205460ff16156100ea5760405162461bcd60e51b815260206004820152601760248201527f617373657420697320616c72656164792073746f726564000000000000000000604482015260640160405180910390fd5b600081815260208190526040808220805460ff191660011790555182917f08ae553713effae7116be03743b167b8b803449ee8fb912c2ec43dc2c824f53591a250565b60006020828403121561013f57600080fd5b503591905056fea26469706673582212209c9d6578770cabe853461fb518f0de90a3d20c6312f7b412a9005d3860abce0764736f6c634300080b0033"


class AssetStoreContract(Contract):
    """Contract recording which Centrifuge asset hashes have been stored."""

    def __init__(self, client: Any, address: str, transactor: Any) -> None:
        super().__init__(
            address,
            Abi.from_json(CENTRIFUGE_ASSET_STORE_ABI),
            bytes.fromhex(CENTRIFUGE_ASSET_STORE_BIN[2:]),
            client,
            transactor,
        )

    def is_centrifuge_asset_stored(self, asset_hash: bytes) -> bool:
        """Return whether ``asset_hash`` has been stored."""
        logger.debug("Getting is centrifuge asset stored 0x%s", bytes(asset_hash).hex())
        result = self.call_contract("_assetsStored", bytes(asset_hash))
        return bool(result[0])