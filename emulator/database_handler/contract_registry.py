# emulator/database_handler/contract_registry.py

import copy
from typing import Any

from eth_utils import is_hex_address
from loguru import logger

from emulator.database_handler.contract_snapshot import ContractArtifacts
from emulator.database_handler.errors import (
    InvalidAddressFormatError,
    NotFoundError,
)
from emulator.node.types import normalize_address


class ContractRegistry:
    """Contracts deployed by each creator, in deployment order."""

    def __init__(
        self,
        artifacts: ContractArtifacts,
        created_contracts: dict[str, list[str]] | None = None,
    ):
        self.artifacts = artifacts
        self._created_contracts: dict[str, list[str]] = copy.deepcopy(
            created_contracts or {}
        )

    def _creator_key(self, creator_address: str) -> str:
        if not is_hex_address(creator_address):
            raise InvalidAddressFormatError(creator_address)
        return normalize_address(creator_address)

    def record_deployment(self, creator_address: str, contract_address: str) -> None:
        creator = self._creator_key(creator_address)
        if creator in self._created_contracts:
            logger.debug(f"{creator} has contracts. Appending {contract_address}")
            self._created_contracts[creator].append(contract_address)
        else:
            logger.debug(f"No contracts for {creator}. Creating new entry")
            self._created_contracts[creator] = [contract_address]

    def list_for_creator(self, creator_address: str) -> list[str]:
        creator = self._creator_key(creator_address)
        contracts = self._created_contracts.get(creator)
        if not contracts:
            raise NotFoundError(creator, f"Address {creator} has not deployed any contract")
        return list(contracts)

    def contract_state_lookup(self, contract_address: str, kind: str) -> Any:
        return self.artifacts.read(contract_address, kind)

    def contracts_for_creator(self, creator_address: str) -> list[dict]:
        """Every contract of the creator together with its current state."""
        return [
            {
                "address": contract_address,
                "state": self.artifacts.read(contract_address, "state"),
            }
            for contract_address in self.list_for_creator(creator_address)
        ]

    def to_dict(self) -> dict[str, list[str]]:
        return copy.deepcopy(self._created_contracts)

    def replace(self, created_contracts: dict[str, list[str]]) -> None:
        self._created_contracts = copy.deepcopy(created_contracts)
