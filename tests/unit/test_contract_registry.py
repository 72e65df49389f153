import json

import pytest

from emulator.database_handler.contract_registry import ContractRegistry
from emulator.database_handler.contract_snapshot import ContractArtifacts
from emulator.database_handler.errors import (
    InvalidAddressFormatError,
    InvalidArtifactKindError,
    NotFoundError,
)
from tests.common.fakes import OTHER_ADDRESS, SENDER_ADDRESS

CONTRACT_A = "c1" * 20
CONTRACT_B = "c2" * 20


class TestContractArtifacts:
    def test_file_naming(self, artifacts):
        assert artifacts.artifact_path("0x" + CONTRACT_A.upper(), "code").name == (
            f"{CONTRACT_A}_code.scilla"
        )
        assert artifacts.artifact_path(CONTRACT_A, "STATE").name == (
            f"{CONTRACT_A}_state.json"
        )

    def test_write_then_read(self, artifacts):
        artifacts.write(CONTRACT_A, "code", "contract Hello()")
        artifacts.write(CONTRACT_A, "init", [{"vname": "x", "type": "Uint32", "value": "1"}])

        assert artifacts.read(CONTRACT_A, "code") == {"code": "contract Hello()"}
        assert artifacts.read(CONTRACT_A, "init")[0]["vname"] == "x"
        assert artifacts.exists(CONTRACT_A, "init")
        assert not artifacts.exists(CONTRACT_A, "state")

    def test_state_file_is_plain_json(self, artifacts):
        path = artifacts.write(CONTRACT_A, "state", [{"vname": "count"}])
        assert json.loads(path.read_text()) == [{"vname": "count"}]

    def test_missing_artifact(self, artifacts):
        with pytest.raises(NotFoundError):
            artifacts.read(CONTRACT_A, "state")

    def test_unknown_kind(self, artifacts):
        with pytest.raises(InvalidArtifactKindError):
            artifacts.read(CONTRACT_A, "abi")

    @pytest.mark.parametrize("address", ["c1" * 19, "c1" * 21, "zz" * 20, ""])
    def test_bad_address(self, artifacts, address):
        with pytest.raises(InvalidAddressFormatError):
            artifacts.read(address, "code")


class TestContractRegistry:
    def test_deployments_are_kept_in_order(self, registry):
        registry.record_deployment(SENDER_ADDRESS, CONTRACT_A)
        registry.record_deployment("0x" + SENDER_ADDRESS.upper(), CONTRACT_B)

        assert registry.list_for_creator(SENDER_ADDRESS) == [CONTRACT_A, CONTRACT_B]

    def test_creator_without_contracts(self, registry):
        with pytest.raises(NotFoundError):
            registry.list_for_creator(OTHER_ADDRESS)

    def test_empty_entry_counts_as_missing(self, artifacts):
        registry = ContractRegistry(artifacts, {OTHER_ADDRESS: []})
        with pytest.raises(NotFoundError):
            registry.list_for_creator(OTHER_ADDRESS)

    def test_invalid_creator(self, registry):
        with pytest.raises(InvalidAddressFormatError):
            registry.list_for_creator("0x12")

    def test_contracts_for_creator_reads_state(self, registry, artifacts):
        artifacts.write(CONTRACT_A, "state", [{"vname": "count", "value": "3"}])
        registry.record_deployment(SENDER_ADDRESS, CONTRACT_A)

        assert registry.contracts_for_creator(SENDER_ADDRESS) == [
            {"address": CONTRACT_A, "state": [{"vname": "count", "value": "3"}]}
        ]

    def test_contract_state_lookup(self, registry, artifacts):
        artifacts.write(CONTRACT_A, "code", "contract A()")
        assert registry.contract_state_lookup(CONTRACT_A, "code") == {"code": "contract A()"}

    def test_to_dict_is_a_copy(self, registry):
        registry.record_deployment(SENDER_ADDRESS, CONTRACT_A)
        registry.to_dict()[SENDER_ADDRESS].append(CONTRACT_B)

        assert registry.list_for_creator(SENDER_ADDRESS) == [CONTRACT_A]

    def test_replace(self, registry):
        registry.record_deployment(SENDER_ADDRESS, CONTRACT_A)
        registry.replace({OTHER_ADDRESS: [CONTRACT_B]})

        assert registry.to_dict() == {OTHER_ADDRESS: [CONTRACT_B]}
