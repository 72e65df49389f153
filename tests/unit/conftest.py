"""
Global fixtures for unit tests
"""

import pytest

from emulator.database_handler.accounts_manager import AccountsManager
from emulator.database_handler.contract_registry import ContractRegistry
from emulator.database_handler.contract_snapshot import ContractArtifacts
from emulator.database_handler.transaction_ledger import TransactionLedger
from emulator.node.base import LedgerNode
from emulator.node.blockchain import BlockClock
from tests.common.fakes import SENDER_ADDRESS, FakeContractEngine


class ManualClock:
    """Time source that only moves when told to."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def accounts_manager():
    manager = AccountsManager()
    manager.load_accounts({SENDER_ADDRESS: {"amount": "1000", "nonce": 4}})
    return manager


@pytest.fixture
def artifacts(tmp_path):
    return ContractArtifacts(tmp_path / "data")


@pytest.fixture
def registry(artifacts):
    return ContractRegistry(artifacts)


@pytest.fixture
def ledger():
    return TransactionLedger()


@pytest.fixture
def engine():
    return FakeContractEngine()


@pytest.fixture
def block_clock():
    return BlockClock(10, time_source=ManualClock())


@pytest.fixture
def make_node(accounts_manager, ledger, registry, engine, block_clock, artifacts):
    def _make_node(**overrides):
        kwargs = dict(
            accounts_manager=accounts_manager,
            ledger=ledger,
            registry=registry,
            engine=engine,
            block_clock=block_clock,
            data_path=artifacts.data_path,
            min_gas_price=1,
            transfer_gas_cost=1,
            transfer_funds_check=True,
            execution_timeout=5,
        )
        kwargs.update(overrides)
        return LedgerNode(**kwargs)

    return _make_node


@pytest.fixture
def node(make_node):
    return make_node()
