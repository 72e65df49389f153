# emulator/database_handler/snapshot_manager.py

import json
from pathlib import Path

from loguru import logger

from emulator.database_handler.accounts_manager import AccountsManager
from emulator.database_handler.contract_registry import ContractRegistry
from emulator.database_handler.transaction_ledger import TransactionLedger

TRANSACTIONS_KEY = "transactions"
REGISTRY_KEY = "createdContractsByUsers"
ACCOUNTS_KEY = "accounts"


class SnapshotManager:
    """
    Export and reload of the ledger and contract registry.

    Loading always replaces state wholesale; there is no merge. Callers must
    make sure no transaction is in flight while a snapshot is taken or loaded
    (see ``TransactionGate.exclusive``).
    """

    def __init__(
        self,
        ledger: TransactionLedger,
        registry: ContractRegistry,
        accounts_manager: AccountsManager | None = None,
    ):
        self.ledger = ledger
        self.registry = registry
        self.accounts_manager = accounts_manager

    def export(self) -> dict:
        return {
            TRANSACTIONS_KEY: self.ledger.to_dict(),
            REGISTRY_KEY: self.registry.to_dict(),
        }

    def load(self, transactions: dict, created_contracts: dict) -> None:
        if not isinstance(transactions, dict) or not isinstance(created_contracts, dict):
            raise ValueError("Snapshot sections must be objects")
        self.ledger.replace(transactions)
        self.registry.replace(created_contracts)
        logger.info(
            f"Snapshot loaded: {len(transactions)} transactions, "
            f"{len(created_contracts)} contract creators"
        )

    def save_to_file(self, path: str | Path) -> Path:
        """Write the snapshot (and the wallet, when one is attached) as JSON."""
        document = self.export()
        if self.accounts_manager is not None:
            document[ACCOUNTS_KEY] = self.accounts_manager.export_accounts()

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        logger.info(f"Snapshot saved to {path}")
        return path

    def load_from_file(self, path: str | Path) -> dict:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Snapshot file not found: {path}")

        document = json.loads(path.read_text(encoding="utf-8"))
        if TRANSACTIONS_KEY not in document or REGISTRY_KEY not in document:
            raise ValueError(
                f"Snapshot file {path} must contain '{TRANSACTIONS_KEY}' and '{REGISTRY_KEY}'"
            )

        self.load(document[TRANSACTIONS_KEY], document[REGISTRY_KEY])
        if self.accounts_manager is not None and document.get(ACCOUNTS_KEY):
            self.accounts_manager.load_accounts(document[ACCOUNTS_KEY])
        return document
