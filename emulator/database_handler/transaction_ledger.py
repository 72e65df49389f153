# emulator/database_handler/transaction_ledger.py

import copy

from emulator.database_handler.errors import NotFoundError
from emulator.node.types import TransactionRecord


class TransactionLedger:
    """
    Append-only log of processed transactions keyed by transaction id.

    Python dicts keep insertion order, which is what ``list_recent`` relies
    on. Re-recording an id overwrites the entry in place and keeps its
    original position.
    """

    def __init__(self, transactions: dict[str, dict] | None = None):
        self._transactions: dict[str, dict] = dict(transactions or {})

    def __len__(self) -> int:
        return len(self._transactions)

    def __contains__(self, transaction_id: str) -> bool:
        return transaction_id in self._transactions

    def record(self, entry: TransactionRecord | dict) -> str:
        details = entry.to_dict() if isinstance(entry, TransactionRecord) else entry
        transaction_id = details["ID"]
        self._transactions[transaction_id] = details
        return transaction_id

    def get(self, transaction_id: str) -> dict:
        details = self._transactions.get(transaction_id)
        if details is None:
            raise NotFoundError(transaction_id, "Txn Hash not Present.")
        return copy.deepcopy(details)

    def list_recent(self) -> dict:
        hashes = list(reversed(self._transactions.keys()))
        return {"TxnHashes": hashes, "number": len(hashes)}

    def to_dict(self) -> dict[str, dict]:
        return copy.deepcopy(self._transactions)

    def replace(self, transactions: dict[str, dict]) -> None:
        self._transactions = copy.deepcopy(transactions)
