# emulator/node/base.py

import asyncio
from pathlib import Path
from typing import Any

from loguru import logger

from emulator.config.blockchain_config import BlockchainConfig
from emulator.database_handler.accounts_manager import AccountsManager
from emulator.database_handler.contract_snapshot import ContractArtifacts
from emulator.database_handler.contract_registry import ContractRegistry
from emulator.database_handler.errors import (
    EngineExecutionError,
    InsufficientFundsError,
    InsufficientGasPriceError,
    InvalidNonceError,
    MultiContractUnsupportedError,
    TransactionError,
)
from emulator.database_handler.snapshot_manager import SnapshotManager
from emulator.database_handler.transaction_ledger import TransactionLedger
from emulator.node.addressing import (
    address_from_public_key,
    compute_contract_address,
    compute_transaction_id,
)
from emulator.node.blockchain import BlockClock
from emulator.node.gate import TransactionGate
from emulator.node.payload_validator import parse_transaction_payload
from emulator.node.scilla.base import ContractEngine
from emulator.node.types import (
    ZERO_ADDRESS,
    ContractPayload,
    ExecutionOutcome,
    TransactionRecord,
    TransferPayload,
    normalize_address,
)

INFO_TRANSFER = "Non-contract txn, sent to shard"
INFO_DEPLOYMENT = "Contract Creation txn, sent to shard"
INFO_INVOCATION = "Contract Txn, Shards Match of the sender and receiver"


class LedgerNode:
    """
    Transaction pipeline of the emulator.

    Validates a submitted payload, checks gas price and nonce, dispatches to
    the transfer or the contract path and records the outcome in the ledger.
    Every rejection is raised as a ``TransactionError`` subclass and nothing
    is retried here.
    """

    def __init__(
        self,
        accounts_manager: AccountsManager,
        ledger: TransactionLedger,
        registry: ContractRegistry,
        engine: ContractEngine,
        block_clock: BlockClock,
        data_path: str | Path,
        gate: TransactionGate | None = None,
        min_gas_price: int | None = None,
        transfer_gas_cost: int | None = None,
        transfer_funds_check: bool | None = None,
        execution_timeout: float | None = None,
    ):
        self.accounts_manager = accounts_manager
        self.ledger = ledger
        self.registry = registry
        self.engine = engine
        self.block_clock = block_clock
        self.data_path = Path(data_path)
        self.gate = gate or TransactionGate()
        self.snapshot_manager = SnapshotManager(ledger, registry, accounts_manager)

        self.min_gas_price = (
            BlockchainConfig.get_min_gas_price() if min_gas_price is None else min_gas_price
        )
        self.transfer_gas_cost = (
            BlockchainConfig.get_transfer_gas_cost()
            if transfer_gas_cost is None
            else transfer_gas_cost
        )
        self.transfer_funds_check = (
            BlockchainConfig.transfer_funds_check_enabled()
            if transfer_funds_check is None
            else transfer_funds_check
        )
        self.execution_timeout = (
            BlockchainConfig.get_execution_timeout()
            if execution_timeout is None
            else execution_timeout
        )

    @property
    def transfer_fee(self) -> int:
        return self.transfer_gas_cost * self.min_gas_price

    async def process_create_transaction(
        self, params: Any, options: dict | None = None
    ) -> dict:
        """Run a submitted payload through the pipeline.

        Returns ``{"Info", "TranID"}`` plus ``"ContractAddress"`` for
        deployments. Raises a ``TransactionError`` on every rejection.
        """
        payload = parse_transaction_payload(params)
        data_path = Path((options or {}).get("dataPath") or self.data_path)

        if payload.gas_price < self.min_gas_price:
            raise InsufficientGasPriceError(self.min_gas_price)

        sender = address_from_public_key(payload.pub_key)
        logger.debug(f"Processing transaction from {sender}")

        async with self.gate.transaction(sender):
            account = self.accounts_manager.get_balance(sender)
            logger.debug(
                f"User nonce: {account['nonce']}, payload nonce: {payload.nonce}"
            )

            if payload.nonce != account["nonce"] + 1:
                # stale or skipped nonces still pay the transfer fee
                self.accounts_manager.deduct_funds(sender, self.transfer_fee)
                logger.info(
                    f"Invalid nonce from {sender}, charged {self.transfer_fee}"
                )
                raise InvalidNonceError(
                    expected=account["nonce"] + 1,
                    received=payload.nonce,
                    charged=self.transfer_fee,
                )

            if isinstance(payload, ContractPayload):
                response = await self._execute_contract(
                    payload, sender, account["balance"], data_path
                )
            else:
                response = self._transfer(payload, sender, account["balance"])

            transaction_id = compute_transaction_id(payload.raw)
            self.ledger.record(TransactionRecord.from_payload(transaction_id, payload))
            logger.info(f"Transaction logged as {transaction_id}")

        response["TranID"] = transaction_id
        return response

    def _transfer(self, payload: TransferPayload, sender: str, balance: int) -> dict:
        total = payload.amount + self.transfer_fee
        if self.transfer_funds_check and balance < total:
            raise InsufficientFundsError(sender, required=total, balance=balance)

        self.accounts_manager.deduct_funds(sender, total)
        self.accounts_manager.increase_nonce(sender)
        self.accounts_manager.add_funds(payload.to_addr.lower(), payload.amount)
        logger.debug(f"Transferred {payload.amount} from {sender} to {payload.to_addr}")
        return {"Info": INFO_TRANSFER}

    async def _execute_contract(
        self,
        payload: ContractPayload,
        sender: str,
        balance: int,
        data_path: Path,
    ) -> dict:
        # derived from the nonce before it is increased for this transaction
        nonce = self.accounts_manager.get_balance(sender)["nonce"]
        contract_address = compute_contract_address(sender, nonce)

        required = payload.amount + payload.gas_limit * payload.gas_price
        if balance < required:
            logger.info(f"Insufficient funds for {sender}: {balance} < {required}")
            raise InsufficientFundsError(sender, required=required, balance=balance)

        block_number = self.block_clock.get_current_block_number()
        outcome = await self._run_engine(
            payload, contract_address, sender, data_path, block_number
        )

        gas_consumed = payload.gas_limit - outcome.gas_remaining
        if gas_consumed < 0:
            logger.warning(
                f"Engine reported {outcome.gas_remaining} gas remaining out of {payload.gas_limit}"
            )
            gas_consumed = 0
        gas_fee = gas_consumed * payload.gas_price
        logger.debug(f"Gas consumed: {gas_consumed}, fee: {gas_fee}")

        self.accounts_manager.deduct_funds(sender, gas_fee + payload.amount)
        self.accounts_manager.increase_nonce(sender)

        next_address = normalize_address(outcome.next_address)
        if next_address not in (ZERO_ADDRESS, sender):
            logger.warning(f"Contract call to {next_address} rejected")
            raise MultiContractUnsupportedError()

        self._store_artifacts(outcome, data_path)

        if payload.is_deployment:
            self.registry.record_deployment(sender, contract_address)
            logger.info(f"Contract deployed at {contract_address}")
            return {"Info": INFO_DEPLOYMENT, "ContractAddress": contract_address}
        return {"Info": INFO_INVOCATION}

    def _store_artifacts(self, outcome: ExecutionOutcome, data_path: Path) -> None:
        store = ContractArtifacts(data_path)
        for address, files in outcome.artifacts.items():
            for kind, content in files.items():
                store.write(address, kind, content)

    async def _run_engine(
        self,
        payload: ContractPayload,
        contract_address: str,
        sender: str,
        data_path: Path,
        block_number: int,
    ) -> ExecutionOutcome:
        try:
            return await asyncio.wait_for(
                self.engine.run(
                    payload, contract_address, sender, data_path, block_number
                ),
                timeout=self.execution_timeout,
            )
        except TransactionError:
            raise
        except asyncio.TimeoutError as e:
            raise EngineExecutionError(
                f"Contract execution timed out after {self.execution_timeout} seconds"
            ) from e
        except Exception as e:
            logger.exception("Contract engine failed")
            raise EngineExecutionError(f"Contract execution failed: {e}") from e

    def process_get_transaction(self, transaction_id: str) -> dict:
        logger.debug(f"Getting transaction {transaction_id}")
        return self.ledger.get(transaction_id)

    def process_get_recent_transactions(self) -> dict:
        return self.ledger.list_recent()

    def process_get_contract_artifact(self, contract_address: str, kind: str) -> Any:
        return self.registry.contract_state_lookup(contract_address, kind)

    def process_get_contracts_by_creator(self, creator_address: str) -> list[dict]:
        return self.registry.contracts_for_creator(creator_address)

    def process_get_balance(self, address: str) -> dict:
        account = self.accounts_manager.get_account_or_fail(address)
        return {"balance": str(account["balance"]), "nonce": account["nonce"]}

    async def export_snapshot(self) -> dict:
        async with self.gate.exclusive():
            return self.snapshot_manager.export()

    async def load_snapshot(self, transactions: dict, created_contracts: dict) -> None:
        async with self.gate.exclusive():
            self.snapshot_manager.load(transactions, created_contracts)

    async def save_snapshot(self, path: str | Path) -> Path:
        async with self.gate.exclusive():
            return self.snapshot_manager.save_to_file(path)
