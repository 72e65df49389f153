# emulator/protocol_rpc/endpoints.py

"""Implementation of the JSON-RPC methods, free of any FastAPI wiring."""

from typing import Any

from emulator.node.base import LedgerNode
from emulator.node.blockchain import BlockClock
from emulator.protocol_rpc.exceptions import InvalidParams
from emulator.protocol_rpc.message_handler.fastapi_handler import MessageHandler

INVALID_PARAMS_MESSAGE = (
    "INVALID_PARAMS: Invalid method parameters (invalid name and/or type) recognised"
)


def _require_text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidParams(message=INVALID_PARAMS_MESSAGE, data={"param": name})
    return value


def ping() -> str:
    return "OK"


def get_network_id(network_id: str) -> str:
    return network_id


def get_block_number(block_clock: BlockClock) -> int:
    return block_clock.get_current_block_number()


def get_balance(ledger_node: LedgerNode, address: Any) -> dict:
    return ledger_node.process_get_balance(_require_text(address, "address"))


async def create_transaction(
    ledger_node: LedgerNode,
    msg_handler: MessageHandler,
    payload: Any,
) -> dict:
    response = await ledger_node.process_create_transaction([payload])
    msg_handler.send_transaction_event(
        response["TranID"],
        "transaction_recorded",
        {key: value for key, value in response.items() if key != "TranID"},
    )
    return response


def get_transaction(ledger_node: LedgerNode, transaction_id: Any) -> dict:
    return ledger_node.process_get_transaction(
        _require_text(transaction_id, "transaction_id")
    )


def get_recent_transactions(ledger_node: LedgerNode) -> dict:
    return ledger_node.process_get_recent_transactions()


def get_contract_artifact(ledger_node: LedgerNode, address: Any, kind: str) -> Any:
    return ledger_node.process_get_contract_artifact(
        _require_text(address, "address"), kind
    )


def get_smart_contracts(ledger_node: LedgerNode, address: Any) -> list[dict]:
    return ledger_node.process_get_contracts_by_creator(_require_text(address, "address"))


async def export_snapshot(ledger_node: LedgerNode) -> dict:
    return await ledger_node.export_snapshot()


async def load_snapshot(
    ledger_node: LedgerNode, transactions: Any, created_contracts: Any
) -> str:
    if not isinstance(transactions, dict) or not isinstance(created_contracts, dict):
        raise InvalidParams(message="Snapshot sections must be objects")
    await ledger_node.load_snapshot(transactions, created_contracts)
    return "Snapshot loaded"
