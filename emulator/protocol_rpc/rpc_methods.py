"""RPC endpoint registrations using FastAPI dependency injection."""

from __future__ import annotations

from typing import Any

from fastapi import Depends

from emulator.node.base import LedgerNode
from emulator.node.blockchain import BlockClock
from emulator.protocol_rpc import endpoints as impl
from emulator.protocol_rpc.dependencies import (
    get_block_clock,
    get_ledger_node,
    get_message_handler,
    get_configured_network_id,
)
from emulator.protocol_rpc.message_handler.fastapi_handler import MessageHandler
from emulator.protocol_rpc.rpc_decorators import rpc
from emulator.protocol_rpc.rpc_endpoint_manager import LogPolicy

QUIET = LogPolicy(log_request=False, log_success=False, log_failure=True)


# ---------------------------------------------------------------------------
# Network endpoints
# ---------------------------------------------------------------------------


@rpc.method("ping", log_policy=QUIET)
def ping() -> str:
    return impl.ping()


@rpc.method("GetNetworkId", log_policy=QUIET)
def get_network_id(network_id: str = Depends(get_configured_network_id)) -> str:
    return impl.get_network_id(network_id)


@rpc.method("GetBlockNumber", log_policy=QUIET)
def get_block_number(block_clock: BlockClock = Depends(get_block_clock)) -> int:
    return impl.get_block_number(block_clock)


@rpc.method("GetBalance")
def get_balance(
    address: Any,
    ledger_node: LedgerNode = Depends(get_ledger_node),
) -> dict:
    return impl.get_balance(ledger_node, address)


# ---------------------------------------------------------------------------
# Transaction endpoints
# ---------------------------------------------------------------------------


@rpc.method("CreateTransaction", description="Submit a transfer or contract call")
async def create_transaction(
    payload: Any,
    ledger_node: LedgerNode = Depends(get_ledger_node),
    msg_handler: MessageHandler = Depends(get_message_handler),
) -> dict:
    return await impl.create_transaction(ledger_node, msg_handler, payload)


@rpc.method("GetTransaction")
def get_transaction(
    transaction_id: Any,
    ledger_node: LedgerNode = Depends(get_ledger_node),
) -> dict:
    return impl.get_transaction(ledger_node, transaction_id)


@rpc.method("GetRecentTransactions", log_policy=QUIET)
def get_recent_transactions(
    ledger_node: LedgerNode = Depends(get_ledger_node),
) -> dict:
    return impl.get_recent_transactions(ledger_node)


# ---------------------------------------------------------------------------
# Contract endpoints
# ---------------------------------------------------------------------------


@rpc.method("GetSmartContractCode")
def get_smart_contract_code(
    address: Any,
    ledger_node: LedgerNode = Depends(get_ledger_node),
) -> dict:
    return impl.get_contract_artifact(ledger_node, address, "code")


@rpc.method("GetSmartContractState")
def get_smart_contract_state(
    address: Any,
    ledger_node: LedgerNode = Depends(get_ledger_node),
) -> Any:
    return impl.get_contract_artifact(ledger_node, address, "state")


@rpc.method("GetSmartContractInit")
def get_smart_contract_init(
    address: Any,
    ledger_node: LedgerNode = Depends(get_ledger_node),
) -> Any:
    return impl.get_contract_artifact(ledger_node, address, "init")


@rpc.method("GetSmartContracts")
def get_smart_contracts(
    address: Any,
    ledger_node: LedgerNode = Depends(get_ledger_node),
) -> list[dict]:
    return impl.get_smart_contracts(ledger_node, address)


# ---------------------------------------------------------------------------
# Simulator endpoints
# ---------------------------------------------------------------------------


@rpc.method("sim_exportSnapshot", description="Export transactions and contract registry")
async def export_snapshot(
    ledger_node: LedgerNode = Depends(get_ledger_node),
) -> dict:
    return await impl.export_snapshot(ledger_node)


@rpc.method("sim_loadSnapshot", description="Replace transactions and contract registry")
async def load_snapshot(
    transactions: Any,
    created_contracts: Any,
    ledger_node: LedgerNode = Depends(get_ledger_node),
) -> str:
    return await impl.load_snapshot(ledger_node, transactions, created_contracts)
