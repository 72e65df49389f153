"""Reusable application services setup for the RPC FastAPI stack."""

from __future__ import annotations

import json
import os
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from loguru import logger

from emulator.config.blockchain_config import BlockchainConfig
from emulator.database_handler.accounts_manager import AccountsManager
from emulator.database_handler.contract_registry import ContractRegistry
from emulator.database_handler.contract_snapshot import ContractArtifacts
from emulator.database_handler.transaction_ledger import TransactionLedger
from emulator.node.base import LedgerNode
from emulator.node.blockchain import BlockClock
from emulator.node.scilla.base import ContractEngine, ScillaRunner
from emulator.protocol_rpc.configuration import GlobalConfiguration
from emulator.protocol_rpc.fastapi_rpc_router import FastAPIRPCRouter
from emulator.protocol_rpc.message_handler.fastapi_handler import (
    MessageHandler,
    setup_loguru_config,
)
from emulator.protocol_rpc.rpc_decorators import rpc
from emulator.protocol_rpc.rpc_endpoint_manager import RPCEndpointManager

# registers the JSON-RPC methods on ``rpc``
import emulator.protocol_rpc.rpc_methods  # noqa: F401


@dataclass(frozen=True)
class EmulatorSettings:
    """Runtime settings for the emulator application."""

    data_path: str
    network_id: str
    num_accounts: int
    default_balance: int
    block_interval: float
    accounts_file: Optional[str] = None
    load_file: Optional[str] = None
    save_file: Optional[str] = None

    @classmethod
    def from_environment(cls) -> "EmulatorSettings":
        return cls(
            data_path=BlockchainConfig.get_data_path(),
            network_id=BlockchainConfig.get_network_id(),
            num_accounts=BlockchainConfig.get_num_accounts(),
            default_balance=BlockchainConfig.get_default_balance(),
            block_interval=BlockchainConfig.get_block_interval(),
            accounts_file=os.environ.get("ACCOUNTS_FILE") or None,
            load_file=os.environ.get("LOAD_FILE") or None,
            save_file=os.environ.get("SAVE_FILE") or None,
        )


@dataclass
class EmulatorAppState:
    """Aggregated services initialised for the RPC application."""

    msg_handler: MessageHandler
    accounts_manager: AccountsManager
    block_clock: BlockClock
    ledger_node: LedgerNode
    rpc_router: FastAPIRPCRouter
    network_id: str

    def apply_to_app(self, app) -> None:
        """Populate FastAPI state with the configured services."""
        state = app.state
        state.msg_handler = self.msg_handler
        state.accounts_manager = self.accounts_manager
        state.block_clock = self.block_clock
        state.ledger_node = self.ledger_node
        state.rpc_router = self.rpc_router
        state.network_id = self.network_id


def _bootstrap_accounts(settings: EmulatorSettings) -> AccountsManager:
    accounts_manager = AccountsManager()
    if settings.accounts_file:
        path = Path(settings.accounts_file)
        if not path.is_file():
            raise FileNotFoundError(f"Account fixture file not found: {path}")
        logger.info(f"[STARTUP] Bootstrapping accounts from {path}")
        accounts_manager.load_accounts(json.loads(path.read_text(encoding="utf-8")))
    else:
        logger.info(f"[STARTUP] Creating {settings.num_accounts} accounts")
        accounts_manager.create_wallets(settings.num_accounts, settings.default_balance)
    accounts_manager.log_accounts()
    return accounts_manager


def build_app_state(
    settings: EmulatorSettings,
    engine: ContractEngine | None = None,
    accounts_manager: AccountsManager | None = None,
) -> EmulatorAppState:
    """Wire the ledger node and the RPC router from ``settings``."""
    Path(settings.data_path).mkdir(parents=True, exist_ok=True)

    msg_handler = MessageHandler(config=GlobalConfiguration())
    accounts_manager = accounts_manager or _bootstrap_accounts(settings)
    block_clock = BlockClock(settings.block_interval)

    ledger_node = LedgerNode(
        accounts_manager=accounts_manager,
        ledger=TransactionLedger(),
        registry=ContractRegistry(ContractArtifacts(settings.data_path)),
        engine=engine or ScillaRunner(),
        block_clock=block_clock,
        data_path=settings.data_path,
    )

    if settings.load_file:
        logger.info(f"[STARTUP] Loading snapshot from {settings.load_file}")
        ledger_node.snapshot_manager.load_from_file(settings.load_file)

    return EmulatorAppState(
        msg_handler=msg_handler,
        accounts_manager=accounts_manager,
        block_clock=block_clock,
        ledger_node=ledger_node,
        rpc_router=None,  # set by rpc_app_lifespan once the app exists
        network_id=settings.network_id,
    )


@asynccontextmanager
async def rpc_app_lifespan(
    app,
    settings: EmulatorSettings,
    engine: ContractEngine | None = None,
) -> AsyncIterator[EmulatorAppState]:
    """Prepare the emulator services and persist the snapshot on shutdown."""
    startup_time = time.time()
    setup_loguru_config()
    logger.info("[STARTUP] Logging configured")

    app_state = build_app_state(settings, engine=engine)

    endpoint_manager = RPCEndpointManager(
        logger=app_state.msg_handler,
        dependency_overrides_provider=app,
    )
    rpc.register_all(endpoint_manager)
    app_state.rpc_router = FastAPIRPCRouter(endpoint_manager)
    logger.info(
        f"[STARTUP] Registered {len(endpoint_manager.method_names())} RPC methods"
    )
    logger.info(f"[STARTUP] Ready in {time.time() - startup_time:.2f}s")

    try:
        yield app_state
    finally:
        if settings.save_file:
            logger.info(f"[SHUTDOWN] Saving snapshot to {settings.save_file}")
            await app_state.ledger_node.save_snapshot(settings.save_file)
        logger.info("[SHUTDOWN] Emulator stopped")
