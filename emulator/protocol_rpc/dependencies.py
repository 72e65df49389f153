"""FastAPI dependency functions for RPC handlers."""

from __future__ import annotations

from typing import Any, Optional, TypeVar, cast

from fastapi import HTTPException, Request, status

from emulator.node.base import LedgerNode
from emulator.node.blockchain import BlockClock
from emulator.protocol_rpc.fastapi_rpc_router import FastAPIRPCRouter
from emulator.protocol_rpc.message_handler.fastapi_handler import MessageHandler


def _get_app_state(request: Request) -> Any:
    state = getattr(request.app, "state", None)
    if state is None:
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Application state is not configured",
        )
    return state


T = TypeVar("T")


def _require_state_attr(state: Any, attr: str, detail: str) -> T:
    value = getattr(state, attr, None)
    if value is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail)
    return cast(T, value)


def _peek_state_attr(state: Any, attr: str) -> Any:
    return getattr(state, attr, None)


def get_ledger_node(request: Request) -> LedgerNode:
    return _require_state_attr(
        _get_app_state(request), "ledger_node", "Ledger node not initialized"
    )


def get_block_clock(request: Request) -> BlockClock:
    return _require_state_attr(
        _get_app_state(request), "block_clock", "Block clock not initialized"
    )


def get_message_handler(request: Request) -> MessageHandler:
    return _require_state_attr(
        _get_app_state(request), "msg_handler", "Message handler not initialized"
    )


def get_configured_network_id(request: Request) -> str:
    return _require_state_attr(
        _get_app_state(request), "network_id", "Network id not configured"
    )


def get_rpc_router_optional(request: Request) -> Optional[FastAPIRPCRouter]:
    return _peek_state_attr(_get_app_state(request), "rpc_router")


def get_ledger_node_optional(request: Request) -> Optional[LedgerNode]:
    return _peek_state_attr(_get_app_state(request), "ledger_node")
