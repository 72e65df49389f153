# emulator/protocol_rpc/health.py
import os
import time
from typing import Optional, Union

from fastapi import APIRouter, Depends, FastAPI
from loguru import logger

from emulator.node.base import LedgerNode
from emulator.protocol_rpc.dependencies import (
    get_ledger_node_optional,
    get_rpc_router_optional,
)
from emulator.protocol_rpc.fastapi_rpc_router import FastAPIRPCRouter

health_router = APIRouter(tags=["health"])


@health_router.get("/health")
async def health_check(
    ledger_node: Optional[LedgerNode] = Depends(get_ledger_node_optional),
    rpc_router: Optional[FastAPIRPCRouter] = Depends(get_rpc_router_optional),
) -> dict:
    """Summary of the emulator state: ledger size, block height and in-flight work."""
    start = time.time()

    if ledger_node is None or rpc_router is None:
        return {
            "status": "starting",
            "timestamp": time.time(),
            "rpc_router_initialized": rpc_router is not None,
        }

    try:
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "response_time_ms": round((time.time() - start) * 1000, 2),
            "ledger": {
                "transactions": len(ledger_node.ledger),
                "block_number": ledger_node.block_clock.get_current_block_number(),
                "in_flight": ledger_node.gate.in_flight,
            },
            "rpc_methods": len(rpc_router.endpoint_manager.method_names()),
            "meta": {"pid": os.getpid()},
        }
    except Exception as e:
        logger.exception("Health check failed")
        return {
            "status": "error",
            "timestamp": time.time(),
            "response_time_ms": round((time.time() - start) * 1000, 2),
            "error": str(e),
        }


def create_readiness_check_with_state(
    source: Union[FastAPI, Optional[FastAPIRPCRouter]],
):
    """Create a readiness check function that evaluates RPC router availability."""

    if isinstance(source, FastAPI):

        def rpc_router_provider() -> Optional[FastAPIRPCRouter]:
            return getattr(source.state, "rpc_router", None)

    else:

        def rpc_router_provider() -> Optional[FastAPIRPCRouter]:
            return source

    async def readiness_check_with_state():
        rpc_router_ready = rpc_router_provider() is not None

        return {
            "status": "ready" if rpc_router_ready else "not_ready",
            "service": "ledger-emulator",
            "rpc_router_initialized": rpc_router_ready,
        }

    return readiness_check_with_state
