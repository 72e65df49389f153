# emulator/protocol_rpc/fastapi_server.py

import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.requests import ClientDisconnect

from emulator.node.scilla.base import ContractEngine
from emulator.protocol_rpc.app_lifespan import EmulatorSettings, rpc_app_lifespan
from emulator.protocol_rpc.dependencies import get_rpc_router_optional
from emulator.protocol_rpc.fastapi_rpc_router import FastAPIRPCRouter
from emulator.protocol_rpc.health import (
    create_readiness_check_with_state,
    health_router,
)
from emulator.protocol_rpc.rpc_endpoint_manager import JSONRPCResponse

BANNER = "Emulator RPC Server"


def create_app(
    settings: Optional[EmulatorSettings] = None,
    engine: Optional[ContractEngine] = None,
) -> FastAPI:
    """Build the FastAPI application.

    ``settings`` default to the environment (after loading ``.env``) and
    ``engine`` defaults to the external Scilla runner.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage FastAPI application lifecycle."""
        load_dotenv()
        resolved = settings or EmulatorSettings.from_environment()

        async with rpc_app_lifespan(app, resolved, engine=engine) as app_state:
            app_state.apply_to_app(app)
            yield

    app = FastAPI(title="Ledger Emulator RPC API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)

    @app.get("/ready")
    async def readiness_check_with_app_state(
        rpc_router: FastAPIRPCRouter | None = Depends(get_rpc_router_optional),
    ):
        readiness_func = create_readiness_check_with_state(rpc_router)
        return await readiness_func()

    @app.get("/", response_class=PlainTextResponse)
    async def banner() -> str:
        return BANNER

    # JSON-RPC endpoint (supports single and batch requests)
    @app.post("/")
    @app.post("/api")
    async def jsonrpc_endpoint(
        request: Request,
        rpc_router: FastAPIRPCRouter | None = Depends(get_rpc_router_optional),
    ):
        """Main JSON-RPC endpoint with JSON-RPC 2.0 batch support."""
        if rpc_router is None:
            response = JSONRPCResponse(
                jsonrpc="2.0",
                error={"code": -32603, "message": "RPC router not initialized"},
                id=None,
            )
            return JSONResponse(content=response.model_dump(exclude_none=True))

        try:
            return await rpc_router.handle_http_request(request)
        except ClientDisconnect:
            return Response(status_code=204)
        except Exception as exc:
            # JSON-RPC compliant error instead of the framework's error page
            error = {
                "code": -32603,
                "message": "Internal error",
                "data": {"detail": str(exc)},
            }
            return JSONResponse(content={"jsonrpc": "2.0", "error": error, "id": None})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("RPCPORT", "4000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=True,
    )
