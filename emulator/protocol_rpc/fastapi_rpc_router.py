"""FastAPI integration layer for the RPC endpoint manager."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError
from starlette.requests import ClientDisconnect

from emulator.protocol_rpc.exceptions import (
    InvalidRequest,
    MethodNotFound,
    ParseError,
)
from emulator.protocol_rpc.rpc_endpoint_manager import (
    JSONRPCRequest,
    JSONRPCResponse,
    RPCEndpointManager,
)

MAX_BATCH_SIZE = 100


def _error_response(error: dict, status_code: int = 400) -> JSONResponse:
    # always include id: null per JSON-RPC 2.0
    return JSONResponse(
        status_code=status_code,
        content={"jsonrpc": "2.0", "error": error, "id": None},
    )


class FastAPIRPCRouter:
    """Bridges FastAPI requests with the RPC endpoint manager."""

    def __init__(self, endpoint_manager: RPCEndpointManager) -> None:
        self._endpoint_manager = endpoint_manager

    @property
    def endpoint_manager(self) -> RPCEndpointManager:
        return self._endpoint_manager

    async def handle_http_request(self, request: Request) -> Response:
        try:
            payload = await request.json()
        except ClientDisconnect:
            logger.debug("Client disconnected before request body was read")
            return Response(status_code=204)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _error_response(ParseError().to_dict())

        if isinstance(payload, list):
            if not payload:
                return _error_response(InvalidRequest().to_dict())

            if len(payload) > MAX_BATCH_SIZE:
                invalid = InvalidRequest(
                    data={
                        "message": f"Batch request exceeds maximum size of {MAX_BATCH_SIZE}",
                        "size": len(payload),
                    }
                ).to_dict()
                return _error_response(invalid)

            responses: List[Dict[str, Any]] = []
            for entry in payload:
                response = await self._dispatch_entry(entry, request=request)
                if response.get("id") is not None:
                    responses.append(response)
            if not responses:
                return Response(status_code=204)
            return JSONResponse(content=responses)

        if isinstance(payload, dict):
            response = await self._dispatch_entry(payload, request=request)
            if response.get("id") is None and "error" not in response:
                # notification: nothing to send back
                return Response(status_code=204)
            return JSONResponse(content=response)

        return _error_response(InvalidRequest().to_dict())

    async def _dispatch_entry(
        self,
        payload: Any,
        *,
        request: Request,
    ) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            return JSONRPCResponse(
                jsonrpc="2.0", error=InvalidRequest().to_dict(), id=None
            ).model_dump(exclude_none=False)

        try:
            rpc_request = JSONRPCRequest(**payload)
        except (ValidationError, TypeError):
            logger.exception("Invalid JSON-RPC request payload failed validation")
            return JSONRPCResponse(
                jsonrpc="2.0", error=InvalidRequest().to_dict(), id=payload.get("id")
            ).model_dump(exclude_none=False)

        try:
            response = await self._endpoint_manager.invoke(rpc_request, request)
            return response.model_dump(exclude_none=True)
        except MethodNotFound as exc:
            return JSONRPCResponse(
                jsonrpc="2.0", error=exc.to_dict(), id=rpc_request.id
            ).model_dump(exclude_none=True)
