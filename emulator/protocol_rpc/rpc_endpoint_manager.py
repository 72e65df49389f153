"""JSON-RPC endpoint dispatcher backed by FastAPI dependencies."""

from __future__ import annotations

import inspect
import traceback
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import params
from fastapi.dependencies.utils import (
    get_dependant,
    get_flat_dependant,
    solve_dependencies,
)
from fastapi.requests import Request
from pydantic import BaseModel, ConfigDict

from emulator.database_handler.errors import TransactionError
from emulator.protocol_rpc.configuration import GlobalConfiguration
from emulator.protocol_rpc.exceptions import (
    InternalError,
    InvalidParams,
    JSONRPCError,
    MethodNotFound,
    from_transaction_error,
)
from emulator.protocol_rpc.message_handler.fastapi_handler import MessageHandler
from emulator.protocol_rpc.message_handler.types import EventScope, EventType, LogEvent


@dataclass(slots=True)
class LogPolicy:
    log_request: bool = True
    log_success: bool = True
    log_failure: bool = True


@dataclass(slots=True)
class RPCEndpointDefinition:
    name: str
    handler: Any
    description: Optional[str] = None
    log_policy: LogPolicy = field(default_factory=LogPolicy)


class JSONRPCRequest(BaseModel):
    jsonrpc: str = "2.0"
    method: str
    params: Any | None = None
    id: Any | None = None


class JSONRPCResponse(BaseModel):
    model_config = ConfigDict(exclude_none=True)

    jsonrpc: str = "2.0"
    result: Any | None = None
    error: Optional[Dict[str, Any]] = None
    id: Any | None = None


@dataclass(slots=True)
class RegisteredEndpoint:
    definition: RPCEndpointDefinition
    dependant: Any
    user_parameters: List[inspect.Parameter]
    embed_body_fields: bool


class RPCEndpointManager:
    """Executes RPC handlers using FastAPI's dependency resolution."""

    def __init__(
        self,
        logger: MessageHandler,
        dependency_overrides_provider: Any,
    ) -> None:
        self._logger = logger
        self._dependency_overrides_provider = dependency_overrides_provider
        self._endpoints: Dict[str, RegisteredEndpoint] = {}

    def register(self, definition: RPCEndpointDefinition) -> None:
        if definition.name in self._endpoints:
            raise ValueError(f"RPC method already registered: {definition.name}")

        signature = inspect.signature(definition.handler)
        user_parameters: List[inspect.Parameter] = [
            parameter
            for parameter in signature.parameters.values()
            if not isinstance(parameter.default, params.Depends)
        ]

        dependant = get_dependant(
            path=f"/rpc/{definition.name}", call=definition.handler
        )

        self._endpoints[definition.name] = RegisteredEndpoint(
            definition=definition,
            dependant=dependant,
            user_parameters=user_parameters,
            embed_body_fields=len(get_flat_dependant(dependant).body_params) > 1,
        )

    def has_method(self, name: str) -> bool:
        return name in self._endpoints

    def method_names(self) -> list[str]:
        return sorted(self._endpoints)

    async def invoke(
        self,
        request: JSONRPCRequest,
        fastapi_request: Request,
    ) -> JSONRPCResponse:
        registered = self._endpoints.get(request.method)
        if not registered:
            raise MethodNotFound(request.method)

        definition = registered.definition
        should_log = self._should_log(request.method, definition.log_policy)

        if should_log and definition.log_policy.log_request:
            self._logger.send_message(
                LogEvent(
                    name="endpoint_call",
                    type=EventType.INFO,
                    scope=EventScope.RPC,
                    message=f"RPC method called: {request.method}",
                    data={"method": request.method, "params": request.params},
                )
            )

        try:
            result = await self._call_endpoint(registered, request, fastapi_request)
            response = JSONRPCResponse(jsonrpc="2.0", result=result, id=request.id)

            if should_log and definition.log_policy.log_success:
                self._logger.send_message(
                    LogEvent(
                        name="endpoint_success",
                        type=EventType.SUCCESS,
                        scope=EventScope.RPC,
                        message=f"RPC method completed: {request.method}",
                        data={"method": request.method},
                    )
                )
            return response
        except (JSONRPCError, TransactionError) as exc:
            error = (
                from_transaction_error(exc) if isinstance(exc, TransactionError) else exc
            )
            if should_log and definition.log_policy.log_failure:
                self._logger.send_message(
                    LogEvent(
                        name="endpoint_error",
                        type=EventType.ERROR,
                        scope=EventScope.RPC,
                        message=f"Error in {request.method}: {error.message}",
                        data={
                            "method": request.method,
                            "code": error.code,
                            "error_data": error.data,
                        },
                    )
                )
            return JSONRPCResponse(jsonrpc="2.0", error=error.to_dict(), id=request.id)
        except Exception as exc:  # pragma: no cover - safety net
            if should_log and definition.log_policy.log_failure:
                stack_trace = traceback.format_exc()
                self._logger.send_message(
                    LogEvent(
                        name="endpoint_error",
                        type=EventType.ERROR,
                        scope=EventScope.RPC,
                        message=f"Unexpected error in {request.method}: {exc}",
                        data={"method": request.method, "traceback": stack_trace},
                    )
                )
            internal = InternalError(message=str(exc))
            return JSONRPCResponse(
                jsonrpc="2.0", error=internal.to_dict(), id=request.id
            )

    async def _call_endpoint(
        self,
        registered: RegisteredEndpoint,
        request: JSONRPCRequest,
        fastapi_request: Request,
    ) -> Any:
        try:
            bound_arguments = self._bind_rpc_arguments(registered, request.params)
        except InvalidParams as exc:
            self._logger.send_message(
                LogEvent(
                    name="invalid_params_arguments",
                    type=EventType.ERROR,
                    scope=EventScope.RPC,
                    message=f"Argument binding failed for {request.method}: {exc}",
                    data={"method": request.method, "params": request.params},
                )
            )
            raise

        async with AsyncExitStack() as stack:
            solved = await solve_dependencies(
                request=fastapi_request,
                dependant=registered.dependant,
                body=bound_arguments or {},
                dependency_overrides_provider=self._dependency_overrides_provider,
                async_exit_stack=stack,
                embed_body_fields=registered.embed_body_fields,
            )

            user_param_names = {param.name for param in registered.user_parameters}
            filtered_errors = []
            for error in solved.errors:
                loc = error.get("loc") if isinstance(error, dict) else None
                if isinstance(loc, (tuple, list)) and loc:
                    location_scope = loc[0]
                    parameter_name = loc[-1] if len(loc) > 1 else None
                    # user params are bound from the RPC params, not the HTTP request
                    if location_scope in {"query", "body", "form"} and (
                        parameter_name in user_param_names or len(loc) == 1
                    ):
                        continue
                filtered_errors.append(error)

            if filtered_errors:
                self._logger.send_message(
                    LogEvent(
                        name="invalid_params_dependency",
                        type=EventType.ERROR,
                        scope=EventScope.RPC,
                        message=f"Dependency resolution failed for {request.method}",
                        data={"method": request.method, "errors": filtered_errors},
                    )
                )
                raise InvalidParams(message=str(filtered_errors))

            call_kwargs = {
                name: value
                for name, value in solved.values.items()
                if name not in user_param_names
            }
            call_kwargs.update(bound_arguments)

            result = registered.dependant.call(**call_kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result

    def _bind_rpc_arguments(
        self,
        registered: RegisteredEndpoint,
        params: Any,
    ) -> Dict[str, Any]:
        user_parameters = registered.user_parameters
        user_param_names = [param.name for param in user_parameters]

        if params is None:
            provided: Dict[str, Any] = {}
        elif isinstance(params, list):
            provided = {}
            if len(params) > len(user_parameters):
                raise InvalidParams(message="Too many parameters provided")

            for value, parameter in zip(params, user_parameters):
                provided[parameter.name] = value
        elif isinstance(params, dict):
            provided = {}
            for key, value in params.items():
                if key not in user_param_names:
                    raise InvalidParams(message=f"Unexpected parameter: {key}")
                provided[key] = value
        else:
            if len(user_parameters) != 1:
                raise InvalidParams(
                    message="Positional params require a single argument"
                )
            provided = {user_parameters[0].name: params}

        for parameter in user_parameters:
            if parameter.name not in provided and parameter.default is inspect._empty:
                raise InvalidParams(
                    message=f"Missing required parameter: {parameter.name}"
                )

        return provided

    def _should_log(self, method: str, policy: LogPolicy) -> bool:
        if not policy.log_request and not policy.log_success and not policy.log_failure:
            return False
        disabled = GlobalConfiguration.get_disabled_info_logs_endpoints()
        return method not in disabled
