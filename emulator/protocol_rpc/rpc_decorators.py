"""Decorator-based RPC endpoint registration utilities."""

from __future__ import annotations

from typing import Any, Callable, Optional

from emulator.protocol_rpc.rpc_endpoint_manager import (
    LogPolicy,
    RPCEndpointDefinition,
    RPCEndpointManager,
)


class RPCEndpointRegistry:
    def __init__(self) -> None:
        self._definitions: list[RPCEndpointDefinition] = []

    def method(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        log_policy: Optional[LogPolicy] = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._definitions.append(
                RPCEndpointDefinition(
                    name=name,
                    handler=func,
                    description=description or (func.__doc__ or "").strip() or None,
                    log_policy=log_policy or LogPolicy(),
                )
            )
            return func

        return decorator

    def register_all(self, manager: RPCEndpointManager) -> None:
        for definition in self._definitions:
            manager.register(definition)


rpc = RPCEndpointRegistry()
