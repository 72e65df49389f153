"""
JSON-RPC exception classes and the mapping of ledger errors onto them.
"""

from typing import Any, Optional

from emulator.database_handler.errors import TransactionError, TransactionErrorKind


class JSONRPCError(Exception):
    """
    JSON-RPC Error exception.

    Raised by endpoints and converted into the ``error`` member of the
    response by the endpoint manager.
    """

    def __init__(
        self,
        code: int = -32000,
        message: str = "Server error",
        data: Optional[Any] = None,
    ):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert the error to a JSON-RPC error response format."""
        error_dict = {"code": self.code, "message": self.message}
        if self.data is not None:
            error_dict["data"] = self.data
        return error_dict


# Standard JSON-RPC error codes
class ParseError(JSONRPCError):
    """Invalid JSON was received by the server."""

    def __init__(self, data: Optional[Any] = None):
        super().__init__(code=-32700, message="Parse error", data=data)


class InvalidRequest(JSONRPCError):
    """The JSON sent is not a valid Request object."""

    def __init__(self, data: Optional[Any] = None):
        super().__init__(code=-32600, message="Invalid Request", data=data)


class MethodNotFound(JSONRPCError):
    """The method does not exist / is not available."""

    def __init__(self, method: str, data: Optional[Any] = None):
        super().__init__(code=-32601, message=f"Method not found: {method}", data=data)


class InvalidParams(JSONRPCError):
    """Invalid method parameter(s)."""

    def __init__(self, message: str = "Invalid params", data: Optional[Any] = None):
        super().__init__(code=-32602, message=message, data=data)


class InternalError(JSONRPCError):
    """Internal JSON-RPC error."""

    def __init__(self, message: str = "Internal error", data: Optional[Any] = None):
        super().__init__(code=-32603, message=message, data=data)


# Application-specific error codes (as per JSON-RPC spec, -32000 to -32099)
class ServerError(JSONRPCError):
    """Generic server error."""

    def __init__(self, message: str = "Server error", data: Optional[Any] = None):
        super().__init__(code=-32000, message=message, data=data)


TRANSACTION_ERROR_CODES: dict[TransactionErrorKind, int] = {
    TransactionErrorKind.MALFORMED_PAYLOAD: -32001,
    TransactionErrorKind.INSUFFICIENT_GAS_PRICE: -32002,
    TransactionErrorKind.INVALID_NONCE: -32003,
    TransactionErrorKind.INSUFFICIENT_FUNDS: -32004,
    TransactionErrorKind.MULTI_CONTRACT_UNSUPPORTED: -32005,
    TransactionErrorKind.ENGINE_EXECUTION_FAILURE: -32006,
    TransactionErrorKind.NOT_FOUND: -32007,
    TransactionErrorKind.INVALID_ADDRESS_FORMAT: -32008,
    TransactionErrorKind.INVALID_ARTIFACT_KIND: -32009,
}


def from_transaction_error(error: TransactionError) -> JSONRPCError:
    """Application error with a per-kind code and the error details as data."""
    return JSONRPCError(
        code=TRANSACTION_ERROR_CODES.get(error.kind, -32000),
        message=error.message,
        data=error.to_dict(),
    )
