# emulator/database_handler/errors.py

from enum import StrEnum

__all__ = (
    "TransactionErrorKind",
    "TransactionError",
    "MalformedPayloadError",
    "InsufficientGasPriceError",
    "InvalidNonceError",
    "InsufficientFundsError",
    "MultiContractUnsupportedError",
    "EngineExecutionError",
    "NotFoundError",
    "InvalidAddressFormatError",
    "InvalidArtifactKindError",
)


class TransactionErrorKind(StrEnum):
    """Closed set of failures surfaced to the caller of the ledger pipeline."""

    MALFORMED_PAYLOAD = "MALFORMED_PAYLOAD"
    INSUFFICIENT_GAS_PRICE = "INSUFFICIENT_GAS_PRICE"
    INVALID_NONCE = "INVALID_NONCE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    MULTI_CONTRACT_UNSUPPORTED = "MULTI_CONTRACT_UNSUPPORTED"
    ENGINE_EXECUTION_FAILURE = "ENGINE_EXECUTION_FAILURE"
    NOT_FOUND = "NOT_FOUND"
    INVALID_ADDRESS_FORMAT = "INVALID_ADDRESS_FORMAT"
    INVALID_ARTIFACT_KIND = "INVALID_ARTIFACT_KIND"


class TransactionError(Exception):
    """Base exception for every rejection raised by the ledger pipeline."""

    kind: TransactionErrorKind = TransactionErrorKind.MALFORMED_PAYLOAD
    default_message = "Transaction rejected"

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, **self.context}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class MalformedPayloadError(TransactionError):
    kind = TransactionErrorKind.MALFORMED_PAYLOAD
    default_message = "Invalid Tx Json"


class InsufficientGasPriceError(TransactionError):
    kind = TransactionErrorKind.INSUFFICIENT_GAS_PRICE

    def __init__(self, min_gas_price: int):
        super().__init__(
            f"Payload gas price is insufficient. Current gas price is {min_gas_price}",
            min_gas_price=min_gas_price,
        )


class InvalidNonceError(TransactionError):
    """Raised after the transfer fee has already been deducted from the sender."""

    kind = TransactionErrorKind.INVALID_NONCE

    def __init__(self, expected: int, received: int, charged: int):
        super().__init__(
            f"Invalid nonce: expected {expected}, got {received}",
            expected=expected,
            received=received,
            charged=charged,
        )


class InsufficientFundsError(TransactionError):
    kind = TransactionErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, address: str, required: int, balance: int):
        super().__init__(
            "Insufficient funds",
            address=address,
            required=required,
            balance=balance,
        )


class MultiContractUnsupportedError(TransactionError):
    kind = TransactionErrorKind.MULTI_CONTRACT_UNSUPPORTED
    default_message = "Multi-contract calls are not supported yet."


class EngineExecutionError(TransactionError):
    """The contract execution engine failed or timed out. Nothing was committed."""

    kind = TransactionErrorKind.ENGINE_EXECUTION_FAILURE
    default_message = "Contract execution failed"


class NotFoundError(TransactionError):
    kind = TransactionErrorKind.NOT_FOUND

    def __init__(self, key: str, message: str = ""):
        self.key = key
        super().__init__(message or f"{key} does not exist", key=key)


class InvalidAddressFormatError(TransactionError):
    kind = TransactionErrorKind.INVALID_ADDRESS_FORMAT

    def __init__(self, address):
        self.address = address
        super().__init__("Address size inappropriate", address=str(address))


class InvalidArtifactKindError(TransactionError):
    kind = TransactionErrorKind.INVALID_ARTIFACT_KIND

    def __init__(self, artifact_kind: str):
        super().__init__("Invalid option flag", artifact_kind=artifact_kind)
