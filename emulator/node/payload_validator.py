# emulator/node/payload_validator.py

"""
Structural and type checks for inbound ``CreateTransaction`` payloads.

The validator is the only place that looks at the untrusted request. Its
output is a ``TransferPayload`` or a ``ContractPayload``, so the rest of the
pipeline never re-checks field presence or types.
"""

from typing import Any

from eth_utils import is_hex, is_hex_address, is_integer, is_text
from loguru import logger

from emulator.database_handler.errors import (
    InvalidAddressFormatError,
    MalformedPayloadError,
)
from emulator.node.types import ContractPayload, TransactionPayload, TransferPayload

__all__ = (
    "EXPECTED_FIELDS",
    "OPTIONAL_FIELDS",
    "check_transaction_json",
    "extract_payload",
    "parse_transaction_payload",
)

EXPECTED_FIELDS = (
    "version",
    "nonce",
    "toAddr",
    "amount",
    "pubKey",
    "gasPrice",
    "gasLimit",
    "signature",
)
OPTIONAL_FIELDS = ("code", "data")

INTEGER_FIELDS = ("version", "nonce")
NUMERIC_STRING_FIELDS = ("amount", "gasPrice", "gasLimit")


def extract_payload(params: Any) -> dict:
    """Pull the candidate payload out of the JSON-RPC params container."""
    if params is None or not isinstance(params, (list, tuple, dict)):
        raise MalformedPayloadError("Params must be an array or an object")

    if isinstance(params, dict):
        payload = params
    else:
        if len(params) == 0:
            raise MalformedPayloadError("Params array is empty")
        payload = params[0]

    if not isinstance(payload, dict):
        raise MalformedPayloadError("Transaction payload must be an object")
    return payload


def _check_field_names(payload: dict) -> None:
    keys = list(payload.keys())
    if len(keys) < len(EXPECTED_FIELDS):
        raise MalformedPayloadError(
            f"Expected at least {len(EXPECTED_FIELDS)} fields, got {len(keys)}"
        )

    overlap = set(keys) & set(EXPECTED_FIELDS)
    if len(overlap) != len(EXPECTED_FIELDS):
        missing = sorted(set(EXPECTED_FIELDS) - overlap)
        raise MalformedPayloadError(f"Missing fields: {', '.join(missing)}")

    unexpected = set(keys) - set(EXPECTED_FIELDS) - set(OPTIONAL_FIELDS)
    if unexpected:
        raise MalformedPayloadError(
            f"Unexpected fields: {', '.join(sorted(unexpected))}"
        )


def _check_field_types(payload: dict) -> None:
    # first violation wins
    for name in EXPECTED_FIELDS:
        value = payload[name]
        if name in INTEGER_FIELDS:
            if not is_integer(value):
                raise MalformedPayloadError(f"Field {name} must be an integer")
        elif not is_text(value):
            raise MalformedPayloadError(f"Field {name} must be a string")

    for name in OPTIONAL_FIELDS:
        if name in payload and payload[name] is not None and not is_text(payload[name]):
            raise MalformedPayloadError(f"Field {name} must be a string")


def _parse_numeric(payload: dict, name: str) -> int:
    value = payload[name].strip()
    if not value.isdecimal():
        raise MalformedPayloadError(f"Field {name} must be a non-negative integer string")
    return int(value)


def parse_transaction_payload(params: Any) -> TransactionPayload:
    """Validate the request params and return the typed payload.

    Raises:
        MalformedPayloadError: if the structure or a field type is wrong.
        InvalidAddressFormatError: if ``toAddr`` is not a 20-byte hex address.
    """
    payload = extract_payload(params)
    _check_field_names(payload)
    _check_field_types(payload)

    if not is_hex(payload["pubKey"]):
        raise MalformedPayloadError("Field pubKey must be a hex string")
    if not is_hex_address(payload["toAddr"]):
        raise InvalidAddressFormatError(payload["toAddr"])

    fields = dict(
        version=payload["version"],
        nonce=payload["nonce"],
        to_addr=payload["toAddr"],
        amount=_parse_numeric(payload, "amount"),
        pub_key=payload["pubKey"],
        gas_price=_parse_numeric(payload, "gasPrice"),
        gas_limit=_parse_numeric(payload, "gasLimit"),
        signature=payload["signature"],
        raw=payload,
    )

    code = payload.get("code")
    data = payload.get("data")
    if not code and not data:
        return TransferPayload(**fields)
    return ContractPayload(code=code or None, data=data or None, **fields)


def check_transaction_json(params: Any) -> bool:
    """Boolean form of the validator, for callers that only need pass/fail."""
    try:
        parse_transaction_payload(params)
    except (MalformedPayloadError, InvalidAddressFormatError) as e:
        logger.debug(f"Transaction payload rejected: {e.message}")
        return False
    return True
