# emulator/node/addressing.py

import copy
import hashlib
import json

from eth_utils import is_hex_address, remove_0x_prefix

from emulator.database_handler.errors import (
    InvalidAddressFormatError,
    MalformedPayloadError,
)
from emulator.node.types import ADDRESS_SIZE, normalize_address

__all__ = (
    "NONCE_WIDTH",
    "compute_contract_address",
    "compute_transaction_id",
    "address_from_public_key",
)

# the nonce is hashed as a fixed 16-byte big-endian integer
NONCE_WIDTH = 16


def compute_contract_address(sender_address: str, nonce: int) -> str:
    """
    Derive the address a deployment from ``sender_address`` will land on.

    ``nonce`` must be the sender's nonce *before* it is increased for the
    deploying transaction. The address is the last 20 bytes of
    ``sha256(sender || nonce)``, returned as 40 lowercase hex chars.
    """
    if not is_hex_address(sender_address):
        raise InvalidAddressFormatError(sender_address)
    if nonce < 0:
        raise ValueError(f"Nonce must be non-negative, got {nonce}")

    hasher = hashlib.sha256()
    hasher.update(bytes.fromhex(normalize_address(sender_address)))
    hasher.update(nonce.to_bytes(NONCE_WIDTH, byteorder="big", signed=False))
    return hasher.hexdigest()[-ADDRESS_SIZE * 2 :]


def compute_transaction_id(payload: dict) -> str:
    """
    SHA-256 of the payload serialized as compact JSON, without ``signature``.

    Keys keep the order they were supplied in, so two payloads that differ
    only in key order produce different ids.
    """
    stripped = copy.deepcopy(payload)
    stripped.pop("signature", None)
    serialized = json.dumps(stripped, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def address_from_public_key(pub_key: str) -> str:
    """Account address owned by ``pub_key``: last 20 bytes of its SHA-256."""
    try:
        key_bytes = bytes.fromhex(remove_0x_prefix(pub_key))
    except ValueError as e:
        raise MalformedPayloadError(f"Invalid public key: {e}") from e
    if not key_bytes:
        raise MalformedPayloadError("Public key is empty")
    return hashlib.sha256(key_bytes).hexdigest()[-ADDRESS_SIZE * 2 :]
