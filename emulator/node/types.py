from dataclasses import dataclass, field
from typing import Optional, Union

ADDRESS_SIZE = 20
ZERO_ADDRESS = "0" * (ADDRESS_SIZE * 2)


def normalize_address(address: str) -> str:
    """Lowercase hex form without the 0x prefix, as used for every ledger key."""
    address = address.strip()
    if address[:2] in ("0x", "0X"):
        address = address[2:]
    return address.lower()


@dataclass(frozen=True)
class _PayloadFields:
    version: int
    nonce: int
    to_addr: str
    amount: int
    pub_key: str
    gas_price: int
    gas_limit: int
    signature: str
    # payload exactly as submitted; the transaction id is derived from it
    raw: dict = field(repr=False, compare=False)


@dataclass(frozen=True)
class TransferPayload(_PayloadFields):
    pass


@dataclass(frozen=True)
class ContractPayload(_PayloadFields):
    code: Optional[str] = None
    data: Optional[str] = None

    @property
    def is_deployment(self) -> bool:
        return bool(self.code) and normalize_address(self.to_addr) == ZERO_ADDRESS


TransactionPayload = Union[TransferPayload, ContractPayload]


@dataclass
class Receipt:
    cumulative_gas: int = 1
    success: bool = True

    def to_dict(self) -> dict:
        return {"cumulative_gas": self.cumulative_gas, "success": self.success}

    @classmethod
    def from_dict(cls, input: dict) -> "Receipt":
        return cls(
            cumulative_gas=input.get("cumulative_gas", 1),
            success=input.get("success", True),
        )


@dataclass
class TransactionRecord:
    id: str
    amount: str
    nonce: int
    receipt: Receipt
    sender_pub_key: str
    signature: str
    to_addr: str
    version: int

    @classmethod
    def from_payload(
        cls, transaction_id: str, payload: TransactionPayload
    ) -> "TransactionRecord":
        raw = payload.raw
        return cls(
            id=transaction_id,
            amount=raw["amount"],
            nonce=raw["nonce"],
            receipt=Receipt(),
            sender_pub_key=raw["pubKey"],
            signature=raw["signature"],
            to_addr=raw["toAddr"],
            version=raw["version"],
        )

    def to_dict(self) -> dict:
        return {
            "ID": self.id,
            "amount": self.amount,
            "nonce": self.nonce,
            "receipt": self.receipt.to_dict(),
            "senderPubKey": self.sender_pub_key,
            "signature": self.signature,
            "toAddr": self.to_addr,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, input: dict) -> "TransactionRecord":
        return cls(
            id=input["ID"],
            amount=input["amount"],
            nonce=input["nonce"],
            receipt=Receipt.from_dict(input.get("receipt") or {}),
            sender_pub_key=input["senderPubKey"],
            signature=input["signature"],
            to_addr=input["toAddr"],
            version=input["version"],
        )


@dataclass(frozen=True)
class ExecutionOutcome:
    """What the contract engine reports back after a run.

    ``artifacts`` maps a contract address to the files to store for it
    (``code``, ``init``, ``state``). The engine never writes them itself; the
    node stores them once the transaction is accepted.
    """

    next_address: str
    gas_remaining: int
    artifacts: dict[str, dict] = field(default_factory=dict, repr=False, compare=False)
    # parsed output document of the engine, kept for logging
    output: dict = field(default_factory=dict, repr=False, compare=False)
