from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class EventType(Enum):
    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class EventScope(Enum):
    RPC = "RPC"
    TRANSACTION = "Transaction"
    ENGINE = "Engine"
    SNAPSHOT = "Snapshot"


@dataclass
class LogEvent:
    name: str
    type: EventType
    scope: EventScope
    message: str
    data: Optional[Any] = None
    transaction_hash: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type.value,
            "scope": self.scope.value,
            "message": self.message,
            "data": self.data,
            "transaction_hash": self.transaction_hash,
        }
