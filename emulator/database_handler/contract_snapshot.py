# emulator/database_handler/contract_snapshot.py
import json
from pathlib import Path
from typing import Any

from eth_utils import is_hex_address
from loguru import logger

from emulator.database_handler.errors import (
    InvalidAddressFormatError,
    InvalidArtifactKindError,
    NotFoundError,
)
from emulator.node.types import normalize_address

ARTIFACT_KINDS = ("init", "state", "code")


def artifact_extension(kind: str) -> str:
    return "scilla" if kind == "code" else "json"


class ContractArtifacts:
    """
    File-backed blob store for deployed contracts.

    Each contract owns up to three files in ``data_path``, named
    ``<address>_init.json``, ``<address>_state.json`` and
    ``<address>_code.scilla``. The address part is always lowercase.
    """

    def __init__(self, data_path: str | Path):
        self.data_path = Path(data_path)

    def _parse_kind(self, kind: str) -> str:
        file_type = kind.strip().lower() if isinstance(kind, str) else ""
        if file_type not in ARTIFACT_KINDS:
            raise InvalidArtifactKindError(str(kind))
        return file_type

    def artifact_path(self, contract_address: str, kind: str) -> Path:
        if not is_hex_address(contract_address):
            raise InvalidAddressFormatError(contract_address)
        file_type = self._parse_kind(kind)
        address = normalize_address(contract_address)
        return self.data_path / f"{address}_{file_type}.{artifact_extension(file_type)}"

    def exists(self, contract_address: str, kind: str) -> bool:
        return self.artifact_path(contract_address, kind).is_file()

    def read(self, contract_address: str, kind: str) -> Any:
        """Code comes back as ``{"code": text}``; init and state are parsed JSON."""
        file_type = self._parse_kind(kind)
        path = self.artifact_path(contract_address, file_type)
        logger.debug(f"Retrieving contract {file_type} from {path}")

        if not path.is_file():
            raise NotFoundError(
                normalize_address(contract_address),
                f"No {file_type} file found for contract {contract_address}",
            )

        content = path.read_text(encoding="utf-8")
        if file_type == "code":
            return {"code": content}
        return json.loads(content)

    def write(self, contract_address: str, kind: str, content: Any) -> Path:
        file_type = self._parse_kind(kind)
        path = self.artifact_path(contract_address, file_type)
        path.parent.mkdir(parents=True, exist_ok=True)
        if file_type == "code":
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content, indent=2), encoding="utf-8")
        return path
