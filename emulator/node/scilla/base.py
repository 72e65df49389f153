# emulator/node/scilla/base.py

__all__ = (
    "ContractEngine",
    "ScillaRunner",
    "build_blockchain_state",
    "build_init_params",
    "build_message",
)

import abc
import asyncio
import json
import tempfile
from pathlib import Path

from loguru import logger

from emulator.database_handler.contract_snapshot import ContractArtifacts
from emulator.database_handler.errors import EngineExecutionError, NotFoundError
from emulator.node.scilla.config import get_scilla_runner_path, get_scilla_stdlib_path
from emulator.node.types import ZERO_ADDRESS, ContractPayload, ExecutionOutcome, normalize_address

MAX_ENGINE_OUTPUT_LOG = 2000


# Interface of the contract interpreter. The router only depends on this, so
# tests can plug in a fake engine.
class ContractEngine(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    async def run(
        self,
        payload: ContractPayload,
        contract_address: str,
        sender_address: str,
        data_path: str | Path,
        block_number: int,
    ) -> ExecutionOutcome: ...


def _decode_json_field(value: str | None, field_name: str, default):
    if not value:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise EngineExecutionError(f"Field {field_name} is not valid JSON: {e}") from e


def build_init_params(
    payload: ContractPayload, contract_address: str, block_number: int
) -> list[dict]:
    """Immutable init parameters of a new contract, with the implicit ones added."""
    init = _decode_json_field(payload.data, "data", [])
    if not isinstance(init, list):
        raise EngineExecutionError("Deployment data must be a JSON array of init params")

    names = {entry.get("vname") for entry in init if isinstance(entry, dict)}
    if "_scilla_version" not in names:
        init.append({"vname": "_scilla_version", "type": "Uint32", "value": "0"})
    if "_this_address" not in names:
        init.append(
            {"vname": "_this_address", "type": "ByStr20", "value": f"0x{contract_address}"}
        )
    if "_creation_block" not in names:
        init.append(
            {"vname": "_creation_block", "type": "BNum", "value": str(block_number)}
        )
    return init


def build_message(payload: ContractPayload, sender_address: str) -> dict:
    message = _decode_json_field(payload.data, "data", None)
    if not isinstance(message, dict) or "_tag" not in message:
        raise EngineExecutionError("Invocation data must be a JSON object with a _tag")
    message.setdefault("params", [])
    message["_amount"] = str(payload.amount)
    message["_sender"] = f"0x{normalize_address(sender_address)}"
    return message


def build_blockchain_state(block_number: int) -> list[dict]:
    return [{"vname": "BLOCKNUMBER", "type": "BNum", "value": str(block_number)}]


def _next_address(output: dict) -> str:
    message = output.get("message")
    if not isinstance(message, dict):
        return ZERO_ADDRESS
    recipient = message.get("_recipient")
    if not recipient:
        return ZERO_ADDRESS
    return normalize_address(recipient)


class ScillaRunner(ContractEngine):
    """
    Runs contracts through the ``scilla-runner`` executable.

    Every run gets its own scratch directory holding the input documents.
    ``data_path`` is only read: the new contract files travel back in
    ``ExecutionOutcome.artifacts`` for the node to store.
    """

    def __init__(
        self,
        runner_path: str | Path | None = None,
        stdlib_path: str | Path | None = None,
        timeout: float | None = None,
    ):
        self._runner_path = Path(runner_path) if runner_path else None
        self._stdlib_path = Path(stdlib_path) if stdlib_path else get_scilla_stdlib_path()
        self.timeout = timeout

    @property
    def runner_path(self) -> Path:
        if self._runner_path is None:
            self._runner_path = get_scilla_runner_path()
        return self._runner_path

    def _prepare_inputs(
        self,
        workdir: Path,
        payload: ContractPayload,
        artifacts: ContractArtifacts,
        contract_address: str,
        sender_address: str,
        block_number: int,
    ) -> tuple[list[str], list[dict] | None]:
        files = {
            "blockchain": workdir / "blockchain.json",
            "init": workdir / "init.json",
            "code": workdir / "input.scilla",
            "output": workdir / "output.json",
        }
        files["blockchain"].write_text(json.dumps(build_blockchain_state(block_number)))

        args = [
            str(self.runner_path),
            "-init",
            str(files["init"]),
            "-iblockchain",
            str(files["blockchain"]),
            "-o",
            str(files["output"]),
            "-i",
            str(files["code"]),
            "-gaslimit",
            str(payload.gas_limit),
        ]

        init: list[dict] | None = None
        if payload.is_deployment:
            init = build_init_params(payload, contract_address, block_number)
            files["init"].write_text(json.dumps(init))
            files["code"].write_text(payload.code)
        else:
            target = normalize_address(payload.to_addr)
            try:
                code = artifacts.read(target, "code")["code"]
                target_init = artifacts.read(target, "init")
                state = artifacts.read(target, "state")
            except NotFoundError as e:
                raise NotFoundError(target, f"Contract {target} does not exist") from e

            files["init"].write_text(json.dumps(target_init))
            files["code"].write_text(code)
            istate = workdir / "state.json"
            istate.write_text(json.dumps(state))
            imessage = workdir / "message.json"
            imessage.write_text(json.dumps(build_message(payload, sender_address)))
            args += ["-istate", str(istate), "-imessage", str(imessage)]

        if self._stdlib_path is not None:
            args += ["-libdir", str(self._stdlib_path)]
        return args, init

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()

    async def _execute(self, args: list[str]) -> None:
        logger.debug(f"Running contract engine: {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineExecutionError(f"Failed to start contract engine: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            raise EngineExecutionError(
                f"Contract engine timed out after {self.timeout} seconds"
            )
        except asyncio.CancelledError:
            # the caller gave up on this run; don't leave the interpreter behind
            await asyncio.shield(self._kill(process))
            raise

        if process.returncode != 0:
            output = (stderr or stdout or b"").decode("utf-8", errors="replace")
            raise EngineExecutionError(
                f"Contract engine exited with code {process.returncode}: "
                f"{output[:MAX_ENGINE_OUTPUT_LOG]}"
            )

    async def run(
        self,
        payload: ContractPayload,
        contract_address: str,
        sender_address: str,
        data_path: str | Path,
        block_number: int,
    ) -> ExecutionOutcome:
        artifacts = ContractArtifacts(data_path)

        with tempfile.TemporaryDirectory(prefix="scilla-") as tmp:
            workdir = Path(tmp)
            args, init = self._prepare_inputs(
                workdir, payload, artifacts, contract_address, sender_address, block_number
            )
            await self._execute(args)

            try:
                output = json.loads((workdir / "output.json").read_text())
                gas_remaining = int(output["gas_remaining"])
            except (OSError, ValueError, KeyError, TypeError) as e:
                raise EngineExecutionError(f"Unreadable contract engine output: {e}") from e

        states = output.get("states", [])
        if payload.is_deployment:
            pending = {
                contract_address: {"code": payload.code, "init": init, "state": states}
            }
        else:
            pending = {normalize_address(payload.to_addr): {"state": states}}

        return ExecutionOutcome(
            next_address=_next_address(output),
            gas_remaining=gas_remaining,
            artifacts=pending,
            output=output,
        )
