import os
import shutil
from pathlib import Path


def _check_one(check: Path) -> bool:
    try:
        return check.is_file() and os.access(check, os.X_OK)
    except OSError:
        return False


def _find_exe(name: str, *, env_name: str) -> Path:
    checked = []
    configured = os.getenv(env_name)
    if configured:
        check = Path(configured)
        checked.append(check)
        if _check_one(check):
            return check
        name = configured

    found = shutil.which(name)
    if found is not None:
        return Path(found)
    checked.append(Path(name))
    raise FileNotFoundError(f"Can't find executable {name}, searched at {checked}")


def get_scilla_runner_path() -> Path:
    return _find_exe("scilla-runner", env_name="SCILLA_RUNNER")


def get_scilla_stdlib_path() -> Path | None:
    stdlib = os.getenv("SCILLA_STDLIB")
    return Path(stdlib) if stdlib else None
