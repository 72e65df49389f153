#!/usr/bin/env python3
"""
Command line entry point for the emulator.

Flags are mapped onto the environment variables read by the application
lifespan, then uvicorn is started with the emulator's logging config.
"""

import argparse
import os
from typing import Optional, Sequence

from emulator.protocol_rpc.logging_config import (
    get_uvicorn_log_config,
    resolve_log_level,
)

FLAG_TO_ENV = {
    "port": "RPCPORT",
    "accounts": "ACCOUNTS_FILE",
    "num_accounts": "NUM_ACCOUNTS",
    "data_path": "DATA_PATH",
    "load": "LOAD_FILE",
    "save": "SAVE_FILE",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="emulator",
        description="Local ledger emulator exposing a JSON-RPC API",
    )
    parser.add_argument("-p", "--port", type=int, help="RPC server port")
    parser.add_argument("--accounts", help="Account fixture file (JSON)")
    parser.add_argument(
        "-n", "--num-accounts", type=int, help="Number of wallets to generate"
    )
    parser.add_argument("--data-path", help="Directory for contract artifacts")
    parser.add_argument("--load", help="Snapshot file to load at startup")
    parser.add_argument("--save", help="Snapshot file to write at shutdown")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def apply_arguments(args: argparse.Namespace, environ=os.environ) -> None:
    for attribute, env_name in FLAG_TO_ENV.items():
        value = getattr(args, attribute)
        if value is not None:
            environ[env_name] = str(value)
    if args.verbose:
        environ["LOG_LEVEL"] = "DEBUG"


def main(argv: Optional[Sequence[str]] = None):
    import uvicorn

    apply_arguments(build_parser().parse_args(argv))
    level = resolve_log_level()

    uvicorn.run(
        "emulator.protocol_rpc.fastapi_server:app",
        host="0.0.0.0",
        port=int(os.getenv("RPCPORT", "4000")),
        log_config=get_uvicorn_log_config(level),
    )


if __name__ == "__main__":
    main()
