import logging
from unittest.mock import patch

import pytest
from loguru import logger

from emulator.protocol_rpc.logging_config import (
    LoguruInterceptHandler,
    get_uvicorn_log_config,
    resolve_log_level,
)
from emulator.protocol_rpc.run_server import apply_arguments, build_parser, main


def test_flags_map_to_environment():
    environ = {}
    args = build_parser().parse_args(
        [
            "--port",
            "5555",
            "--accounts",
            "fixtures.json",
            "--num-accounts",
            "3",
            "--data-path",
            "/tmp/data",
            "--load",
            "in.json",
            "--save",
            "out.json",
            "--verbose",
        ]
    )

    apply_arguments(args, environ)

    assert environ == {
        "RPCPORT": "5555",
        "ACCOUNTS_FILE": "fixtures.json",
        "NUM_ACCOUNTS": "3",
        "DATA_PATH": "/tmp/data",
        "LOAD_FILE": "in.json",
        "SAVE_FILE": "out.json",
        "LOG_LEVEL": "DEBUG",
    }


def test_unset_flags_leave_environment_alone():
    environ = {"RPCPORT": "4000"}
    apply_arguments(build_parser().parse_args([]), environ)

    assert environ == {"RPCPORT": "4000"}


def test_main_starts_uvicorn(monkeypatch):
    # registers the variables for restoration after main() overwrites them
    monkeypatch.setenv("RPCPORT", "4000")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    with patch("uvicorn.run") as run:
        main(["--port", "4321", "--verbose"])

    _, kwargs = run.call_args
    assert run.call_args.args[0] == "emulator.protocol_rpc.fastapi_server:app"
    assert kwargs["port"] == 4321
    access = kwargs["log_config"]["loggers"]["uvicorn.access"]
    assert access == {"handlers": ["loguru"], "level": "DEBUG", "propagate": False}


@pytest.mark.parametrize(
    "value, expected",
    [("debug", "DEBUG"), ("Warning", "WARNING"), ("loud", "INFO")],
)
def test_log_level_from_environment(monkeypatch, value, expected):
    monkeypatch.setenv("LOG_LEVEL", value)

    assert resolve_log_level() == expected


def test_loguru_only_levels_map_to_stdlib_levels():
    config = get_uvicorn_log_config("success")

    assert config["loggers"]["uvicorn"]["level"] == "INFO"


@pytest.fixture
def captured():
    messages = []
    sink_id = logger.add(lambda m: messages.append(m.record), level="DEBUG")
    yield messages
    logger.remove(sink_id)


def make_record(name, message, level=logging.INFO):
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


def test_uvicorn_records_are_forwarded_to_loguru(captured):
    handler = LoguruInterceptHandler()

    handler.emit(make_record("uvicorn.error", "Application startup complete."))
    handler.emit(make_record("uvicorn.error", "boom", level=logging.ERROR))

    assert [(r["level"].name, r["message"]) for r in captured] == [
        ("INFO", "Application startup complete."),
        ("ERROR", "boom"),
    ]


def test_health_checks_are_dropped_from_access_log(captured):
    handler = LoguruInterceptHandler()

    handler.emit(make_record("uvicorn.access", '127.0.0.1 - "GET /health HTTP/1.1" 200'))
    handler.emit(make_record("uvicorn.access", '127.0.0.1 - "GET /ready HTTP/1.1" 200'))
    handler.emit(make_record("uvicorn.access", '127.0.0.1 - "POST /api HTTP/1.1" 200'))

    assert [r["message"] for r in captured] == ['127.0.0.1 - "POST /api HTTP/1.1" 200']
