"""
Fixtures for integration tests: a full emulator app with a fake contract engine
"""

import json

import pytest
from fastapi.testclient import TestClient

from emulator.protocol_rpc.app_lifespan import EmulatorSettings
from emulator.protocol_rpc.fastapi_server import create_app
from tests.common.fakes import SENDER_ADDRESS, FakeContractEngine


@pytest.fixture
def accounts_file(tmp_path):
    path = tmp_path / "accounts.json"
    path.write_text(json.dumps({SENDER_ADDRESS: {"amount": "1000", "nonce": 4}}))
    return path


@pytest.fixture
def make_settings(tmp_path, accounts_file):
    def _make_settings(**overrides):
        values = dict(
            data_path=str(tmp_path / "data"),
            network_id="Testnet",
            num_accounts=0,
            default_balance=0,
            block_interval=10,
            accounts_file=str(accounts_file),
        )
        values.update(overrides)
        return EmulatorSettings(**values)

    return _make_settings


@pytest.fixture
def make_client(make_settings):
    def _make_client(engine=None, **overrides):
        app = create_app(make_settings(**overrides), engine=engine or FakeContractEngine())
        return TestClient(app)

    return _make_client


@pytest.fixture
def client(make_client):
    with make_client() as test_client:
        yield test_client


@pytest.fixture
def rpc(client):
    """Call a JSON-RPC method and return the decoded response body."""

    def _call(method, params=None, request_id=1, path="/api"):
        body = {"jsonrpc": "2.0", "method": method, "id": request_id}
        if params is not None:
            body["params"] = params
        response = client.post(path, json=body)
        assert response.status_code == 200
        return response.json()

    return _call
