import asyncio

import pytest

from emulator.database_handler.errors import (
    EngineExecutionError,
    InsufficientFundsError,
    InsufficientGasPriceError,
    InvalidAddressFormatError,
    InvalidNonceError,
    MalformedPayloadError,
    MultiContractUnsupportedError,
    NotFoundError,
)
from emulator.node.addressing import compute_contract_address, compute_transaction_id
from emulator.node.base import INFO_DEPLOYMENT, INFO_INVOCATION, INFO_TRANSFER
from tests.common.fakes import (
    OTHER_ADDRESS,
    RECIPIENT_ADDRESS,
    SENDER_ADDRESS,
    FakeContractEngine,
    deployment_payload,
    invocation_payload,
    transfer_payload,
)


def balance_of(node, address=SENDER_ADDRESS):
    return node.accounts_manager.get_balance(address)


class TestTransfers:
    """Plain value transfers."""

    @pytest.mark.asyncio
    async def test_transfer_charges_amount_and_fee(self, node):
        payload = transfer_payload(nonce=5, amount="100")

        response = await node.process_create_transaction([payload])

        assert response["Info"] == INFO_TRANSFER
        assert response["TranID"] == compute_transaction_id(payload)
        assert balance_of(node) == {"balance": 899, "nonce": 5}
        assert balance_of(node, RECIPIENT_ADDRESS) == {"balance": 100, "nonce": 0}

    @pytest.mark.asyncio
    async def test_replayed_nonce_charges_transfer_fee_only(self, node):
        payload = transfer_payload(nonce=5, amount="100")
        await node.process_create_transaction([payload])

        with pytest.raises(InvalidNonceError) as exc_info:
            await node.process_create_transaction([payload])

        assert exc_info.value.to_dict()["charged"] == 1
        assert balance_of(node) == {"balance": 898, "nonce": 5}
        assert len(node.ledger) == 1

    @pytest.mark.asyncio
    async def test_skipped_nonce_is_rejected(self, node):
        with pytest.raises(InvalidNonceError):
            await node.process_create_transaction([transfer_payload(nonce=7)])

        assert balance_of(node) == {"balance": 999, "nonce": 4}

    @pytest.mark.asyncio
    async def test_gas_price_below_minimum_is_rejected_without_charge(self, make_node):
        node = make_node(min_gas_price=10)

        with pytest.raises(InsufficientGasPriceError) as exc_info:
            await node.process_create_transaction(
                [transfer_payload(nonce=5, gas_price="9")]
            )

        assert "10" in exc_info.value.message
        assert balance_of(node) == {"balance": 1000, "nonce": 4}

    @pytest.mark.asyncio
    async def test_transfer_fee_uses_minimum_gas_price(self, make_node):
        node = make_node(min_gas_price=2, transfer_gas_cost=3)

        await node.process_create_transaction(
            [transfer_payload(nonce=5, amount="10", gas_price="2")]
        )

        assert balance_of(node)["balance"] == 1000 - 10 - 6

    @pytest.mark.asyncio
    async def test_transfer_exceeding_balance_is_rejected(self, node):
        with pytest.raises(InsufficientFundsError):
            await node.process_create_transaction(
                [transfer_payload(nonce=5, amount="1000")]
            )

        assert balance_of(node) == {"balance": 1000, "nonce": 4}
        assert len(node.ledger) == 0

    @pytest.mark.asyncio
    async def test_funds_check_can_be_disabled(self, make_node):
        node = make_node(transfer_funds_check=False)

        await node.process_create_transaction([transfer_payload(nonce=5, amount="5000")])

        assert balance_of(node) == {"balance": -4001, "nonce": 5}

    @pytest.mark.asyncio
    async def test_recipient_address_is_stored_lowercase(self, node):
        await node.process_create_transaction(
            [transfer_payload(nonce=5, amount="1", to_addr="0x" + "AB" * 20)]
        )

        assert node.accounts_manager.get_account(RECIPIENT_ADDRESS)["balance"] == 1

    @pytest.mark.asyncio
    async def test_malformed_payload_is_rejected(self, node):
        payload = transfer_payload(nonce=5)
        del payload["signature"]

        with pytest.raises(MalformedPayloadError):
            await node.process_create_transaction([payload])

    @pytest.mark.asyncio
    async def test_invalid_recipient_address_is_rejected(self, node):
        with pytest.raises(InvalidAddressFormatError):
            await node.process_create_transaction(
                [transfer_payload(nonce=5, to_addr="abc")]
            )


class TestContracts:
    """Deployments and invocations through the contract engine."""

    @pytest.mark.asyncio
    async def test_deployment_registers_contract(self, node, engine):
        response = await node.process_create_transaction([deployment_payload(nonce=5)])

        expected_address = compute_contract_address(SENDER_ADDRESS, 4)
        assert response["Info"] == INFO_DEPLOYMENT
        assert response["ContractAddress"] == expected_address
        assert engine.calls[0]["contract_address"] == expected_address
        assert node.registry.list_for_creator(SENDER_ADDRESS) == [expected_address]
        # 10 gas consumed at gas price 1
        assert balance_of(node) == {"balance": 990, "nonce": 5}

    @pytest.mark.asyncio
    async def test_contracts_by_creator_include_state(self, node, engine):
        response = await node.process_create_transaction([deployment_payload(nonce=5)])

        contracts = node.process_get_contracts_by_creator(SENDER_ADDRESS)

        assert contracts == [{"address": response["ContractAddress"], "state": engine.state}]

    @pytest.mark.asyncio
    async def test_invocation_after_deployment(self, node):
        deployed = await node.process_create_transaction([deployment_payload(nonce=5)])

        response = await node.process_create_transaction(
            [invocation_payload(deployed["ContractAddress"], nonce=6)]
        )

        assert response["Info"] == INFO_INVOCATION
        assert "ContractAddress" not in response
        assert balance_of(node) == {"balance": 980, "nonce": 6}
        assert node.registry.list_for_creator(SENDER_ADDRESS) == [
            deployed["ContractAddress"]
        ]

    @pytest.mark.asyncio
    async def test_call_to_other_contract_is_rejected(self, make_node):
        engine = FakeContractEngine(next_address="cd" * 20)
        node = make_node(engine=engine)

        with pytest.raises(MultiContractUnsupportedError):
            await node.process_create_transaction([deployment_payload(nonce=5)])

        # gas is still charged and the nonce consumed
        assert balance_of(node) == {"balance": 990, "nonce": 5}
        assert len(node.ledger) == 0
        with pytest.raises(NotFoundError):
            node.registry.list_for_creator(SENDER_ADDRESS)
        derived = engine.calls[0]["contract_address"]
        with pytest.raises(NotFoundError):
            node.process_get_contract_artifact(derived, "code")

    @pytest.mark.asyncio
    async def test_rejected_invocation_keeps_contract_state(self, make_node):
        engine = FakeContractEngine(state=[{"vname": "v", "type": "Uint32", "value": "1"}])
        node = make_node(engine=engine)
        deployed = await node.process_create_transaction([deployment_payload(nonce=5)])
        address = deployed["ContractAddress"]

        engine.next_address = "cd" * 20
        engine.state = [{"vname": "v", "type": "Uint32", "value": "2"}]
        with pytest.raises(MultiContractUnsupportedError):
            await node.process_create_transaction(
                [invocation_payload(address, nonce=6)]
            )

        assert node.process_get_contract_artifact(address, "state") == [
            {"vname": "v", "type": "Uint32", "value": "1"}
        ]
        assert balance_of(node) == {"balance": 980, "nonce": 6}

    @pytest.mark.asyncio
    async def test_message_back_to_sender_is_allowed(self, make_node):
        node = make_node(engine=FakeContractEngine(next_address="0x" + SENDER_ADDRESS))

        response = await node.process_create_transaction([deployment_payload(nonce=5)])

        assert response["Info"] == INFO_DEPLOYMENT

    @pytest.mark.asyncio
    async def test_engine_failure_leaves_account_untouched(self, make_node):
        node = make_node(engine=FakeContractEngine(error=RuntimeError("boom")))

        with pytest.raises(EngineExecutionError):
            await node.process_create_transaction([deployment_payload(nonce=5)])

        assert balance_of(node) == {"balance": 1000, "nonce": 4}
        assert len(node.ledger) == 0

    @pytest.mark.asyncio
    async def test_engine_timeout_is_reported_as_engine_failure(self, make_node):
        node = make_node(engine=FakeContractEngine(delay=1), execution_timeout=0.05)

        with pytest.raises(EngineExecutionError) as exc_info:
            await node.process_create_transaction([deployment_payload(nonce=5)])

        assert "timed out" in exc_info.value.message
        assert balance_of(node) == {"balance": 1000, "nonce": 4}

    @pytest.mark.asyncio
    async def test_gas_limit_must_be_covered_by_balance(self, node, engine):
        with pytest.raises(InsufficientFundsError):
            await node.process_create_transaction(
                [deployment_payload(nonce=5, gas_limit="2000")]
            )

        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_unused_gas_is_not_charged(self, make_node):
        # engines may report more gas than the limit; never refund
        node = make_node(engine=FakeContractEngine(gas_remaining=500))

        await node.process_create_transaction([deployment_payload(nonce=5)])

        assert balance_of(node) == {"balance": 1000, "nonce": 5}


class TestQueries:
    @pytest.mark.asyncio
    async def test_recorded_transaction_can_be_fetched(self, node):
        payload = transfer_payload(nonce=5)
        response = await node.process_create_transaction([payload])

        details = node.process_get_transaction(response["TranID"])

        assert details["ID"] == response["TranID"]
        assert details["senderPubKey"] == payload["pubKey"]
        assert details["receipt"] == {"cumulative_gas": 1, "success": True}

    def test_unknown_transaction_is_not_found(self, node):
        with pytest.raises(NotFoundError):
            node.process_get_transaction("00" * 32)

    @pytest.mark.asyncio
    async def test_recent_transactions_newest_first(self, node):
        first = await node.process_create_transaction([transfer_payload(nonce=5)])
        second = await node.process_create_transaction([transfer_payload(nonce=6)])

        recent = node.process_get_recent_transactions()

        assert recent == {"TxnHashes": [second["TranID"], first["TranID"]], "number": 2}

    def test_balance_of_known_account(self, node):
        assert node.process_get_balance(SENDER_ADDRESS) == {"balance": "1000", "nonce": 4}

    def test_balance_of_unknown_account(self, node):
        with pytest.raises(NotFoundError):
            node.process_get_balance(OTHER_ADDRESS)


class TestSnapshots:
    @pytest.mark.asyncio
    async def test_export_then_load_restores_ledger(self, node):
        deployed = await node.process_create_transaction([deployment_payload(nonce=5)])
        snapshot = await node.export_snapshot()

        await node.load_snapshot({}, {})
        assert len(node.ledger) == 0

        await node.load_snapshot(
            snapshot["transactions"], snapshot["createdContractsByUsers"]
        )
        assert node.process_get_transaction(deployed["TranID"])["ID"] == deployed["TranID"]
        assert node.registry.list_for_creator(SENDER_ADDRESS) == [
            deployed["ContractAddress"]
        ]


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_same_nonce_submitted_concurrently_succeeds_once(self, make_node):
        node = make_node(engine=FakeContractEngine(delay=0.01))
        payload = deployment_payload(nonce=5)

        results = await asyncio.gather(
            node.process_create_transaction([payload]),
            node.process_create_transaction([dict(payload)]),
            return_exceptions=True,
        )

        successes = [r for r in results if isinstance(r, dict)]
        failures = [r for r in results if isinstance(r, InvalidNonceError)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert balance_of(node)["nonce"] == 5

    @pytest.mark.asyncio
    async def test_snapshot_waits_for_in_flight_transaction(self, make_node):
        node = make_node(engine=FakeContractEngine(delay=0.05))

        submission = asyncio.create_task(
            node.process_create_transaction([deployment_payload(nonce=5)])
        )
        await asyncio.sleep(0.01)
        snapshot = await node.export_snapshot()
        await submission

        assert len(snapshot["transactions"]) == 1
