from __future__ import annotations

import asyncio

import pytest

from errors import TransportFailure, UnsupportedIntent
from hap_types import CharacteristicTypes
from intents import IntentDispatcher

from hap_fixtures import instance, lightbulb, lock, switch, television

USERNAME = "AA:BB:CC:DD:EE:01"
HOST, PORT = "192.0.2.10", 51826


@pytest.fixture
def dispatcher(engine, client, index, adapters, config) -> IntentDispatcher:
    client.instances = [instance(accessories=[lightbulb(2), switch(3), lock(4), television()])]
    asyncio.run(engine.refresh())
    return IntentDispatcher(index, adapters, client, config)


def _id(index, aid: int, iid: int = 12) -> str:
    return index.find_by_characteristic(HOST, PORT, aid, iid).unique_id


def _command(device_id: str, command: str, params=None, pin=None):
    execution = {"command": "action.devices.commands." + command, "params": params or {}}
    if pin is not None:
        execution["challenge"] = {"pin": pin}
    return {"devices": [{"id": device_id}], "execution": [execution]}


class TestSync:
    def test_every_indexed_service_is_described(self, dispatcher, index) -> None:
        devices = dispatcher.sync()
        assert sorted(d["id"] for d in devices) == sorted(index.ids())
        bulb = next(d for d in devices if d["id"] == _id(index, 2))
        assert bulb["type"] == "action.devices.types.LIGHT"
        assert bulb["traits"] == ["action.devices.traits.OnOff", "action.devices.traits.Brightness"]
        assert bulb["willReportState"] is True
        assert bulb["customData"] == {
            "aid": 2,
            "iid": 10,
            "instanceUsername": USERNAME,
            "instanceIpAddress": HOST,
            "instancePort": PORT,
        }
        assert bulb["deviceInfo"]["manufacturer"] == "Acme"


class TestQuery:
    def test_unknown_ids_yield_empty_objects(self, dispatcher, index) -> None:
        known = _id(index, 3)
        result = asyncio.run(dispatcher.query([{"id": "missing"}, {"id": known}]))
        assert result["missing"] == {}
        assert result[known] == {"on": False, "online": True}

    def test_live_values_are_fetched_first(self, dispatcher, client, index) -> None:
        client.status_values[(2, 12)] = True
        client.status_values[(2, 13)] = 30
        result = asyncio.run(dispatcher.query([{"id": _id(index, 2)}]))

        assert result[_id(index, 2)]["on"] is True
        assert result[_id(index, 2)]["brightness"] == 30
        assert client.status_calls == [(USERNAME, [(2, 11), (2, 12), (2, 13)])]

    def test_status_failure_falls_back_to_cached_state(self, dispatcher, client, index) -> None:
        client.status_error = TransportFailure("timeout")
        result = asyncio.run(dispatcher.query([{"id": _id(index, 2)}]))
        assert result[_id(index, 2)] == {"on": False, "online": True, "brightness": 50}


class TestExecute:
    def test_success_writes_payload_and_returns_states(self, dispatcher, client, index) -> None:
        device_id = _id(index, 2)
        (result,) = asyncio.run(dispatcher.execute([_command(device_id, "OnOff", {"on": True})]))
        assert result == {"ids": [device_id], "status": "SUCCESS", "states": {"on": True}}
        assert client.controls == [(USERNAME, {"characteristics": [{"aid": 2, "iid": 12, "value": True}]})]

    def test_unknown_device_is_reported(self, dispatcher, client) -> None:
        (result,) = asyncio.run(dispatcher.execute([_command("missing", "OnOff", {"on": True})]))
        assert result["status"] == "ERROR"
        assert result["errorCode"] == "deviceNotFound"
        assert client.controls == []

    def test_untranslatable_command_fails_without_network_call(self, dispatcher, client, index) -> None:
        device_id = _id(index, 3)
        (result,) = asyncio.run(dispatcher.execute([_command(device_id, "BrightnessAbsolute", {"brightness": 5})]))
        assert result["status"] == "ERROR"
        assert result["errorCode"] == "functionNotSupported"
        assert client.controls == []

    def test_transport_failure_is_an_error_result(self, dispatcher, client, index) -> None:
        client.control_error = TransportFailure("refused")
        device_id = _id(index, 2)
        (result,) = asyncio.run(dispatcher.execute([_command(device_id, "OnOff", {"on": False})]))
        assert result == {"ids": [device_id], "status": "ERROR", "errorCode": "transientError"}

    def test_one_failure_does_not_stop_the_batch(self, dispatcher, client, index) -> None:
        command = _command(_id(index, 2), "OnOff", {"on": True})
        command["devices"] = [{"id": "missing"}, {"id": _id(index, 2)}, {"id": _id(index, 3)}]
        results = asyncio.run(dispatcher.execute([command]))
        assert [r["status"] for r in results] == ["ERROR", "SUCCESS", "SUCCESS"]
        assert len(client.controls) == 2


class TestTwoFactor:
    def test_unlock_without_pin_needs_challenge(self, dispatcher, client, index) -> None:
        device_id = _id(index, 4)
        (result,) = asyncio.run(dispatcher.execute([_command(device_id, "LockUnlock", {"lock": False})]))
        assert result == {
            "ids": [device_id],
            "status": "ERROR",
            "errorCode": "challengeNeeded",
            "challengeNeeded": {"type": "pinNeeded"},
        }
        assert client.controls == []

    def test_wrong_pin_needs_challenge(self, dispatcher, client, index) -> None:
        device_id = _id(index, 4)
        (result,) = asyncio.run(dispatcher.execute([_command(device_id, "LockUnlock", {"lock": False}, pin="0000")]))
        assert result["errorCode"] == "challengeNeeded"
        assert client.controls == []

    def test_matching_pin_proceeds(self, dispatcher, client, index) -> None:
        device_id = _id(index, 4)
        (result,) = asyncio.run(dispatcher.execute([_command(device_id, "LockUnlock", {"lock": False}, pin="1234")]))
        assert result["status"] == "SUCCESS"
        assert client.controls == [(USERNAME, {"characteristics": [{"aid": 4, "iid": 13, "value": 0}]})]

    def test_locking_needs_no_pin(self, dispatcher, client, index) -> None:
        (result,) = asyncio.run(dispatcher.execute([_command(_id(index, 4), "LockUnlock", {"lock": True})]))
        assert result["status"] == "SUCCESS"


class TestHandleRequest:
    def test_sync_envelope(self, dispatcher, config) -> None:
        body = {"requestId": "r-1", "inputs": [{"intent": "action.devices.SYNC"}]}
        response = asyncio.run(dispatcher.handle_request(body))
        assert response["requestId"] == "r-1"
        assert response["payload"]["agentUserId"] == config.agent_user_id
        assert len(response["payload"]["devices"]) == 4

    def test_query_envelope(self, dispatcher, index) -> None:
        body = {
            "requestId": "r-2",
            "inputs": [{"intent": "action.devices.QUERY", "payload": {"devices": [{"id": "missing"}]}}],
        }
        response = asyncio.run(dispatcher.handle_request(body))
        assert response == {"requestId": "r-2", "payload": {"devices": {"missing": {}}}}

    def test_execute_envelope(self, dispatcher, index) -> None:
        command = _command(_id(index, 3), "OnOff", {"on": True})
        body = {"requestId": "r-3", "inputs": [{"intent": "action.devices.EXECUTE", "payload": {"commands": [command]}}]}
        response = asyncio.run(dispatcher.handle_request(body))
        assert response["payload"]["commands"][0]["status"] == "SUCCESS"

    def test_unknown_intent_raises(self, dispatcher) -> None:
        with pytest.raises(UnsupportedIntent):
            asyncio.run(dispatcher.handle_request({"inputs": [{"intent": "action.devices.NOPE"}]}))

    def test_disconnect(self, dispatcher) -> None:
        assert asyncio.run(dispatcher.handle_request({"inputs": [{"intent": "action.devices.DISCONNECT"}]})) == {}


def test_television_characteristics_route_to_merged_service(dispatcher, index) -> None:
    tv = index.find_by_characteristic(HOST, PORT, 5, 21)
    assert tv is not None
    assert tv.characteristic_by_iid(21).type == CharacteristicTypes.MUTE


def test_malformed_params_fail_only_their_device(dispatcher, client, index) -> None:
    tv_id, switch_id = _id(index, 5), _id(index, 3)
    commands = [
        _command(tv_id, "volumeRelative", {"relativeSteps": "2"}),
        _command(switch_id, "OnOff", {"on": True}),
    ]
    results = asyncio.run(dispatcher.execute(commands))

    assert results[0] == {"ids": [tv_id], "status": "ERROR", "errorCode": "functionNotSupported"}
    assert results[1]["status"] == "SUCCESS"
    assert client.controls == [(USERNAME, {"characteristics": [{"aid": 3, "iid": 12, "value": True}]})]
