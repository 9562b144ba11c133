from __future__ import annotations

import asyncio

import pytest

from device_types.television import Television
from hap_types import CharacteristicTypes

from hap_fixtures import accessory, char, info, instance, service, television

TRAIT = "action.devices.traits."
ACTIVE_IDENTIFIER_IID = 13


@pytest.fixture
def tv(engine, client):
    client.instances = [instance(accessories=[television()])]
    asyncio.run(engine.refresh())
    (merged,) = list(engine._index)
    return merged


@pytest.fixture
def adapter() -> Television:
    return Television()


def run(adapter, service, command, params=None):
    body = {"execution": [{"command": "action.devices.commands." + command, "params": params or {}}]}
    return adapter.execute(service, body)


def selected(translation):
    (write,) = translation.payload["characteristics"]
    assert write["iid"] == ACTIVE_IDENTIFIER_IID
    return write["value"]


class TestChannelCycling:
    def test_previous_without_anchor_selects_last_channel(self, adapter, tv) -> None:
        assert selected(run(adapter, tv, "relativeChannel", {"relativeChannelChange": -1})) == 2
        assert tv.extras.last_channel == 2

    def test_next_wraps_from_last_to_first(self, adapter, tv) -> None:
        run(adapter, tv, "relativeChannel", {"relativeChannelChange": -1})
        assert selected(run(adapter, tv, "relativeChannel", {"relativeChannelChange": 1})) == 0

    def test_next_without_anchor_selects_first_channel(self, adapter, tv) -> None:
        assert selected(run(adapter, tv, "relativeChannel", {"relativeChannelChange": 1})) == 0

    def test_select_by_number_sets_anchor(self, adapter, tv) -> None:
        assert selected(run(adapter, tv, "selectChannel", {"channelNumber": "2"})) == 1
        assert tv.extras.last_channel == 1
        assert selected(run(adapter, tv, "relativeChannel", {"relativeChannelChange": 1})) == 2

    def test_select_by_code(self, adapter, tv) -> None:
        assert selected(run(adapter, tv, "selectChannel", {"channelCode": "ch-c"})) == 2

    def test_select_by_name_or_alias(self, adapter, tv) -> None:
        tv.extras.channel_aliases = [{"channel": "B", "alias": ["Bee TV"]}]
        assert selected(run(adapter, tv, "selectChannel", {"channelName": "bee tv"})) == 1
        assert selected(run(adapter, tv, "selectChannel", {"channelName": "A"})) == 0

    def test_unknown_channel_is_unsupported(self, adapter, tv) -> None:
        assert run(adapter, tv, "selectChannel", {"channelNumber": "9"}).payload is None
        assert run(adapter, tv, "selectChannel", {"channelCode": "nope"}).payload is None
        assert tv.extras.last_channel is None

    def test_multi_step_change_wraps(self, adapter, tv) -> None:
        run(adapter, tv, "selectChannel", {"channelNumber": "1"})
        assert selected(run(adapter, tv, "relativeChannel", {"relativeChannelChange": 4})) == 1

    def test_return_channel(self, adapter, tv) -> None:
        assert selected(run(adapter, tv, "returnChannel")) == 0
        run(adapter, tv, "selectChannel", {"channelNumber": "3"})
        assert selected(run(adapter, tv, "returnChannel")) == 2


class TestInputs:
    def test_next_and_previous_input_cycle(self, adapter, tv) -> None:
        first = run(adapter, tv, "NextInput")
        assert selected(first) == 3
        assert first.states == {"currentInput": "hdmi1"}
        assert selected(run(adapter, tv, "NextInput")) == 4
        assert selected(run(adapter, tv, "NextInput")) == 3
        assert tv.extras.last_input == 3

    def test_previous_input_without_anchor_selects_last(self, adapter, tv) -> None:
        assert selected(run(adapter, tv, "PreviousInput")) == 4

    def test_reported_input_wins_over_anchor(self, adapter, tv) -> None:
        tv.extras.last_input = 3
        tv.characteristic_by_iid(ACTIVE_IDENTIFIER_IID).value = 4
        assert selected(run(adapter, tv, "PreviousInput")) == 3

    def test_tuned_to_channel_restarts_input_cycle(self, adapter, tv) -> None:
        tv.extras.last_input = 4
        tv.characteristic_by_iid(ACTIVE_IDENTIFIER_IID).value = 1
        assert selected(run(adapter, tv, "NextInput")) == 3

    def test_set_input_by_key(self, adapter, tv) -> None:
        translation = run(adapter, tv, "SetInput", {"newInput": "hdmi2"})
        assert selected(translation) == 4
        assert translation.states == {"currentInput": "hdmi2"}

    def test_set_input_tuner_returns_to_last_channel(self, adapter, tv) -> None:
        run(adapter, tv, "selectChannel", {"channelNumber": "2"})
        translation = run(adapter, tv, "SetInput", {"newInput": "_tv"})
        assert selected(translation) == 1
        assert translation.states == {"currentInput": "_tv"}

    def test_unknown_input_is_unsupported(self, adapter, tv) -> None:
        assert run(adapter, tv, "SetInput", {"newInput": "hdmi9"}).payload is None


class TestPowerVolumeAndMedia:
    def test_on_off_writes_active(self, adapter, tv) -> None:
        translation = run(adapter, tv, "OnOff", {"on": False})
        assert translation.payload == {"characteristics": [{"aid": 5, "iid": 12, "value": 0}]}
        assert translation.states == {"on": False}

    def test_mute_and_volume(self, adapter, tv) -> None:
        assert run(adapter, tv, "mute", {"mute": True}).payload == {
            "characteristics": [{"aid": 5, "iid": 21, "value": True}]
        }
        assert run(adapter, tv, "volumeRelative", {"relativeSteps": -2}).payload["characteristics"][0]["value"] == 1
        assert run(adapter, tv, "volumeRelative", {"relativeSteps": 3}).payload["characteristics"][0]["value"] == 0

    @pytest.mark.parametrize(
        "command,key",
        [("mediaStop", 9), ("mediaResume", 8), ("mediaPause", 11), ("mediaNext", 7), ("mediaPrevious", 6)],
    )
    def test_media_commands_press_remote_keys(self, adapter, tv, command, key) -> None:
        assert run(adapter, tv, command).payload == {"characteristics": [{"aid": 5, "iid": 14, "value": key}]}

    def test_unknown_command(self, adapter, tv) -> None:
        assert run(adapter, tv, "ThermostatSetMode", {"thermostatMode": "heat"}).payload is None


class TestSyncAndQuery:
    def test_traits_follow_characteristics(self, adapter, tv) -> None:
        descriptor = adapter.sync(tv)
        assert descriptor["type"] == "action.devices.types.TV"
        assert descriptor["traits"] == [
            TRAIT + "OnOff",
            TRAIT + "TransportControl",
            TRAIT + "Volume",
            TRAIT + "Channel",
            TRAIT + "InputSelector",
        ]
        attributes = descriptor["attributes"]
        assert attributes["volumeCanMuteAndUnmute"] is True
        assert [c["number"] for c in attributes["availableChannels"]] == ["1", "2", "3"]
        assert [i["key"] for i in attributes["availableInputs"]] == ["_tv", "hdmi1", "hdmi2"]

    def test_bare_television_advertises_only_power(self, adapter, engine, client) -> None:
        bare = accessory(8, info("Bare TV"), service("D8", 10, char("E3", 11, "Bare TV"), char("B0", 12, 0)))
        client.instances = [instance(accessories=[bare])]
        asyncio.run(engine.refresh())
        (service_,) = list(engine._index)
        descriptor = adapter.sync(service_)
        assert descriptor["traits"] == [TRAIT + "OnOff"]
        assert run(adapter, service_, "mute", {"mute": True}).payload is None
        assert run(adapter, service_, "NextInput").payload is None

    def test_query_reports_current_input(self, adapter, tv) -> None:
        assert adapter.query(tv) == {"on": True, "online": True, "currentVolume": 10, "isMuted": False, "currentInput": "_tv"}
        tv.characteristic(CharacteristicTypes.ACTIVE_IDENTIFIER).value = 4
        assert adapter.query(tv)["currentInput"] == "hdmi2"
