"""Television adapter.

A television arrives as up to three HAP services on one accessory
(Television, Speaker, InputSource). Discovery merges them into a single
service: the speaker's Mute/VolumeSelector characteristics are appended to
the television and the input sources land in ``TelevisionExtras``, split
into channels (configured name prefixed with ``"Station - "``) and inputs.

Channel and input navigation is anchored on ``extras.last_channel`` and
``extras.last_input`` so that relative commands stay deterministic even if
the device never reports ActiveIdentifier. Without an anchor, stepping
forward starts from the end of the list (landing on the first entry) and
stepping backward starts from the beginning (landing on the last one).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from errors import TranslationUnsupported
from hap_models import ExecuteTranslation, InputEntry, Service, TelevisionExtras
from hap_types import (
    REMOTE_KEY_ARROW_LEFT,
    REMOTE_KEY_ARROW_RIGHT,
    REMOTE_KEY_BACK,
    REMOTE_KEY_PLAY_PAUSE,
    REMOTE_KEY_SELECT,
    VOLUME_DECREMENT,
    VOLUME_INCREMENT,
    CharacteristicTypes,
)

from .base import COMMAND, TRAIT, device_descriptor, first_execution, payload, translation, write

STATION_PREFIX = "Station - "
TUNER_INPUT = "_tv"
# HAP has no absolute volume; report the midpoint of the advertised range.
VOLUME_MAX_LEVEL = 20
NOMINAL_VOLUME = 10

MEDIA_KEYS = {
    "mediaStop": REMOTE_KEY_BACK,
    "mediaResume": REMOTE_KEY_SELECT,
    "mediaPause": REMOTE_KEY_PLAY_PAUSE,
    "mediaNext": REMOTE_KEY_ARROW_RIGHT,
    "mediaPrevious": REMOTE_KEY_ARROW_LEFT,
}


def _index_of(entries: List[InputEntry], identifier: Any) -> Optional[int]:
    if identifier is None:
        return None
    for index, entry in enumerate(entries):
        if entry.identifier == identifier:
            return index
    return None


def _step(entries: List[InputEntry], anchor: Optional[int], change: int) -> InputEntry:
    count = len(entries)
    if anchor is None:
        anchor = count - 1 if change > 0 else 0
    return entries[(anchor + change) % count]


class Television:
    two_factor_required = False

    def __init__(self) -> None:
        self._commands: Dict[str, Callable[[Service, Dict[str, Any]], ExecuteTranslation]] = {
            "OnOff": self._on_off,
            "mute": self._mute,
            "volumeRelative": self._volume_relative,
            "selectChannel": self._select_channel,
            "relativeChannel": self._relative_channel,
            "returnChannel": self._return_channel,
            "SetInput": self._set_input,
            "NextInput": self._next_input,
            "PreviousInput": self._previous_input,
        }

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        return False

    def sync(self, service: Service) -> Dict[str, Any]:
        traits: List[str] = []
        attributes: Dict[str, Any] = {}
        extras = service.extras
        can_select = service.has(CharacteristicTypes.ACTIVE_IDENTIFIER)

        if service.has(CharacteristicTypes.ACTIVE):
            traits.append(TRAIT + "OnOff")
            attributes.update({"commandOnlyOnOff": False, "queryOnlyOnOff": False})

        if service.has(CharacteristicTypes.REMOTE_KEY):
            traits.append(TRAIT + "TransportControl")
            attributes["transportControlSupportedCommands"] = ["STOP", "RESUME", "PAUSE", "NEXT", "PREVIOUS"]

        if service.has(CharacteristicTypes.VOLUME_SELECTOR) or service.has(CharacteristicTypes.MUTE):
            traits.append(TRAIT + "Volume")
            attributes.update(
                {
                    "volumeCanMuteAndUnmute": service.has(CharacteristicTypes.MUTE),
                    "volumeMaxLevel": VOLUME_MAX_LEVEL,
                    "commandOnlyVolume": True,
                }
            )

        if can_select and extras is not None and extras.channels:
            traits.append(TRAIT + "Channel")
            attributes["commandOnlyChannels"] = True
            attributes["availableChannels"] = [
                {
                    "key": channel.name,
                    "names": [channel.configured_name] + extras.aliases_for(channel.configured_name),
                    "number": str(channel.identifier + 1),
                }
                for channel in extras.channels
            ]

        if can_select and extras is not None and extras.inputs:
            traits.append(TRAIT + "InputSelector")
            available = []
            if extras.channels:
                available.append(self._input_descriptor(TUNER_INPUT, TUNER_INPUT))
            available.extend(self._input_descriptor(i.name, i.configured_name) for i in extras.inputs)
            attributes.update(
                {
                    "commandOnlyInputSelector": False,
                    "orderedInputs": True,
                    "availableInputs": available,
                }
            )

        return device_descriptor(service, "action.devices.types.TV", traits, attributes)

    @staticmethod
    def _input_descriptor(key: str, name: str) -> Dict[str, Any]:
        return {"key": key, "names": [{"lang": "en", "name_synonym": [name]}]}

    def query(self, service: Service) -> Dict[str, Any]:
        response: Dict[str, Any] = {
            "on": bool(service.value(CharacteristicTypes.ACTIVE)),
            "online": True,
        }
        if service.has(CharacteristicTypes.VOLUME_SELECTOR):
            response["currentVolume"] = NOMINAL_VOLUME
        if service.has(CharacteristicTypes.MUTE):
            response["isMuted"] = bool(service.value(CharacteristicTypes.MUTE))
        if service.has(CharacteristicTypes.ACTIVE_IDENTIFIER) and service.extras and service.extras.inputs:
            current = service.extras.input(service.value(CharacteristicTypes.ACTIVE_IDENTIFIER))
            response["currentInput"] = current.name if current else TUNER_INPUT
        return response

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if not name or not name.startswith(COMMAND):
            return ExecuteTranslation(payload=None)
        short = name[len(COMMAND):]
        if short in MEDIA_KEYS:
            return ExecuteTranslation(payload=payload(write(service, CharacteristicTypes.REMOTE_KEY, MEDIA_KEYS[short])))
        handler = self._commands.get(short)
        if handler is None:
            return ExecuteTranslation(payload=None)
        return handler(service, params)

    # power and volume

    def _on_off(self, service: Service, params: Dict[str, Any]) -> ExecuteTranslation:
        on = bool(params.get("on"))
        return ExecuteTranslation(
            payload=payload(write(service, CharacteristicTypes.ACTIVE, 1 if on else 0)),
            states={"on": on},
        )

    def _mute(self, service: Service, params: Dict[str, Any]) -> ExecuteTranslation:
        mute = bool(params.get("mute"))
        return ExecuteTranslation(
            payload=payload(write(service, CharacteristicTypes.MUTE, mute)),
            states={"isMuted": mute},
        )

    def _volume_relative(self, service: Service, params: Dict[str, Any]) -> ExecuteTranslation:
        steps = params.get("relativeSteps") or 0
        value = VOLUME_DECREMENT if steps < 0 else VOLUME_INCREMENT
        return ExecuteTranslation(payload=payload(write(service, CharacteristicTypes.VOLUME_SELECTOR, value)))

    # channels

    def _extras(self, service: Service) -> TelevisionExtras:
        if service.extras is None:
            raise TranslationUnsupported(f"{service.service_name} has no input sources")
        return service.extras

    def _tune(self, service: Service, channel: InputEntry) -> ExecuteTranslation:
        translation = ExecuteTranslation(
            payload=payload(write(service, CharacteristicTypes.ACTIVE_IDENTIFIER, channel.identifier)),
        )
        self._extras(service).last_channel = channel.identifier
        return translation

    def _select_channel(self, service: Service, params: Dict[str, Any]) -> ExecuteTranslation:
        extras = self._extras(service)
        channel: Optional[InputEntry] = None
        if params.get("channelCode"):
            code = params["channelCode"]
            channel = next((c for c in extras.channels if c.name == code), None)
        elif params.get("channelNumber"):
            try:
                number = int(params["channelNumber"]) - 1
            except (TypeError, ValueError):
                return ExecuteTranslation(payload=None)
            channel = extras.channel(number)
        elif params.get("channelName"):
            wanted = str(params["channelName"]).casefold()
            for candidate in extras.channels:
                names = [candidate.configured_name] + extras.aliases_for(candidate.configured_name)
                if wanted in (n.casefold() for n in names):
                    channel = candidate
                    break
        if channel is None:
            return ExecuteTranslation(payload=None)
        return self._tune(service, channel)

    def _relative_channel(self, service: Service, params: Dict[str, Any]) -> ExecuteTranslation:
        extras = self._extras(service)
        if not extras.channels:
            return ExecuteTranslation(payload=None)
        try:
            change = int(params.get("relativeChannelChange") or 0)
        except (TypeError, ValueError):
            return ExecuteTranslation(payload=None)
        anchor = _index_of(extras.channels, extras.last_channel)
        return self._tune(service, _step(extras.channels, anchor, change))

    def _return_channel(self, service: Service, params: Dict[str, Any]) -> ExecuteTranslation:
        extras = self._extras(service)
        if not extras.channels:
            return ExecuteTranslation(payload=None)
        channel = extras.channel(extras.last_channel) or extras.channels[0]
        return self._tune(service, channel)

    # inputs

    def _switch_input(self, service: Service, entry: InputEntry) -> ExecuteTranslation:
        translation = ExecuteTranslation(
            payload=payload(write(service, CharacteristicTypes.ACTIVE_IDENTIFIER, entry.identifier)),
            states={"currentInput": entry.name},
        )
        self._extras(service).last_input = entry.identifier
        return translation

    def _set_input(self, service: Service, params: Dict[str, Any]) -> ExecuteTranslation:
        extras = self._extras(service)
        wanted = params.get("newInput")
        if wanted == TUNER_INPUT and extras.channels:
            translation = self._return_channel(service, params)
            translation.states = {"currentInput": TUNER_INPUT}
            return translation
        entry = next((i for i in extras.inputs if i.name == wanted), None)
        if entry is None:
            return ExecuteTranslation(payload=None)
        return self._switch_input(service, entry)

    def _current_input_index(self, service: Service, extras: TelevisionExtras) -> Optional[int]:
        current = service.value(CharacteristicTypes.ACTIVE_IDENTIFIER)
        if current is not None:
            if extras.channel(current) is not None:
                return None
            index = _index_of(extras.inputs, current)
            if index is not None:
                return index
        return _index_of(extras.inputs, extras.last_input)

    def _cycle_input(self, service: Service, change: int) -> ExecuteTranslation:
        extras = self._extras(service)
        if not extras.inputs:
            return ExecuteTranslation(payload=None)
        anchor = self._current_input_index(service, extras)
        return self._switch_input(service, _step(extras.inputs, anchor, change))

    def _next_input(self, service: Service, params: Dict[str, Any]) -> ExecuteTranslation:
        return self._cycle_input(service, 1)

    def _previous_input(self, service: Service, params: Dict[str, Any]) -> ExecuteTranslation:
        return self._cycle_input(service, -1)
