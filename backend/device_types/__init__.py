"""Device-type adapters keyed by category name."""

from __future__ import annotations

from typing import Any, Dict

from bridge_config import BridgeConfig
from hap_types import CharacteristicTypes

from .fan import Fan
from .garage_door_opener import GarageDoorOpener
from .heater_cooler import HeaterCooler
from .lightbulb import Lightbulb
from .lock_mechanism import LockMechanism
from .security_system import SecuritySystem
from .sensors import HumiditySensor, OccupancySensor, TemperatureSensor
from .switch import Switch
from .television import Television
from .thermostat import Thermostat
from .window_covering import WindowCovering


def build_adapters(config: BridgeConfig) -> Dict[str, Any]:
    """Return the category -> adapter table for one bridge."""
    television = Television()
    return {
        "Door": WindowCovering("action.devices.types.DOOR"),
        "Fan": Fan(),
        "Fanv2": Fan(CharacteristicTypes.ACTIVE),
        "GarageDoorOpener": GarageDoorOpener(),
        "HeaterCooler": HeaterCooler(config),
        "HumiditySensor": HumiditySensor(),
        "Lightbulb": Lightbulb(),
        "LockMechanism": LockMechanism(),
        "OccupancySensor": OccupancySensor(),
        "Outlet": Switch("action.devices.types.OUTLET"),
        "SecuritySystem": SecuritySystem(),
        "Switch": Switch("action.devices.types.SWITCH"),
        # Speaker and InputSource only exist to be folded into a Television.
        "Television": television,
        "Speaker": television,
        "InputSource": television,
        "TemperatureSensor": TemperatureSensor(config),
        "Thermostat": Thermostat(config),
        "Window": WindowCovering("action.devices.types.WINDOW"),
        "WindowCovering": WindowCovering("action.devices.types.BLINDS"),
    }


__all__ = ["build_adapters"]
