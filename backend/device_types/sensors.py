"""Read-only sensors. None of them accept commands."""

from __future__ import annotations

from typing import Any, Dict

from bridge_config import BridgeConfig
from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor


class _ReadOnly:
    two_factor_required = False

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        return False

    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        return ExecuteTranslation(payload=None)


class TemperatureSensor(_ReadOnly):
    def __init__(self, config: BridgeConfig) -> None:
        self.config = config

    def sync(self, service: Service) -> Dict[str, Any]:
        traits = [TRAIT + "TemperatureControl"]
        attributes: Dict[str, Any] = {
            "queryOnlyTemperatureControl": True,
            "temperatureUnitForUX": "F" if self.config.force_fahrenheit else "C",
        }
        if service.has(CharacteristicTypes.CURRENT_RELATIVE_HUMIDITY):
            traits.append(TRAIT + "HumiditySetting")
            attributes["queryOnlyHumiditySetting"] = True
        return device_descriptor(service, "action.devices.types.SENSOR", traits, attributes)

    def query(self, service: Service) -> Dict[str, Any]:
        temperature = service.value(CharacteristicTypes.CURRENT_TEMPERATURE)
        response: Dict[str, Any] = {
            "online": True,
            "temperatureSetpointCelsius": temperature,
            "temperatureAmbientCelsius": temperature,
        }
        if service.has(CharacteristicTypes.CURRENT_RELATIVE_HUMIDITY):
            response["humidityAmbientPercent"] = service.value(CharacteristicTypes.CURRENT_RELATIVE_HUMIDITY)
        return response


class HumiditySensor(_ReadOnly):
    def sync(self, service: Service) -> Dict[str, Any]:
        return device_descriptor(
            service,
            "action.devices.types.SENSOR",
            [TRAIT + "HumiditySetting"],
            {"queryOnlyHumiditySetting": True},
        )

    def query(self, service: Service) -> Dict[str, Any]:
        return {
            "online": True,
            "humidityAmbientPercent": service.value(CharacteristicTypes.CURRENT_RELATIVE_HUMIDITY),
        }


class OccupancySensor(_ReadOnly):
    def sync(self, service: Service) -> Dict[str, Any]:
        return device_descriptor(
            service,
            "action.devices.types.SENSOR",
            [TRAIT + "OccupancySensing"],
            {"occupancySensorConfiguration": [{"occupancySensorType": "PIR"}]},
        )

    def query(self, service: Service) -> Dict[str, Any]:
        occupied = bool(service.value(CharacteristicTypes.OCCUPANCY_DETECTED))
        return {
            "online": True,
            "occupancy": "OCCUPIED" if occupied else "UNOCCUPIED",
        }
