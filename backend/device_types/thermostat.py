from __future__ import annotations

from typing import Any, Dict

from bridge_config import BridgeConfig
from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor, first_execution, is_command, payload, translation, write

# TargetHeatingCoolingState
MODES = {0: "off", 1: "heat", 2: "cool", 3: "auto"}
MODE_VALUES = {"off": 0, "heat": 1, "cool": 2, "auto": 3, "heatcool": 3}


class Thermostat:
    two_factor_required = False

    def __init__(self, config: BridgeConfig) -> None:
        self.config = config

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        return False

    def _has_range(self, service: Service) -> bool:
        return service.has(CharacteristicTypes.HEATING_THRESHOLD_TEMPERATURE) and service.has(
            CharacteristicTypes.COOLING_THRESHOLD_TEMPERATURE
        )

    def sync(self, service: Service) -> Dict[str, Any]:
        modes = ["off", "heat", "cool", "auto"]
        if self._has_range(service):
            modes.append("heatcool")
        attributes = {
            "availableThermostatModes": modes,
            "thermostatTemperatureUnit": "F" if self.config.force_fahrenheit else "C",
        }
        return device_descriptor(service, "action.devices.types.THERMOSTAT", [TRAIT + "TemperatureSetting"], attributes)

    def query(self, service: Service) -> Dict[str, Any]:
        mode = MODES.get(service.value(CharacteristicTypes.TARGET_HEATING_COOLING_STATE), "off")
        response: Dict[str, Any] = {
            "online": True,
            "thermostatMode": mode,
            "thermostatTemperatureSetpoint": service.value(CharacteristicTypes.TARGET_TEMPERATURE),
            "thermostatTemperatureAmbient": service.value(CharacteristicTypes.CURRENT_TEMPERATURE),
        }
        if service.has(CharacteristicTypes.CURRENT_RELATIVE_HUMIDITY):
            response["thermostatHumidityAmbient"] = service.value(CharacteristicTypes.CURRENT_RELATIVE_HUMIDITY)
        if mode == "auto" and self._has_range(service):
            response["thermostatTemperatureSetpointLow"] = service.value(
                CharacteristicTypes.HEATING_THRESHOLD_TEMPERATURE
            )
            response["thermostatTemperatureSetpointHigh"] = service.value(
                CharacteristicTypes.COOLING_THRESHOLD_TEMPERATURE
            )
        return response

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if is_command(name, "ThermostatTemperatureSetpoint"):
            setpoint = params.get("thermostatTemperatureSetpoint")
            if setpoint is None:
                return ExecuteTranslation(payload=None)
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.TARGET_TEMPERATURE, setpoint)),
                states={"thermostatTemperatureSetpoint": setpoint},
            )
        if is_command(name, "ThermostatSetMode"):
            mode = params.get("thermostatMode")
            if mode not in MODE_VALUES:
                return ExecuteTranslation(payload=None)
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.TARGET_HEATING_COOLING_STATE, MODE_VALUES[mode])),
                states={"thermostatMode": mode},
            )
        if is_command(name, "ThermostatTemperatureSetRange"):
            low = params.get("thermostatTemperatureSetpointLow")
            high = params.get("thermostatTemperatureSetpointHigh")
            if low is None or high is None:
                return ExecuteTranslation(payload=None)
            return ExecuteTranslation(
                payload=payload(
                    write(service, CharacteristicTypes.HEATING_THRESHOLD_TEMPERATURE, low),
                    write(service, CharacteristicTypes.COOLING_THRESHOLD_TEMPERATURE, high),
                ),
                states={
                    "thermostatTemperatureSetpointLow": low,
                    "thermostatTemperatureSetpointHigh": high,
                },
            )
        return ExecuteTranslation(payload=None)
