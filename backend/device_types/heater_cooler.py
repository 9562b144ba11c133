from __future__ import annotations

from typing import Any, Dict, List

from bridge_config import BridgeConfig
from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor, first_execution, is_command, payload, translation, write

# TargetHeaterCoolerState
AUTO = 0
HEAT = 1
COOL = 2

MODES = {AUTO: "heatcool", HEAT: "heat", COOL: "cool"}
MODE_VALUES = {"heatcool": AUTO, "auto": AUTO, "heat": HEAT, "cool": COOL}


class HeaterCooler:
    two_factor_required = False

    def __init__(self, config: BridgeConfig) -> None:
        self.config = config

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        return False

    def _modes(self, service: Service) -> List[str]:
        modes = ["off"]
        heat = service.has(CharacteristicTypes.HEATING_THRESHOLD_TEMPERATURE)
        cool = service.has(CharacteristicTypes.COOLING_THRESHOLD_TEMPERATURE)
        if heat:
            modes.append("heat")
        if cool:
            modes.append("cool")
        if heat and cool:
            modes.append("heatcool")
        return modes

    def sync(self, service: Service) -> Dict[str, Any]:
        attributes = {
            "availableThermostatModes": self._modes(service),
            "thermostatTemperatureUnit": "F" if self.config.force_fahrenheit else "C",
        }
        return device_descriptor(
            service,
            "action.devices.types.THERMOSTAT",
            [TRAIT + "OnOff", TRAIT + "TemperatureSetting"],
            attributes,
        )

    def query(self, service: Service) -> Dict[str, Any]:
        active = bool(service.value(CharacteristicTypes.ACTIVE))
        target = service.value(CharacteristicTypes.TARGET_HEATER_COOLER_STATE, AUTO)
        mode = MODES.get(target, "heatcool") if active else "off"
        heating = service.value(CharacteristicTypes.HEATING_THRESHOLD_TEMPERATURE)
        cooling = service.value(CharacteristicTypes.COOLING_THRESHOLD_TEMPERATURE)
        response: Dict[str, Any] = {
            "on": active,
            "online": True,
            "thermostatMode": mode,
            "thermostatTemperatureAmbient": service.value(CharacteristicTypes.CURRENT_TEMPERATURE),
        }
        if target == HEAT and heating is not None:
            response["thermostatTemperatureSetpoint"] = heating
        elif target == COOL and cooling is not None:
            response["thermostatTemperatureSetpoint"] = cooling
        elif heating is not None and cooling is not None:
            response["thermostatTemperatureSetpointLow"] = heating
            response["thermostatTemperatureSetpointHigh"] = cooling
        return response

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if is_command(name, "OnOff"):
            on = bool(params.get("on"))
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.ACTIVE, 1 if on else 0)),
                states={"on": on},
            )
        if is_command(name, "ThermostatSetMode"):
            mode = params.get("thermostatMode")
            if mode == "off":
                return ExecuteTranslation(
                    payload=payload(write(service, CharacteristicTypes.ACTIVE, 0)),
                    states={"thermostatMode": "off", "on": False},
                )
            if mode not in MODE_VALUES:
                return ExecuteTranslation(payload=None)
            return ExecuteTranslation(
                payload=payload(
                    write(service, CharacteristicTypes.ACTIVE, 1),
                    write(service, CharacteristicTypes.TARGET_HEATER_COOLER_STATE, MODE_VALUES[mode]),
                ),
                states={"thermostatMode": MODES[MODE_VALUES[mode]], "on": True},
            )
        if is_command(name, "ThermostatTemperatureSetpoint"):
            setpoint = params.get("thermostatTemperatureSetpoint")
            target = service.value(CharacteristicTypes.TARGET_HEATER_COOLER_STATE, AUTO)
            if setpoint is None or target == AUTO:
                return ExecuteTranslation(payload=None)
            threshold = (
                CharacteristicTypes.HEATING_THRESHOLD_TEMPERATURE
                if target == HEAT
                else CharacteristicTypes.COOLING_THRESHOLD_TEMPERATURE
            )
            return ExecuteTranslation(
                payload=payload(write(service, threshold, setpoint)),
                states={"thermostatTemperatureSetpoint": setpoint},
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
            )
        return ExecuteTranslation(payload=None)
