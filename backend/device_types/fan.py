from __future__ import annotations

from typing import Any, Dict

from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor, first_execution, is_command, payload, translation, write


class Fan:
    """Fans. v1 fans switch with On, v2 fans with Active."""

    two_factor_required = False

    def __init__(self, power_characteristic: str = CharacteristicTypes.ON) -> None:
        self.power_characteristic = power_characteristic

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        return False

    def _power_value(self, on: bool) -> Any:
        if self.power_characteristic == CharacteristicTypes.ACTIVE:
            return 1 if on else 0
        return on

    def sync(self, service: Service) -> Dict[str, Any]:
        traits = [TRAIT + "OnOff"]
        attributes: Dict[str, Any] = {}
        if service.has(CharacteristicTypes.ROTATION_SPEED):
            traits.append(TRAIT + "FanSpeed")
            attributes.update(
                {
                    "supportsFanSpeedPercent": True,
                    "reversible": False,
                    "commandOnlyFanSpeed": False,
                }
            )
        return device_descriptor(service, "action.devices.types.FAN", traits, attributes)

    def query(self, service: Service) -> Dict[str, Any]:
        response: Dict[str, Any] = {
            "on": bool(service.value(self.power_characteristic)),
            "online": True,
        }
        if service.has(CharacteristicTypes.ROTATION_SPEED):
            response["currentFanSpeedPercent"] = service.value(CharacteristicTypes.ROTATION_SPEED, 0)
        return response

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if is_command(name, "OnOff"):
            on = bool(params.get("on"))
            return ExecuteTranslation(
                payload=payload(write(service, self.power_characteristic, self._power_value(on))),
                states={"on": on},
            )
        if is_command(name, "SetFanSpeed"):
            speed = params.get("fanSpeedPercent")
            if speed is None:
                return ExecuteTranslation(payload=None)
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.ROTATION_SPEED, speed)),
                states={"currentFanSpeedPercent": speed},
            )
        return ExecuteTranslation(payload=None)
