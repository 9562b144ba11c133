from __future__ import annotations

from typing import Any, Dict

from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor, first_execution, is_command, payload, translation, write

DOOR_OPEN = 0
DOOR_CLOSED = 1


class GarageDoorOpener:
    two_factor_required = True

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        # Only opening needs the pin.
        name, params = first_execution(command)
        return is_command(name, "OpenClose") and (params.get("openPercent") or 0) > 0

    def sync(self, service: Service) -> Dict[str, Any]:
        return device_descriptor(
            service,
            "action.devices.types.GARAGE",
            [TRAIT + "OpenClose"],
            {"discreteOnlyOpenClose": True, "queryOnlyOpenClose": False},
        )

    def query(self, service: Service) -> Dict[str, Any]:
        current = service.value(CharacteristicTypes.CURRENT_DOOR_STATE, DOOR_CLOSED)
        return {
            "openPercent": 0 if current == DOOR_CLOSED else 100,
            "online": True,
        }

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if is_command(name, "OpenClose"):
            opening = (params.get("openPercent") or 0) > 0
            target = DOOR_OPEN if opening else DOOR_CLOSED
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.TARGET_DOOR_STATE, target)),
                states={"openPercent": 100 if opening else 0},
            )
        return ExecuteTranslation(payload=None)
