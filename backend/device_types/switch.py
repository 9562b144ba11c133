from __future__ import annotations

from typing import Any, Dict

from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor, first_execution, is_command, payload, translation, write


class Switch:
    """On/off devices. Used for both switches and outlets."""

    two_factor_required = False

    def __init__(self, device_type: str) -> None:
        self.device_type = device_type

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        return False

    def sync(self, service: Service) -> Dict[str, Any]:
        return device_descriptor(service, self.device_type, [TRAIT + "OnOff"])

    def query(self, service: Service) -> Dict[str, Any]:
        return {
            "on": bool(service.value(CharacteristicTypes.ON)),
            "online": True,
        }

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if is_command(name, "OnOff"):
            on = bool(params.get("on"))
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.ON, on)),
                states={"on": on},
            )
        return ExecuteTranslation(payload=None)
