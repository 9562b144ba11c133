from __future__ import annotations

from typing import Any, Dict

from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor, first_execution, is_command, payload, translation, write


class WindowCovering:
    """Position based openings: doors, windows and window coverings."""

    two_factor_required = False

    def __init__(self, device_type: str) -> None:
        self.device_type = device_type

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        return False

    def sync(self, service: Service) -> Dict[str, Any]:
        return device_descriptor(
            service,
            self.device_type,
            [TRAIT + "OpenClose"],
            {
                "discreteOnlyOpenClose": False,
                "queryOnlyOpenClose": not service.has(CharacteristicTypes.TARGET_POSITION),
            },
        )

    def query(self, service: Service) -> Dict[str, Any]:
        return {
            "openPercent": service.value(CharacteristicTypes.CURRENT_POSITION, 0),
            "online": True,
        }

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if is_command(name, "OpenClose"):
            position = params.get("openPercent")
        elif is_command(name, "OpenCloseRelative"):
            current = service.value(CharacteristicTypes.CURRENT_POSITION, 0)
            position = current + (params.get("openRelativePercent") or 0)
        else:
            return ExecuteTranslation(payload=None)
        if position is None:
            return ExecuteTranslation(payload=None)
        position = max(0, min(100, position))
        return ExecuteTranslation(
            payload=payload(write(service, CharacteristicTypes.TARGET_POSITION, position)),
            states={"openPercent": position},
        )
