from __future__ import annotations

from typing import Any, Dict

from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor, first_execution, is_command, payload, translation, write

STAY_ARM = 0
AWAY_ARM = 1
NIGHT_ARM = 2
DISARMED = 3
ALARM_TRIGGERED = 4

ARM_LEVELS = {
    "stay": STAY_ARM,
    "away": AWAY_ARM,
    "night": NIGHT_ARM,
}
ARM_LEVEL_NAMES = {value: key for key, value in ARM_LEVELS.items()}
ARM_LEVEL_SYNONYMS = {
    "stay": ["stay", "home"],
    "away": ["away", "armed"],
    "night": ["night", "sleep"],
}


class SecuritySystem:
    two_factor_required = True

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        # Only disarming needs the pin.
        name, params = first_execution(command)
        return is_command(name, "ArmDisarm") and not params.get("arm")

    def sync(self, service: Service) -> Dict[str, Any]:
        levels = [
            {
                "level_name": level,
                "level_values": [{"level_synonym": ARM_LEVEL_SYNONYMS[level], "lang": "en"}],
            }
            for level in ARM_LEVELS
        ]
        return device_descriptor(
            service,
            "action.devices.types.SECURITYSYSTEM",
            [TRAIT + "ArmDisarm"],
            {"availableArmLevels": {"levels": levels, "ordered": True}},
        )

    def query(self, service: Service) -> Dict[str, Any]:
        current = service.value(CharacteristicTypes.SECURITY_SYSTEM_CURRENT_STATE, DISARMED)
        if current == ALARM_TRIGGERED:
            level = service.value(CharacteristicTypes.SECURITY_SYSTEM_TARGET_STATE, AWAY_ARM)
        else:
            level = current
        response: Dict[str, Any] = {
            "isArmed": current != DISARMED,
            "online": True,
        }
        if level in ARM_LEVEL_NAMES and current != DISARMED:
            response["currentArmLevel"] = ARM_LEVEL_NAMES[level]
        return response

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if not is_command(name, "ArmDisarm"):
            return ExecuteTranslation(payload=None)
        if not params.get("arm"):
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.SECURITY_SYSTEM_TARGET_STATE, DISARMED)),
                states={"isArmed": False},
            )
        level = params.get("armLevel") or "away"
        if level not in ARM_LEVELS:
            return ExecuteTranslation(payload=None)
        return ExecuteTranslation(
            payload=payload(write(service, CharacteristicTypes.SECURITY_SYSTEM_TARGET_STATE, ARM_LEVELS[level])),
            states={"isArmed": True, "currentArmLevel": level},
        )
