from __future__ import annotations

from typing import Any, Dict

from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor, first_execution, is_command, payload, translation, write

LOCK_UNSECURED = 0
LOCK_SECURED = 1
LOCK_JAMMED = 2


class LockMechanism:
    two_factor_required = True

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        # Only unlocking needs the pin.
        name, params = first_execution(command)
        return is_command(name, "LockUnlock") and not params.get("lock")

    def sync(self, service: Service) -> Dict[str, Any]:
        return device_descriptor(service, "action.devices.types.LOCK", [TRAIT + "LockUnlock"])

    def query(self, service: Service) -> Dict[str, Any]:
        current = service.value(CharacteristicTypes.LOCK_CURRENT_STATE)
        return {
            "isLocked": current == LOCK_SECURED,
            "isJammed": current == LOCK_JAMMED,
            "online": True,
        }

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if is_command(name, "LockUnlock"):
            lock = bool(params.get("lock"))
            target = LOCK_SECURED if lock else LOCK_UNSECURED
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.LOCK_TARGET_STATE, target)),
                states={"isLocked": lock},
            )
        return ExecuteTranslation(payload=None)
