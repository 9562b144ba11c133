"""Helpers shared by the device-type adapters.

Every adapter exposes the same three operations:

- ``sync(service)`` returns the assistant device descriptor,
- ``query(service)`` returns the current state snapshot,
- ``execute(service, command)`` returns an ``ExecuteTranslation`` whose
  payload is ``None`` when the command cannot be expressed.

plus ``two_factor_required`` and ``is_2fa_required(command)``.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Dict, List, Optional, Tuple

from errors import TranslationUnsupported
from hap_models import ExecuteTranslation, Service

logger = logging.getLogger(__name__)

TRAIT = "action.devices.traits."
COMMAND = "action.devices.commands."


def device_descriptor(
    service: Service,
    device_type: str,
    traits: List[str],
    attributes: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    info = service.accessory_information
    default_names = [n for n in (service.service_name, info.name) if n]
    descriptor: Dict[str, Any] = {
        "id": service.unique_id,
        "type": device_type,
        "traits": traits,
        "name": {
            "defaultNames": default_names,
            "name": service.service_name,
            "nicknames": [],
        },
        "willReportState": True,
        "deviceInfo": {
            "manufacturer": info.manufacturer,
            "model": info.model,
            "hwVersion": info.hardware_revision,
            "swVersion": info.software_revision or info.firmware_revision,
        },
        "customData": {
            "aid": service.aid,
            "iid": service.iid,
            "instanceUsername": service.instance.username,
            "instanceIpAddress": service.instance.ip_address,
            "instancePort": service.instance.port,
        },
    }
    if attributes:
        descriptor["attributes"] = attributes
    return descriptor


def first_execution(command: Dict[str, Any]) -> Tuple[Optional[str], Dict[str, Any]]:
    """Return (command name, params) of the first execution entry."""
    execution = command.get("execution") or []
    if not execution:
        return None, {}
    entry = execution[0] or {}
    return entry.get("command"), entry.get("params") or {}


def write(service: Service, char_type: str, value: Any) -> Dict[str, Any]:
    """A single characteristic write entry; raises if the service lacks it."""
    characteristic = service.characteristic(char_type)
    if characteristic is None:
        raise TranslationUnsupported(f"{service.service_name} has no characteristic {char_type}")
    return {"aid": service.aid, "iid": characteristic.iid, "value": value}


def payload(*writes: Dict[str, Any]) -> Dict[str, Any]:
    return {"characteristics": list(writes)}


def is_command(name: Optional[str], short: str) -> bool:
    return name == COMMAND + short


def translation(func):
    """Turn TranslationUnsupported raised by an execute body into a null payload."""

    @functools.wraps(func)
    def wrapper(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        try:
            return func(self, service, command)
        except TranslationUnsupported as exc:
            logger.debug("Cannot translate command for %s: %s", service.service_name, exc)
            return ExecuteTranslation(payload=None)

    return wrapper
