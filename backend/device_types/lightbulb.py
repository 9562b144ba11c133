from __future__ import annotations

from typing import Any, Dict

from hap_models import ExecuteTranslation, Service
from hap_types import CharacteristicTypes

from .base import TRAIT, device_descriptor, first_execution, is_command, payload, translation, write


class Lightbulb:
    two_factor_required = False

    def is_2fa_required(self, command: Dict[str, Any]) -> bool:
        return False

    def _has_color(self, service: Service) -> bool:
        return service.has(CharacteristicTypes.HUE) and service.has(CharacteristicTypes.SATURATION)

    def sync(self, service: Service) -> Dict[str, Any]:
        traits = [TRAIT + "OnOff"]
        attributes: Dict[str, Any] = {}
        if service.has(CharacteristicTypes.BRIGHTNESS):
            traits.append(TRAIT + "Brightness")
        if self._has_color(service):
            traits.append(TRAIT + "ColorSetting")
            attributes["colorModel"] = "hsv"
        return device_descriptor(service, "action.devices.types.LIGHT", traits, attributes)

    def query(self, service: Service) -> Dict[str, Any]:
        response: Dict[str, Any] = {
            "on": bool(service.value(CharacteristicTypes.ON)),
            "online": True,
        }
        if service.has(CharacteristicTypes.BRIGHTNESS):
            response["brightness"] = service.value(CharacteristicTypes.BRIGHTNESS, 0)
        if self._has_color(service):
            response["color"] = {
                "spectrumHsv": {
                    "hue": service.value(CharacteristicTypes.HUE, 0),
                    "saturation": service.value(CharacteristicTypes.SATURATION, 0) / 100,
                    "value": 1,
                },
            }
        return response

    @translation
    def execute(self, service: Service, command: Dict[str, Any]) -> ExecuteTranslation:
        name, params = first_execution(command)
        if is_command(name, "OnOff"):
            on = bool(params.get("on"))
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.ON, on)),
                states={"on": on},
            )
        if is_command(name, "BrightnessAbsolute"):
            brightness = params.get("brightness")
            if brightness is None:
                return ExecuteTranslation(payload=None)
            return ExecuteTranslation(
                payload=payload(write(service, CharacteristicTypes.BRIGHTNESS, brightness)),
                states={"brightness": brightness},
            )
        if is_command(name, "ColorAbsolute"):
            hsv = (params.get("color") or {}).get("spectrumHSV")
            if not hsv:
                return ExecuteTranslation(payload=None)
            hue = hsv.get("hue", 0)
            saturation = hsv.get("saturation", 0) * 100
            return ExecuteTranslation(
                payload=payload(
                    write(service, CharacteristicTypes.HUE, hue),
                    write(service, CharacteristicTypes.SATURATION, saturation),
                ),
            )
        return ExecuteTranslation(payload=None)
