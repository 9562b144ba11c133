from __future__ import annotations

from typing import Dict

from aiohomekit.uuid import normalize_uuid

from errors import ParseFailure


def to_long_form(value: str) -> str:
    """Return the long form of a HAP type identifier (short forms are padded)."""
    try:
        return normalize_uuid(str(value))
    except Exception as exc:
        raise ParseFailure(f"Invalid HAP type identifier {value!r}") from exc


class ServiceTypes:
    ACCESSORY_INFORMATION = to_long_form("3E")
    DOOR = to_long_form("81")
    FAN = to_long_form("40")
    FAN_V2 = to_long_form("B7")
    GARAGE_DOOR_OPENER = to_long_form("41")
    HEATER_COOLER = to_long_form("BC")
    HUMIDITY_SENSOR = to_long_form("82")
    INPUT_SOURCE = to_long_form("D9")
    LIGHTBULB = to_long_form("43")
    LOCK_MECHANISM = to_long_form("45")
    OCCUPANCY_SENSOR = to_long_form("86")
    OUTLET = to_long_form("47")
    SECURITY_SYSTEM = to_long_form("7E")
    SPEAKER = to_long_form("113")
    SWITCH = to_long_form("49")
    TELEVISION = to_long_form("D8")
    TEMPERATURE_SENSOR = to_long_form("8A")
    THERMOSTAT = to_long_form("4A")
    WINDOW = to_long_form("8B")
    WINDOW_COVERING = to_long_form("8C")


class CharacteristicTypes:
    ACTIVE = to_long_form("B0")
    ACTIVE_IDENTIFIER = to_long_form("E7")
    BRIGHTNESS = to_long_form("08")
    CONFIGURED_NAME = to_long_form("E3")
    COOLING_THRESHOLD_TEMPERATURE = to_long_form("0D")
    CURRENT_DOOR_STATE = to_long_form("0E")
    CURRENT_HEATER_COOLER_STATE = to_long_form("B1")
    CURRENT_HEATING_COOLING_STATE = to_long_form("0F")
    CURRENT_POSITION = to_long_form("6D")
    CURRENT_RELATIVE_HUMIDITY = to_long_form("10")
    CURRENT_TEMPERATURE = to_long_form("11")
    FIRMWARE_REVISION = to_long_form("52")
    HARDWARE_REVISION = to_long_form("53")
    HEATING_THRESHOLD_TEMPERATURE = to_long_form("12")
    HUE = to_long_form("13")
    IDENTIFIER = to_long_form("E6")
    INPUT_SOURCE_TYPE = to_long_form("DB")
    LOCK_CURRENT_STATE = to_long_form("1D")
    LOCK_TARGET_STATE = to_long_form("1E")
    MANUFACTURER = to_long_form("20")
    MODEL = to_long_form("21")
    MUTE = to_long_form("11A")
    NAME = to_long_form("23")
    OCCUPANCY_DETECTED = to_long_form("71")
    ON = to_long_form("25")
    REMOTE_KEY = to_long_form("E1")
    ROTATION_SPEED = to_long_form("29")
    SATURATION = to_long_form("2F")
    SECURITY_SYSTEM_CURRENT_STATE = to_long_form("66")
    SECURITY_SYSTEM_TARGET_STATE = to_long_form("67")
    SERIAL_NUMBER = to_long_form("30")
    SOFTWARE_REVISION = to_long_form("54")
    TARGET_DOOR_STATE = to_long_form("32")
    TARGET_HEATER_COOLER_STATE = to_long_form("B2")
    TARGET_HEATING_COOLING_STATE = to_long_form("33")
    TARGET_POSITION = to_long_form("7C")
    TARGET_TEMPERATURE = to_long_form("35")
    VOLUME_SELECTOR = to_long_form("EA")


# Service type -> category name. A category is only bridged when an adapter
# is registered under the same name in device_types.
SERVICE_CATEGORIES: Dict[str, str] = {
    ServiceTypes.DOOR: "Door",
    ServiceTypes.FAN: "Fan",
    ServiceTypes.FAN_V2: "Fanv2",
    ServiceTypes.GARAGE_DOOR_OPENER: "GarageDoorOpener",
    ServiceTypes.HEATER_COOLER: "HeaterCooler",
    ServiceTypes.HUMIDITY_SENSOR: "HumiditySensor",
    ServiceTypes.INPUT_SOURCE: "InputSource",
    ServiceTypes.LIGHTBULB: "Lightbulb",
    ServiceTypes.LOCK_MECHANISM: "LockMechanism",
    ServiceTypes.OCCUPANCY_SENSOR: "OccupancySensor",
    ServiceTypes.OUTLET: "Outlet",
    ServiceTypes.SECURITY_SYSTEM: "SecuritySystem",
    ServiceTypes.SPEAKER: "Speaker",
    ServiceTypes.SWITCH: "Switch",
    ServiceTypes.TELEVISION: "Television",
    ServiceTypes.TEMPERATURE_SENSOR: "TemperatureSensor",
    ServiceTypes.THERMOSTAT: "Thermostat",
    ServiceTypes.WINDOW: "Window",
    ServiceTypes.WINDOW_COVERING: "WindowCovering",
}

# Accessory information characteristic -> AccessoryInformation field
ACCESSORY_INFORMATION_FIELDS: Dict[str, str] = {
    CharacteristicTypes.NAME: "name",
    CharacteristicTypes.MANUFACTURER: "manufacturer",
    CharacteristicTypes.MODEL: "model",
    CharacteristicTypes.SERIAL_NUMBER: "serial_number",
    CharacteristicTypes.FIRMWARE_REVISION: "firmware_revision",
    CharacteristicTypes.HARDWARE_REVISION: "hardware_revision",
    CharacteristicTypes.SOFTWARE_REVISION: "software_revision",
}

# Characteristics worth a live event subscription
TRACKED_CHARACTERISTICS = frozenset(
    {
        CharacteristicTypes.ACTIVE,
        CharacteristicTypes.ON,
        CharacteristicTypes.CURRENT_POSITION,
        CharacteristicTypes.TARGET_POSITION,
        CharacteristicTypes.CURRENT_DOOR_STATE,
        CharacteristicTypes.TARGET_DOOR_STATE,
        CharacteristicTypes.BRIGHTNESS,
        CharacteristicTypes.HEATING_THRESHOLD_TEMPERATURE,
        CharacteristicTypes.HUE,
        CharacteristicTypes.SATURATION,
        CharacteristicTypes.LOCK_CURRENT_STATE,
        CharacteristicTypes.LOCK_TARGET_STATE,
        CharacteristicTypes.TARGET_HEATING_COOLING_STATE,
        CharacteristicTypes.TARGET_TEMPERATURE,
        CharacteristicTypes.COOLING_THRESHOLD_TEMPERATURE,
        CharacteristicTypes.CURRENT_TEMPERATURE,
        CharacteristicTypes.CURRENT_RELATIVE_HUMIDITY,
        CharacteristicTypes.SECURITY_SYSTEM_TARGET_STATE,
        CharacteristicTypes.SECURITY_SYSTEM_CURRENT_STATE,
        CharacteristicTypes.ACTIVE_IDENTIFIER,
        CharacteristicTypes.MUTE,
        CharacteristicTypes.OCCUPANCY_DETECTED,
    }
)

# RemoteKey values
REMOTE_KEY_ARROW_LEFT = 6
REMOTE_KEY_ARROW_RIGHT = 7
REMOTE_KEY_SELECT = 8
REMOTE_KEY_BACK = 9
REMOTE_KEY_PLAY_PAUSE = 11

# VolumeSelector values
VOLUME_INCREMENT = 0
VOLUME_DECREMENT = 1
