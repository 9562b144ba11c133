from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

CONFIG_FILE = Path(os.getenv("HAPBRIDGE_CONFIG", "state/config.json"))
SERVICE_STORE_FILE = Path(os.getenv("HAPBRIDGE_SERVICE_STORE", "state/services.json"))

DISCOVERY_DELAY = float(os.getenv("HAPBRIDGE_DISCOVERY_DELAY", "15"))
DISCOVERY_INTERVAL = float(os.getenv("HAPBRIDGE_DISCOVERY_INTERVAL", "900"))
REPORT_DEBOUNCE = float(os.getenv("HAPBRIDGE_REPORT_DEBOUNCE", "1.0"))
SYNC_DELAY = float(os.getenv("HAPBRIDGE_SYNC_DELAY", "15"))
HTTP_TIMEOUT = float(os.getenv("HAPBRIDGE_HTTP_TIMEOUT", "10"))
MDNS_TIMEOUT = float(os.getenv("HAPBRIDGE_MDNS_TIMEOUT", "5"))

DEFAULT_PIN = "031-45-154"


@dataclass
class BridgeConfig:
    token: Optional[str] = None
    cloud_url: Optional[str] = None
    pin: str = DEFAULT_PIN
    debug: bool = False
    agent_user_id: str = "hap-bridge"
    two_factor_auth_pin: Optional[str] = None
    disable_pin_code_requirement: bool = False
    accessory_filter: List[str] = field(default_factory=list)
    accessory_serial_filter: List[str] = field(default_factory=list)
    instance_blacklist: List[str] = field(default_factory=list)
    device_name_map: List[Dict[str, str]] = field(default_factory=list)
    channel_aliases: List[Dict[str, Any]] = field(default_factory=list)
    force_fahrenheit: bool = False
    retain_channel_state: bool = False

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "BridgeConfig":
        pin = entry.get("twoFactorAuthPin")
        return cls(
            token=entry.get("token"),
            cloud_url=entry.get("cloudUrl"),
            pin=str(entry.get("pin") or DEFAULT_PIN),
            debug=bool(entry.get("debug", False)),
            agent_user_id=str(entry.get("agentUserId") or "hap-bridge"),
            # Pins are compared as strings; the config UI may store them as numbers.
            two_factor_auth_pin=str(pin) if pin not in (None, "") else None,
            disable_pin_code_requirement=bool(entry.get("disablePinCodeRequirement", False)),
            accessory_filter=[str(x) for x in entry.get("accessoryFilter") or []],
            accessory_serial_filter=[str(x) for x in entry.get("accessorySerialFilter") or []],
            instance_blacklist=[str(x) for x in entry.get("instanceBlacklist") or []],
            device_name_map=[
                {"replace": str(x["replace"]), "with": str(x["with"])}
                for x in entry.get("deviceNameMap") or []
                if isinstance(x, dict) and "replace" in x and "with" in x
            ],
            channel_aliases=[x for x in entry.get("channelAliases") or [] if isinstance(x, dict)],
            force_fahrenheit=bool(entry.get("forceFahrenheit", False)),
            retain_channel_state=bool(entry.get("retainChannelState", False)),
        )


def load_config(path: Optional[Path] = None) -> BridgeConfig:
    config_path = Path(path or CONFIG_FILE)
    if not config_path.exists():
        logger.info("No config at %s, using defaults", config_path)
        return BridgeConfig()
    try:
        data = json.loads(config_path.read_text())
        if not isinstance(data, dict):
            raise ValueError("Config root must be an object")
        return BridgeConfig.from_dict(data)
    except (OSError, ValueError) as exc:
        logger.error("Failed to load config %s: %s; using defaults", config_path, exc)
        return BridgeConfig()
