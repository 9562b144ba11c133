from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from bridge_config import SERVICE_STORE_FILE
from hap_models import Service
from identity import ServiceIndex

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class ServiceStore:
    """Versioned JSON snapshot of the service index."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path or SERVICE_STORE_FILE)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[str, Service]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text())
            version = data.get("version", 0)
            services = data.get("services", [])
            if version != STATE_VERSION or not isinstance(services, list):
                raise ValueError("Invalid service store format")
            restored = {entry["unique_id"]: Service.from_dict(entry) for entry in services}
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Ignoring unreadable service store %s: %s", self._path, exc)
            return {}
        for service in restored.values():
            logger.info("Restored service %s. %s", service.service_name, service.describe())
        return restored

    def save(self, index: ServiceIndex) -> None:
        payload = {
            "version": STATE_VERSION,
            "services": [service.to_dict() for service in index],
            "saved_at": datetime.utcnow().isoformat(),
        }
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, indent=2))
        tmp.replace(self._path)
