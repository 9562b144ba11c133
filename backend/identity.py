from __future__ import annotations

import hashlib
import logging
from typing import Dict, Iterator, List, Optional

from hap_models import Service

logger = logging.getLogger(__name__)

# Consecutive missed discovery passes tolerated before eviction (one day at
# the default fifteen minute interval).
LOST_LIMIT = 96


def unique_id(username: str, aid: int, iid: int, service_type: str) -> str:
    """Stable id for a service: sha256 of its instance, aid, iid and type."""
    material = "|".join([str(username), str(aid), str(iid), str(service_type)])
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class ServiceIndex:
    """The canonical unique-id -> Service map.

    Owned by the event loop: every mutation happens from a coroutine or
    callback scheduled on that loop, never from another thread.
    """

    def __init__(self, services: Optional[Dict[str, Service]] = None) -> None:
        self._services: Dict[str, Service] = dict(services or {})

    def __len__(self) -> int:
        return len(self._services)

    def __contains__(self, unique_id: object) -> bool:
        return unique_id in self._services

    def __iter__(self) -> Iterator[Service]:
        return iter(list(self._services.values()))

    def get(self, unique_id: str) -> Optional[Service]:
        return self._services.get(unique_id)

    def ids(self) -> List[str]:
        return list(self._services.keys())

    def as_dict(self) -> Dict[str, Service]:
        return dict(self._services)

    def restore(self, services: Dict[str, Service]) -> None:
        """Replace the contents with a persisted snapshot, counters included."""
        self._services = dict(services)

    def upsert(self, service: Service) -> bool:
        """Insert or overwrite a service. Returns True when it was not indexed before."""
        is_new = service.unique_id not in self._services
        if is_new:
            logger.info("Found service %s. %s", service.service_name, service.describe())
        service.is_unavailable = 0
        self._services[service.unique_id] = service
        return is_new

    def remove(self, unique_id: str) -> Optional[Service]:
        return self._services.pop(unique_id, None)

    def mark_all_unavailable(self) -> None:
        for service in self._services.values():
            service.is_unavailable += 1

    def age_out(self, limit: int = LOST_LIMIT) -> List[Service]:
        """Log stale services and evict those missing for more than ``limit`` passes."""
        removed: List[Service] = []
        for service in list(self._services.values()):
            if not service.is_unavailable:
                continue
            logger.warning(
                "Lost service %s last %d attempts. %s",
                service.service_name,
                service.is_unavailable,
                service.describe(),
            )
            if service.is_unavailable > limit:
                logger.error(
                    "Removed service %s due to exceeding lost count limit. %s",
                    service.service_name,
                    service.describe(),
                )
                del self._services[service.unique_id]
                removed.append(service)
        return removed

    def find_by_characteristic(self, host: str, port: int, aid: int, iid: int) -> Optional[Service]:
        """Locate the service at (host, port, aid) that owns characteristic ``iid``."""
        for service in self._services.values():
            if (
                service.instance.ip_address == host
                and service.instance.port == port
                and service.aid == aid
                and service.characteristic_by_iid(iid) is not None
            ):
                return service
        return None
