from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from discovery import InstanceBlacklist
from errors import SubscriptionFailure
from hap_models import InstanceRef
from hap_types import TRACKED_CHARACTERISTICS
from identity import ServiceIndex

logger = logging.getLogger(__name__)


@dataclass
class EventPair:
    aid: int
    iid: int
    registered: bool = False


@dataclass
class SubscriptionRecord:
    instance: InstanceRef
    pairs: List[EventPair] = field(default_factory=list)

    def add(self, aid: int, iid: int) -> None:
        if not any(p.aid == aid and p.iid == iid for p in self.pairs):
            self.pairs.append(EventPair(aid=aid, iid=iid))

    def pending(self) -> List[EventPair]:
        return [p for p in self.pairs if not p.registered]


class EventSubscriptionRegistry:
    """Keeps push-event registrations in step with the service index."""

    def __init__(self, client: Any, index: ServiceIndex, blacklist: InstanceBlacklist) -> None:
        self._client = client
        self._index = index
        self._blacklist = blacklist
        self._records: Dict[str, SubscriptionRecord] = {}

    @property
    def records(self) -> Dict[str, SubscriptionRecord]:
        return dict(self._records)

    async def sync_subscriptions(self) -> None:
        for service in self._index:
            tracked = [
                c for c in service.characteristics
                if c.event_capable and c.type in TRACKED_CHARACTERISTICS
            ]
            if not tracked:
                continue
            username = service.instance.username
            record = self._records.get(username)
            if record is None:
                record = self._records[username] = SubscriptionRecord(instance=service.instance)
            for characteristic in tracked:
                record.add(service.aid, characteristic.iid)

        for username, record in list(self._records.items()):
            # a dropped event connection forgets every registration made on it
            if any(p.registered for p in record.pairs) and not self._client.is_listening(record.instance):
                logger.info("Event connection to instance %s lost, registering again", username)
                for pair in record.pairs:
                    pair.registered = False
            pending = record.pending()
            if not pending:
                continue
            try:
                await self._client.subscribe(record.instance, [(p.aid, p.iid) for p in pending])
            except SubscriptionFailure as exc:
                logger.error("Event registration failed for instance %s: %s", username, exc)
                self._blacklist.add(username)
                del self._records[username]
                continue
            for pair in record.pairs:
                pair.registered = True
            logger.debug("HAP event listeners registered for instance %s (%d new)", username, len(pending))
