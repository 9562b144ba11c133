from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from bridge_config import (
    DISCOVERY_DELAY,
    DISCOVERY_INTERVAL,
    SYNC_DELAY,
    BridgeConfig,
    load_config,
)
from controllers import CloudSocket, HomebridgeClient
from device_types import build_adapters
from discovery import DiscoveryEngine, DiscoveryPass, InstanceBlacklist
from identity import ServiceIndex
from intents import IntentDispatcher
from service_store import ServiceStore
from state_reports import StateReportDebouncer
from subscriptions import EventSubscriptionRegistry

logger = logging.getLogger(__name__)


class DeviceManager:
    """Owns the service index and wires the bridge components around it."""

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        *,
        client: Any = None,
        store: Optional[ServiceStore] = None,
        cloud: Any = None,
    ) -> None:
        self.config = config or load_config()
        self.index = ServiceIndex()
        self.adapters = build_adapters(self.config)
        self.blacklist = InstanceBlacklist(self.config.instance_blacklist)
        self.client = client or HomebridgeClient(pin=self.config.pin)
        self.client.on_event = self._on_event
        self.store = store or ServiceStore()

        self.debouncer = StateReportDebouncer(self.index, self.adapters, self._send_json)
        self.discovery = DiscoveryEngine(self.client, self.index, self.adapters, self.config, self.blacklist)
        self.subscriptions = EventSubscriptionRegistry(self.client, self.index, self.blacklist)
        self.dispatcher = IntentDispatcher(self.index, self.adapters, self.client, self.config)

        if cloud is None and self.config.cloud_url:
            cloud = CloudSocket(self.config.cloud_url, self.config.token, on_request=self.dispatcher.handle_request)
        self.cloud = cloud

        self._tasks: Set[asyncio.Task] = set()
        self._sync_task: Optional[asyncio.Task] = None

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def startup(self) -> None:
        restored = {
            unique_id: service
            for unique_id, service in self.store.load().items()
            if service.service_type in self.adapters
        }
        self.index.restore(restored)
        if self.cloud is not None:
            self._spawn(self.cloud.run())
        else:
            logger.warning("No cloudUrl configured; state reports will not be delivered")
        self._spawn(self._discovery_loop())

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._persist()
        await self.client.close()
        if self.cloud is not None:
            await self.cloud.close()

    async def _discovery_loop(self) -> None:
        logger.debug("Waiting %s seconds before starting instance discovery...", DISCOVERY_DELAY)
        await asyncio.sleep(DISCOVERY_DELAY)
        while True:
            try:
                await self.discover()
            except Exception:
                logger.exception("Discovery pass failed")
            await asyncio.sleep(DISCOVERY_INTERVAL)

    async def discover(self) -> DiscoveryPass:
        result = await self.discovery.refresh()
        await self.subscriptions.sync_subscriptions()
        self._persist()
        if self.discovery.passes == 1 or result.changed:
            self._schedule_sync()
        return result

    def _schedule_sync(self, delay: float = SYNC_DELAY) -> None:
        if self._sync_task is not None and not self._sync_task.done():
            return

        async def _delayed() -> None:
            await asyncio.sleep(delay)
            await self.debouncer.request_sync()

        self._sync_task = self._spawn(_delayed())

    def _persist(self) -> None:
        try:
            self.store.save(self.index)
        except OSError as exc:
            logger.error("Failed to persist service index to %s: %s", self.store.path, exc)

    def _on_event(self, host: str, port: int, aid: int, iid: int, value: Any) -> None:
        self.debouncer.on_push_event(host, port, aid, iid, value)

    async def _send_json(self, payload: Dict[str, Any]) -> None:
        if self.cloud is None:
            logger.debug("Dropping %s message, no cloud connection", payload.get("type"))
            return
        await self.cloud.send_json(payload)

    async def handle_request(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self.dispatcher.handle_request(body)

    async def report_state(self) -> bool:
        return await self.debouncer.send_full_state_report()

    def services(self) -> List[Dict[str, object]]:
        return [service.to_dict() for service in self.index]

    def stats(self) -> Dict[str, int]:
        return {
            "services": len(self.index),
            "unavailable": sum(1 for s in self.index if s.is_unavailable),
            "blacklisted_instances": len(self.blacklist),
            "discovery_passes": self.discovery.passes,
        }
