from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

from bridge_config import REPORT_DEBOUNCE
from identity import ServiceIndex

logger = logging.getLogger(__name__)

SendJson = Callable[[Dict[str, Any]], Awaitable[None]]


class StateReportDebouncer:
    """Coalesces push events into one report-state message per quiet window.

    There is a single shared timer: every enqueue pushes the flush back by
    ``delay`` seconds, so a continuously changing device postpones the
    report until things settle. Everything here runs on the event loop
    thread; ``drain`` swaps the pending set out in one step.
    """

    def __init__(
        self,
        index: ServiceIndex,
        adapters: Dict[str, Any],
        send_json: SendJson,
        delay: float = REPORT_DEBOUNCE,
    ) -> None:
        self._index = index
        self._adapters = adapters
        self._send_json = send_json
        self._delay = delay
        # dict keys keep insertion order and make re-queueing a no-op
        self._pending: Dict[str, None] = {}
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def on_push_event(self, host: str, port: int, aid: int, iid: int, value: Any) -> bool:
        service = self._index.find_by_characteristic(host, port, aid, iid)
        if service is None:
            logger.debug("Event for unknown characteristic %s:%s %s.%s", host, port, aid, iid)
            return False
        characteristic = service.characteristic_by_iid(iid)
        characteristic.value = value
        self.enqueue(service.unique_id)
        return True

    def enqueue(self, unique_id: str) -> None:
        self._pending.setdefault(unique_id, None)
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(self._delay, self._on_quiet)

    def drain(self) -> List[str]:
        pending, self._pending = list(self._pending), {}
        return pending

    def _on_quiet(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._report(self.drain()))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def flush(self) -> None:
        """Send whatever is pending now instead of waiting for the timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        await self._report(self.drain())
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    def build_states(self, unique_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        states: Dict[str, Dict[str, Any]] = {}
        for unique_id in unique_ids:
            service = self._index.get(unique_id)
            # evicted between the event and the flush
            if service is None:
                continue
            states[unique_id] = self._adapters[service.service_type].query(service)
        return states

    async def _report(self, unique_ids: List[str]) -> None:
        if not unique_ids:
            return
        states = self.build_states(unique_ids)
        if not states:
            return
        try:
            await self.send_state_report(states)
        except Exception:
            logger.exception("Failed to send state report for %d services", len(states))

    async def send_state_report(self, states: Dict[str, Dict[str, Any]], request_id: Optional[str] = None) -> None:
        message: Dict[str, Any] = {"type": "report-state", "body": states}
        if request_id:
            message["requestId"] = request_id
        logger.debug("Sending State Report: %s", message)
        await self._send_json(message)

    async def send_full_state_report(self, request_id: Optional[str] = None) -> bool:
        if not len(self._index):
            return False
        await self.send_state_report(self.build_states(self._index.ids()), request_id)
        return True

    async def request_sync(self) -> None:
        logger.info("Sending Sync Request")
        await self._send_json({"type": "request-sync"})
