from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx
from zeroconf import IPVersion, ServiceStateChange
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from bridge_config import DEFAULT_PIN, HTTP_TIMEOUT, MDNS_TIMEOUT
from errors import ConnectivityFailure, ParseFailure, SubscriptionFailure, TransportFailure
from hap_models import HapInstance

logger = logging.getLogger(__name__)

HAP_SERVICE_TYPE = "_hap._tcp.local."
HAP_JSON = "application/hap+json"
# Statuses a Homebridge instance answers a characteristics write with
WRITE_OK = (200, 204, 207)

EventCallback = Callable[[str, int, int, int, Any], Any]


def _address(instance: Any) -> Tuple[str, int]:
    return instance.ip_address, int(instance.port)


def _decode_txt(properties: Dict[bytes, Optional[bytes]]) -> Dict[str, str]:
    parsed: Dict[str, str] = {}
    for key, value in properties.items():
        try:
            parsed[key.decode("utf-8")] = value.decode("utf-8") if value else ""
        except UnicodeDecodeError:
            continue
    return parsed


async def read_frame(reader: asyncio.StreamReader) -> Tuple[str, Dict[str, str], bytes]:
    """Read one HTTP/1.1 response or EVENT/1.0 notification from ``reader``."""
    head = await reader.readuntil(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    start = lines[0]
    headers: Dict[str, str] = {}
    for line in lines[1:]:
        if ":" in line:
            key, value = line.split(":", 1)
            headers[key.strip().lower()] = value.strip()
    length = int(headers.get("content-length", "0") or 0)
    body = await reader.readexactly(length) if length else b""
    return start, headers, body


class EventChannel:
    """A long-lived connection to one instance that receives EVENT/1.0 pushes.

    HAP delivers events on the same TCP connection the subscription was
    made on, so this bypasses httpx and speaks HTTP over asyncio streams.
    """

    def __init__(self, instance: Any, pin: str, on_event: EventCallback, timeout: float = HTTP_TIMEOUT) -> None:
        self._host, self._port = _address(instance)
        self._pin = pin
        self._on_event = on_event
        self._timeout = timeout
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._responses: "asyncio.Queue[int]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return self._writer is not None and self._task is not None and not self._task.done()

    async def subscribe(self, pairs: Sequence[Tuple[int, int]]) -> None:
        body = json.dumps(
            {"characteristics": [{"aid": aid, "iid": iid, "ev": True} for aid, iid in pairs]}
        ).encode("utf-8")
        request = (
            f"PUT /characteristics HTTP/1.1\r\n"
            f"Host: {self._host}:{self._port}\r\n"
            f"Authorization: {self._pin}\r\n"
            f"Content-Type: {HAP_JSON}\r\n"
            f"Content-Length: {len(body)}\r\n\r\n"
        ).encode("latin-1") + body
        try:
            await self._open()
            self._writer.write(request)
            await self._writer.drain()
            status = await asyncio.wait_for(self._responses.get(), self._timeout)
        except (OSError, asyncio.TimeoutError) as exc:
            await self.close()
            raise SubscriptionFailure(f"Event registration with {self._host}:{self._port} failed: {exc!r}") from exc
        if status not in WRITE_OK:
            raise SubscriptionFailure(f"Event registration with {self._host}:{self._port} returned {status}")

    async def _open(self) -> None:
        if self.is_open:
            return
        self._reader, self._writer = await asyncio.wait_for(
            asyncio.open_connection(self._host, self._port), self._timeout
        )
        self._responses = asyncio.Queue()
        self._task = asyncio.get_running_loop().create_task(self._read_loop())

    async def _read_loop(self) -> None:
        try:
            while True:
                start, _, body = await read_frame(self._reader)
                if start.startswith("EVENT/"):
                    self._dispatch(body)
                    continue
                try:
                    status = int(start.split(" ")[1])
                except (IndexError, ValueError):
                    status = 0
                self._responses.put_nowait(status)
        except (asyncio.IncompleteReadError, asyncio.LimitOverrunError, ConnectionError, ValueError) as exc:
            logger.warning("Event connection to %s:%s closed: %r", self._host, self._port, exc)
        finally:
            self._close_transport()

    def _dispatch(self, body: bytes) -> None:
        try:
            events = json.loads(body).get("characteristics") or []
        except ValueError:
            logger.warning("Malformed event from %s:%s", self._host, self._port)
            return
        for event in events:
            try:
                self._on_event(self._host, self._port, int(event["aid"]), int(event["iid"]), event.get("value"))
            except (KeyError, TypeError, ValueError):
                logger.warning("Malformed event entry from %s:%s: %s", self._host, self._port, event)

    def _close_transport(self) -> None:
        if self._writer is not None:
            self._writer.close()
        self._reader = None
        self._writer = None

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._close_transport()


class HomebridgeClient:
    """Talks to Homebridge instances over the insecure HAP HTTP API.

    Calls against one instance are serialized; different instances run
    concurrently.
    """

    def __init__(
        self,
        *,
        pin: str = DEFAULT_PIN,
        timeout: float = HTTP_TIMEOUT,
        mdns_timeout: float = MDNS_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_event: Optional[EventCallback] = None,
    ) -> None:
        self._pin = pin
        self._timeout = timeout
        self._mdns_timeout = mdns_timeout
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._channels: Dict[str, EventChannel] = {}
        self.on_event = on_event

    def _lock(self, instance: Any) -> asyncio.Lock:
        host, port = _address(instance)
        return self._locks.setdefault(f"{host}:{port}", asyncio.Lock())

    def _url(self, instance: Any, path: str) -> str:
        host, port = _address(instance)
        return f"http://{host}:{port}{path}"

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": self._pin, "Content-Type": HAP_JSON}

    async def list_instances(self) -> List[HapInstance]:
        """Browse mDNS for HAP endpoints. Accessories are fetched separately."""
        try:
            return await self._browse()
        except OSError as exc:
            raise ConnectivityFailure(f"mDNS browse failed: {exc!r}") from exc

    async def _browse(self) -> List[HapInstance]:
        names: List[str] = []

        def on_service_state_change(zeroconf, service_type, name, state_change) -> None:
            if state_change is ServiceStateChange.Added and name not in names:
                names.append(name)

        aiozc = AsyncZeroconf()
        try:
            browser = AsyncServiceBrowser(aiozc.zeroconf, HAP_SERVICE_TYPE, handlers=[on_service_state_change])
            await asyncio.sleep(self._mdns_timeout)
            await browser.async_cancel()

            instances: Dict[str, HapInstance] = {}
            for name in names:
                info = AsyncServiceInfo(HAP_SERVICE_TYPE, name)
                if not await info.async_request(aiozc.zeroconf, 3000):
                    continue
                addresses = info.parsed_addresses(IPVersion.V4Only)
                properties = _decode_txt(info.properties)
                username = properties.get("id")
                if not addresses or not username or info.port is None:
                    continue
                instances.setdefault(
                    username.upper(),
                    HapInstance(
                        ip_address=addresses[0],
                        port=info.port,
                        username=username,
                        name=name.split(".")[0],
                    ),
                )
        finally:
            await aiozc.async_close()
        logger.debug("mDNS found %d HAP instances", len(instances))
        return list(instances.values())

    async def accessories(self, instance: Any) -> List[Dict[str, Any]]:
        async with self._lock(instance):
            try:
                response = await self._http.get(self._url(instance, "/accessories"), headers=self._headers)
            except httpx.HTTPError as exc:
                raise TransportFailure(f"GET /accessories failed: {exc!r}") from exc
        if response.status_code != 200:
            raise TransportFailure(f"GET /accessories returned {response.status_code}")
        try:
            return list(response.json()["accessories"])
        except (ValueError, KeyError, TypeError) as exc:
            raise ParseFailure(f"Unexpected /accessories body from {instance.username}") from exc

    async def check_connection(self, instance: Any) -> None:
        """Harmless write to a characteristic that cannot exist. Raises ConnectivityFailure."""
        probe = {"characteristics": [{"aid": -1, "iid": -1}]}
        async with self._lock(instance):
            try:
                response = await self._http.put(
                    self._url(instance, "/characteristics"), headers=self._headers, json=probe
                )
            except httpx.HTTPError as exc:
                raise ConnectivityFailure(repr(exc)) from exc
        if response.status_code not in WRITE_OK:
            raise ConnectivityFailure(f"probe returned {response.status_code}")

    async def control(self, instance: Any, payload: Dict[str, Any]) -> None:
        async with self._lock(instance):
            try:
                response = await self._http.put(
                    self._url(instance, "/characteristics"), headers=self._headers, json=payload
                )
            except httpx.HTTPError as exc:
                raise TransportFailure(f"PUT /characteristics failed: {exc!r}") from exc
        if response.status_code not in WRITE_OK:
            raise TransportFailure(f"PUT /characteristics returned {response.status_code}")
        if response.status_code == 207:
            try:
                results = response.json().get("characteristics") or []
            except ValueError as exc:
                raise TransportFailure("PUT /characteristics returned invalid JSON") from exc
            failed = [c for c in results if c.get("status")]
            if failed:
                raise TransportFailure(f"Characteristic write rejected: {failed}")

    async def status(self, instance: Any, ids: Sequence[Tuple[int, int]]) -> List[Dict[str, Any]]:
        query = ",".join(f"{aid}.{iid}" for aid, iid in ids)
        async with self._lock(instance):
            try:
                response = await self._http.get(
                    self._url(instance, "/characteristics"), headers=self._headers, params={"id": query}
                )
            except httpx.HTTPError as exc:
                raise TransportFailure(f"GET /characteristics failed: {exc!r}") from exc
        if response.status_code not in (200, 207):
            raise TransportFailure(f"GET /characteristics returned {response.status_code}")
        try:
            return list(response.json().get("characteristics") or [])
        except ValueError as exc:
            raise TransportFailure("GET /characteristics returned invalid JSON") from exc

    def is_listening(self, instance: Any) -> bool:
        host, port = _address(instance)
        channel = self._channels.get(f"{host}:{port}")
        return channel is not None and channel.is_open

    async def subscribe(self, instance: Any, pairs: Sequence[Tuple[int, int]]) -> None:
        host, port = _address(instance)
        key = f"{host}:{port}"
        async with self._lock(instance):
            channel = self._channels.get(key)
            if channel is None:
                channel = self._channels[key] = EventChannel(instance, self._pin, self._emit, self._timeout)
            await channel.subscribe(pairs)

    def _emit(self, host: str, port: int, aid: int, iid: int, value: Any) -> None:
        if self.on_event is not None:
            self.on_event(host, port, aid, iid, value)

    async def close(self) -> None:
        for channel in list(self._channels.values()):
            await channel.close()
        self._channels.clear()
        await self._http.aclose()
