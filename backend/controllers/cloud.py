from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import websockets

from errors import BridgeError

logger = logging.getLogger(__name__)

RequestHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


class CloudSocket:
    """Reconnecting websocket to the assistant relay.

    Outbound: ``send_json`` for request-sync and report-state messages.
    Inbound: messages carrying ``inputs`` are fulfillment requests; they are
    passed to ``on_request`` and answered on the same socket as an
    ``intent-response``.
    """

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        on_request: Optional[RequestHandler] = None,
        *,
        reconnect_delay: float = 10.0,
    ) -> None:
        self._url = url
        self._token = token
        self._on_request = on_request
        self._reconnect_delay = reconnect_delay
        self._websocket = None
        self._send_lock = asyncio.Lock()
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._websocket is not None

    async def run(self) -> None:
        while not self._closing:
            headers = {"Authorization": self._token} if self._token else None
            try:
                async with websockets.connect(
                    self._url,
                    additional_headers=headers,
                    ping_interval=30,
                    ping_timeout=10,
                    close_timeout=1.0,
                ) as websocket:
                    self._websocket = websocket
                    logger.info("Connected to %s", self._url)
                    async for raw in websocket:
                        await self._handle(raw)
            except (OSError, websockets.ConnectionClosed, websockets.InvalidHandshake) as exc:
                logger.warning("Cloud socket disconnected: %s; retrying in %ss", exc, self._reconnect_delay)
            finally:
                self._websocket = None
            if not self._closing:
                await asyncio.sleep(self._reconnect_delay)

    async def _handle(self, raw: Any) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring non-JSON message from cloud")
            return
        if not isinstance(message, dict) or "inputs" not in message or self._on_request is None:
            logger.debug("Ignoring cloud message: %s", message)
            return
        request_id = message.get("requestId")
        try:
            body = await self._on_request(message)
        except BridgeError as exc:
            logger.warning("Cannot fulfil request %s: %s", request_id, exc)
            body = {"requestId": request_id, "payload": {"errorCode": "protocolError"}}
        await self.send_json({"type": "intent-response", "requestId": request_id, "body": body})

    async def send_json(self, payload: Dict[str, Any]) -> None:
        websocket = self._websocket
        if websocket is None:
            logger.warning("Cloud socket not connected, dropping %s message", payload.get("type"))
            return
        async with self._send_lock:
            try:
                await websocket.send(json.dumps(payload))
            except websockets.ConnectionClosed as exc:
                logger.warning("Cloud socket closed while sending %s: %s", payload.get("type"), exc)

    async def close(self) -> None:
        self._closing = True
        websocket = self._websocket
        if websocket is not None:
            await websocket.close()
