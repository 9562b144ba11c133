"""SYNC / QUERY / EXECUTE fulfillment on top of the service index."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from bridge_config import BridgeConfig
from errors import BridgeError, UnsupportedIntent
from hap_models import Service
from identity import ServiceIndex

logger = logging.getLogger(__name__)

SYNC = "action.devices.SYNC"
QUERY = "action.devices.QUERY"
EXECUTE = "action.devices.EXECUTE"
DISCONNECT = "action.devices.DISCONNECT"


def _error(device_id: str, code: str, **extra: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {"ids": [device_id], "status": "ERROR", "errorCode": code}
    result.update(extra)
    return result


class IntentDispatcher:
    def __init__(
        self,
        index: ServiceIndex,
        adapters: Dict[str, Any],
        client: Any,
        config: BridgeConfig,
    ) -> None:
        self._index = index
        self._adapters = adapters
        self._client = client
        self._config = config

    def sync(self) -> List[Dict[str, Any]]:
        return [self._adapters[s.service_type].sync(s) for s in self._index]

    async def query(self, devices: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        response: Dict[str, Dict[str, Any]] = {}
        for device in devices:
            device_id = device.get("id")
            if not device_id:
                continue
            service = self._index.get(device_id)
            if service is None:
                response[device_id] = {}
                continue
            await self.refresh_status(service)
            response[device_id] = self._adapters[service.service_type].query(service)
        return response

    async def refresh_status(self, service: Service) -> None:
        """Best-effort fetch of the live values of every characteristic of ``service``."""
        ids = [(service.aid, c.iid) for c in service.characteristics]
        if not ids:
            return
        try:
            values = await self._client.status(service.instance, ids)
        except BridgeError as exc:
            logger.warning("Status refresh failed for %s: %s", service.service_name, exc)
            return
        for entry in values:
            if entry.get("aid", service.aid) != service.aid:
                continue
            characteristic = service.characteristic_by_iid(entry.get("iid"))
            if characteristic is not None and "value" in entry:
                characteristic.value = entry["value"]

    def _challenge_failed(self, service: Service, command: Dict[str, Any]) -> bool:
        pin = self._config.two_factor_auth_pin
        adapter = self._adapters[service.service_type]
        if not pin or not adapter.two_factor_required or not adapter.is_2fa_required(command):
            return False
        execution = command.get("execution") or []
        challenge = (execution[0] or {}).get("challenge") if execution else None
        supplied = (challenge or {}).get("pin")
        return supplied is None or str(supplied) != pin

    async def execute(self, commands: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        response: List[Dict[str, Any]] = []
        for command in commands:
            for device in command.get("devices") or []:
                device_id = device.get("id")
                response.append(await self._execute_one(device_id, command))
        return response

    async def _execute_one(self, device_id: str, command: Dict[str, Any]) -> Dict[str, Any]:
        service = self._index.get(device_id)
        if service is None:
            logger.warning("Execute for unknown device %s", device_id)
            return _error(device_id, "deviceNotFound")

        try:
            if self._challenge_failed(service, command):
                logger.info("Requesting Two Factor Authentication Pin")
                return _error(device_id, "challengeNeeded", challengeNeeded={"type": "pinNeeded"})
            translated = self._adapters[service.service_type].execute(service, command)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.error("Malformed command for %s: %r", service.service_name, exc)
            return _error(device_id, "functionNotSupported")

        if translated.payload is None:
            execution = command.get("execution") or [{}]
            logger.error(
                "Failed to control an accessory on executing %s.",
                (execution[0] or {}).get("command"),
            )
            return _error(device_id, "functionNotSupported")

        try:
            await self._client.control(service.instance, translated.payload)
        except BridgeError as exc:
            logger.error(
                "Failed to control an accessory. Make sure all your Homebridge instances are using the same PIN."
            )
            logger.error("%s", exc)
            return _error(device_id, "transientError")

        result: Dict[str, Any] = {"ids": [device_id], "status": "SUCCESS"}
        if translated.states is not None:
            result["states"] = translated.states
        return result

    async def handle_request(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Answer one fulfillment envelope ``{requestId, inputs: [{intent, payload}]}``."""
        request_id: Optional[str] = body.get("requestId")
        inputs = body.get("inputs") or []
        if not inputs:
            raise UnsupportedIntent("Request carries no inputs")
        intent = inputs[0].get("intent")
        payload = inputs[0].get("payload") or {}

        if intent == SYNC:
            logger.info("Received SYNC intent")
            return {
                "requestId": request_id,
                "payload": {"agentUserId": self._config.agent_user_id, "devices": self.sync()},
            }
        if intent == QUERY:
            devices = await self.query(payload.get("devices") or [])
            return {"requestId": request_id, "payload": {"devices": devices}}
        if intent == EXECUTE:
            commands = await self.execute(payload.get("commands") or [])
            return {"requestId": request_id, "payload": {"commands": commands}}
        if intent == DISCONNECT:
            logger.info("Received DISCONNECT intent")
            return {}
        raise UnsupportedIntent(f"Unsupported intent {intent!r}")
