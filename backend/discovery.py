"""Instance discovery and accessory parsing.

Each pass lists the reachable Homebridge instances, probes them, turns
their accessory trees into normalized ``Service`` records and reconciles
the ``ServiceIndex``. Television, Speaker and InputSource services that
share an accessory are folded into one television service.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from bridge_config import BridgeConfig
from device_types.television import STATION_PREFIX
from errors import BridgeError, ConnectivityFailure, ParseFailure
from hap_models import (
    AccessoryInformation,
    Characteristic,
    HapInstance,
    InputEntry,
    Service,
    TelevisionExtras,
)
from hap_types import (
    ACCESSORY_INFORMATION_FIELDS,
    SERVICE_CATEGORIES,
    CharacteristicTypes,
    ServiceTypes,
    to_long_form,
)
from identity import LOST_LIMIT, ServiceIndex, unique_id

logger = logging.getLogger(__name__)

NAME_CHARACTERISTICS = (CharacteristicTypes.NAME, CharacteristicTypes.CONFIGURED_NAME)


class InstanceBlacklist:
    """Instance identities that are never parsed.

    Matching is case-insensitive. Entries are only added, never removed;
    an instance comes back only after a config change and restart.
    """

    def __init__(self, identities: Iterable[str] = ()) -> None:
        self._identities: List[str] = []
        for identity in identities:
            self.add(identity)

    def add(self, identity: str) -> None:
        if identity and identity not in self:
            self._identities.append(identity)

    def __contains__(self, identity: object) -> bool:
        if not isinstance(identity, str):
            return False
        wanted = identity.casefold()
        return any(entry.casefold() == wanted for entry in self._identities)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._identities))

    def __len__(self) -> int:
        return len(self._identities)


@dataclass
class DiscoveryPass:
    """Summary of one refresh."""

    instances: int = 0
    found: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.found or self.removed)


def _characteristic(raw: Dict[str, Any]) -> Characteristic:
    return Characteristic(
        type=to_long_form(raw["type"]),
        iid=int(raw["iid"]),
        value=raw.get("value"),
        perms=list(raw.get("perms") or []),
        format=raw.get("format"),
        description=raw.get("description"),
        min_value=raw.get("minValue"),
        max_value=raw.get("maxValue"),
    )


def _accessory_information(characteristics: List[Characteristic]) -> AccessoryInformation:
    info = AccessoryInformation()
    for characteristic in characteristics:
        name = ACCESSORY_INFORMATION_FIELDS.get(characteristic.type)
        if name and characteristic.value not in (None, ""):
            setattr(info, name, str(characteristic.value))
    return info


class DiscoveryEngine:
    def __init__(
        self,
        client: Any,
        index: ServiceIndex,
        adapters: Dict[str, Any],
        config: BridgeConfig,
        blacklist: InstanceBlacklist,
    ) -> None:
        self._client = client
        self._index = index
        self._adapters = adapters
        self._config = config
        self._blacklist = blacklist
        self._lock = asyncio.Lock()
        self.passes = 0

    async def refresh(self) -> DiscoveryPass:
        """Run one discovery pass. Passes never overlap."""
        async with self._lock:
            return await self._refresh()

    async def _refresh(self) -> DiscoveryPass:
        try:
            instances = await self._client.list_instances()
        except BridgeError as exc:
            logger.error("Instance discovery failed: %s", exc)
            return DiscoveryPass()

        self._index.mark_all_unavailable()
        result = DiscoveryPass(instances=len(instances))

        for instance in instances:
            try:
                await self._client.check_connection(instance)
            except ConnectivityFailure as exc:
                logger.error(
                    "Cannot connect to instance %s at %s:%s: %s",
                    instance.username,
                    instance.ip_address,
                    instance.port,
                    exc,
                )
                self._blacklist.add(instance.username)

            if instance.username in self._blacklist:
                logger.debug("Instance [%s] on instance blacklist, ignoring.", instance.username)
                continue

            try:
                if not instance.accessories:
                    instance.accessories = await self._client.accessories(instance)
                services = self.parse(instance)
            except BridgeError:
                logger.exception("Failed to parse accessories from instance %s", instance.username)
                continue

            for service in services:
                if self._index.upsert(service):
                    result.found.append(service.unique_id)

        result.removed = [s.unique_id for s in self._index.age_out(LOST_LIMIT)]
        self.passes += 1
        logger.info("Finished instance discovery: %d services indexed", len(self._index))
        return result

    def parse(self, instance: HapInstance) -> List[Service]:
        """Turn an instance's accessory tree into services. Raises ParseFailure."""
        services: List[Service] = []
        try:
            for accessory in instance.accessories:
                services.extend(self._parse_accessory(instance, accessory))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ParseFailure(f"Malformed accessory tree from {instance.username}: {exc!r}") from exc
        return services

    def _parse_accessory(self, instance: HapInstance, accessory: Dict[str, Any]) -> List[Service]:
        aid = int(accessory["aid"])
        raw_services = []
        for raw in accessory.get("services") or []:
            characteristics = [_characteristic(c) for c in raw.get("characteristics") or []]
            raw_services.append((to_long_form(raw["type"]), int(raw["iid"]), characteristics))

        info = AccessoryInformation()
        for service_type, _, characteristics in raw_services:
            if service_type == ServiceTypes.ACCESSORY_INFORMATION:
                info = _accessory_information(characteristics)
                break

        parsed: List[Service] = []
        televisions: List[Service] = []
        speakers: List[Service] = []
        inputs: List[Service] = []

        for service_type, iid, characteristics in raw_services:
            if service_type == ServiceTypes.ACCESSORY_INFORMATION:
                continue
            category = SERVICE_CATEGORIES.get(service_type)
            if category is None or category not in self._adapters:
                continue

            service = Service(
                aid=aid,
                iid=iid,
                type=service_type,
                service_type=category,
                characteristics=characteristics,
                accessory_information=info,
                service_name=category,
                instance=instance.ref,
                unique_id=unique_id(instance.username, aid, iid, service_type),
            )
            service.service_name = self._resolve_name(service)
            if not self._admit(service):
                continue

            if service_type == ServiceTypes.TELEVISION:
                televisions.append(service)
            elif service_type == ServiceTypes.SPEAKER:
                speakers.append(service)
            elif service_type == ServiceTypes.INPUT_SOURCE:
                inputs.append(service)
            else:
                parsed.append(service)

        if televisions:
            parsed.append(self._merge_television(televisions[0], speakers, inputs))
        return parsed

    def _resolve_name(self, service: Service) -> str:
        name: Optional[str] = None
        for characteristic in service.characteristics:
            if characteristic.type in NAME_CHARACTERISTICS:
                if characteristic.value:
                    name = str(characteristic.value)
                break
        name = name or service.accessory_information.name or service.service_type
        for rule in self._config.device_name_map:
            if rule["replace"] == name:
                return rule["with"]
        return name

    def _admit(self, service: Service) -> bool:
        serial = service.accessory_information.serial_number
        for needle in self._config.accessory_filter:
            if needle in service.service_name:
                logger.debug("Skipping %s %s - matches accessoryFilter", service.service_name, serial)
                return False
        if serial is not None and serial in self._config.accessory_serial_filter:
            logger.debug("Skipping %s %s - matches accessorySerialFilter", service.service_name, serial)
            return False
        adapter = self._adapters[service.service_type]
        if (
            adapter.two_factor_required
            and not self._config.two_factor_auth_pin
            and not self._config.disable_pin_code_requirement
        ):
            logger.warning(
                "Not registering %s - pin code has not been set and is required for secure %s accessory types",
                service.service_name,
                service.service_type,
            )
            return False
        return True

    def _merge_television(
        self,
        television: Service,
        speakers: List[Service],
        inputs: List[Service],
    ) -> Service:
        if speakers:
            for char_type in (CharacteristicTypes.MUTE, CharacteristicTypes.VOLUME_SELECTOR):
                characteristic = speakers[0].characteristic(char_type)
                if characteristic is not None:
                    television.characteristics.append(characteristic)

        if inputs:
            extras = TelevisionExtras(channel_aliases=list(self._config.channel_aliases))
            for source in inputs:
                identifier = source.value(CharacteristicTypes.IDENTIFIER)
                if identifier is None:
                    logger.debug("Input source %s has no identifier, ignoring", source.service_name)
                    continue
                configured = str(
                    source.value(CharacteristicTypes.CONFIGURED_NAME)
                    or source.value(CharacteristicTypes.NAME)
                    or source.service_name
                )
                entry = InputEntry(
                    name=str(source.value(CharacteristicTypes.NAME) or configured),
                    identifier=int(identifier),
                    configured_name=configured,
                    input_source_type=source.value(CharacteristicTypes.INPUT_SOURCE_TYPE),
                )
                if configured.startswith(STATION_PREFIX):
                    entry.configured_name = configured[len(STATION_PREFIX):]
                    extras.channels.append(entry)
                else:
                    extras.inputs.append(entry)
            television.extras = extras
            if self._config.retain_channel_state:
                self._retain_navigation(television)
        return television

    def _retain_navigation(self, television: Service) -> None:
        previous = self._index.get(television.unique_id)
        if previous is None or previous.extras is None or television.extras is None:
            return
        extras = television.extras
        if extras.channel(previous.extras.last_channel) is not None:
            extras.last_channel = previous.extras.last_channel
        if extras.input(previous.extras.last_input) is not None:
            extras.last_input = previous.extras.last_input
