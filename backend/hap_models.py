from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Characteristic:
    type: str
    iid: int
    value: Any = None
    perms: List[str] = field(default_factory=list)
    format: Optional[str] = None
    description: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    @property
    def readable(self) -> bool:
        return "pr" in self.perms

    @property
    def writable(self) -> bool:
        return "pw" in self.perms

    @property
    def event_capable(self) -> bool:
        return "ev" in self.perms

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "Characteristic":
        return cls(
            type=entry["type"],
            iid=int(entry["iid"]),
            value=entry.get("value"),
            perms=list(entry.get("perms") or []),
            format=entry.get("format"),
            description=entry.get("description"),
            min_value=entry.get("min_value"),
            max_value=entry.get("max_value"),
        )


@dataclass
class AccessoryInformation:
    name: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    firmware_revision: Optional[str] = None
    hardware_revision: Optional[str] = None
    software_revision: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "AccessoryInformation":
        return cls(**{key: entry.get(key) for key in cls.__dataclass_fields__})


@dataclass(frozen=True)
class InstanceRef:
    """Routing information for the instance that owns a service."""

    ip_address: str
    port: int
    username: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "InstanceRef":
        return cls(
            ip_address=entry["ip_address"],
            port=int(entry["port"]),
            username=entry["username"],
        )


@dataclass
class InputEntry:
    """One input source of a television, either a channel or an input."""

    name: str
    identifier: int
    configured_name: str
    input_source_type: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "InputEntry":
        return cls(
            name=entry["name"],
            identifier=int(entry["identifier"]),
            configured_name=entry.get("configured_name") or entry["name"],
            input_source_type=entry.get("input_source_type"),
        )


@dataclass
class TelevisionExtras:
    """Auxiliary state owned by a merged television service.

    ``channels`` and ``inputs`` are fixed at discovery time. ``last_channel``
    and ``last_input`` are navigation anchors that only change through
    commands; they are never derived from characteristic values.
    """

    channels: List[InputEntry] = field(default_factory=list)
    inputs: List[InputEntry] = field(default_factory=list)
    channel_aliases: List[Dict[str, Any]] = field(default_factory=list)
    last_channel: Optional[int] = None
    last_input: Optional[int] = None

    def channel(self, identifier: Any) -> Optional[InputEntry]:
        return next((c for c in self.channels if c.identifier == identifier), None)

    def input(self, identifier: Any) -> Optional[InputEntry]:
        return next((i for i in self.inputs if i.identifier == identifier), None)

    def aliases_for(self, channel_name: str) -> List[str]:
        for entry in self.channel_aliases:
            if entry.get("channel") == channel_name:
                return [str(alias) for alias in entry.get("alias") or []]
        return []

    def to_dict(self) -> Dict[str, object]:
        return {
            "channels": [c.to_dict() for c in self.channels],
            "inputs": [i.to_dict() for i in self.inputs],
            "channel_aliases": list(self.channel_aliases),
            "last_channel": self.last_channel,
            "last_input": self.last_input,
        }

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "TelevisionExtras":
        return cls(
            channels=[InputEntry.from_dict(c) for c in entry.get("channels") or []],
            inputs=[InputEntry.from_dict(i) for i in entry.get("inputs") or []],
            channel_aliases=list(entry.get("channel_aliases") or []),
            last_channel=entry.get("last_channel"),
            last_input=entry.get("last_input"),
        )


@dataclass
class Service:
    aid: int
    iid: int
    type: str
    service_type: str
    characteristics: List[Characteristic]
    accessory_information: AccessoryInformation
    service_name: str
    instance: InstanceRef
    unique_id: str
    is_unavailable: int = 0
    extras: Optional[TelevisionExtras] = None

    def characteristic(self, char_type: str) -> Optional[Characteristic]:
        return next((c for c in self.characteristics if c.type == char_type), None)

    def characteristic_by_iid(self, iid: int) -> Optional[Characteristic]:
        return next((c for c in self.characteristics if c.iid == iid), None)

    def has(self, char_type: str) -> bool:
        return self.characteristic(char_type) is not None

    def value(self, char_type: str, default: Any = None) -> Any:
        characteristic = self.characteristic(char_type)
        if characteristic is None or characteristic.value is None:
            return default
        return characteristic.value

    def describe(self) -> str:
        return (
            f"type:{self.service_type} address:{self.instance.ip_address}:{self.instance.port} "
            f"aid:{self.aid} iid:{self.iid}"
        )

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "aid": self.aid,
            "iid": self.iid,
            "type": self.type,
            "service_type": self.service_type,
            "characteristics": [c.to_dict() for c in self.characteristics],
            "accessory_information": self.accessory_information.to_dict(),
            "service_name": self.service_name,
            "instance": self.instance.to_dict(),
            "unique_id": self.unique_id,
            "is_unavailable": self.is_unavailable,
        }
        if self.extras is not None:
            payload["extras"] = self.extras.to_dict()
        return payload

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "Service":
        extras = entry.get("extras")
        return cls(
            aid=int(entry["aid"]),
            iid=int(entry["iid"]),
            type=entry["type"],
            service_type=entry["service_type"],
            characteristics=[Characteristic.from_dict(c) for c in entry.get("characteristics") or []],
            accessory_information=AccessoryInformation.from_dict(entry.get("accessory_information") or {}),
            service_name=entry.get("service_name") or entry["service_type"],
            instance=InstanceRef.from_dict(entry["instance"]),
            unique_id=entry["unique_id"],
            is_unavailable=int(entry.get("is_unavailable", 0)),
            extras=TelevisionExtras.from_dict(extras) if extras else None,
        )


@dataclass
class HapInstance:
    """A reachable endpoint and the raw accessory tree it reported."""

    ip_address: str
    port: int
    username: str
    name: str = ""
    accessories: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ref(self) -> InstanceRef:
        return InstanceRef(ip_address=self.ip_address, port=self.port, username=self.username)


@dataclass
class ExecuteTranslation:
    """What an adapter produced for one command: a write payload and predicted states."""

    payload: Optional[Dict[str, Any]]
    states: Optional[Dict[str, Any]] = None
