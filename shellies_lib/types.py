"""Public value types for shellies_lib (configuration and identity)."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence, Union

DEFAULT_CLIENT_ID = f"python-shellies-{random.randint(0, 999_999)}"

ReconnectInterval = Union[float, Sequence[float]]


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """
    Immutable WebSocket transport configuration.

    Interval values are in seconds. A ping interval of 0 disables keepalive;
    a reconnect interval of 0 (or an empty sequence) disables reconnects.
    """

    client_id: str = DEFAULT_CLIENT_ID
    request_timeout_s: float = 10.0
    ping_interval_s: float = 60.0
    reconnect_interval_s: ReconnectInterval = (5, 10, 30, 60, 300, 600)
    connect_timeout_s: float = 10.0
    path: str = "/rpc"
    wire_log: bool = False  # log raw frames at DEBUG

    @property
    def reconnect_intervals(self) -> tuple[float, ...]:
        value = self.reconnect_interval_s
        if isinstance(value, (int, float)):
            return () if value <= 0 else (float(value),)
        return tuple(float(v) for v in value)


@dataclass(frozen=True, slots=True)
class DeviceOptions:
    """Per-device options resolved by the collection."""

    exclude: bool = False
    protocol: str = "websocket"
    password: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DeviceIdentifiers:
    """What a discoverer knows about a device before connecting to it."""

    device_id: str
    hostname: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DeviceIdentity:
    """
    Immutable device identity, built once from Shelly.GetDeviceInfo.
    """

    id: str
    mac: str
    model: str
    gen: int = 2
    fw_id: str = ""
    ver: str = ""
    app: str = ""

    @classmethod
    def from_device_info(cls, info: Mapping[str, Any]) -> "DeviceIdentity":
        return cls(
            id=str(info.get("id", "")),
            mac=str(info.get("mac", "")),
            model=str(info.get("model", "")),
            gen=int(info.get("gen", 2) or 2),
            fw_id=str(info.get("fw_id", "")),
            ver=str(info.get("ver", "")),
            app=str(info.get("app", "")),
        )


DeviceOptionsSource = Union[
    Mapping[str, DeviceOptions],
    Callable[[str], Optional[DeviceOptions]],
]


@dataclass(frozen=True, slots=True)
class ShelliesConfig:
    """
    Immutable configuration for the device collection.

    ``device_options`` is either a mapping of device id to options or a
    callable returning options (or None) for a device id.
    """

    session: SessionConfig = field(default_factory=SessionConfig)
    device_options: Optional[DeviceOptionsSource] = None
    default_options: DeviceOptions = field(default_factory=DeviceOptions)

    def options_for(self, device_id: str) -> DeviceOptions:
        source = self.device_options
        opts: Optional[DeviceOptions] = None
        if callable(source):
            opts = source(device_id)
        elif source is not None:
            opts = source.get(device_id)
        return opts if opts is not None else self.default_options
