"""
shellies_lib/events.py

Event dataclasses.

Rules:
- Every event is an immutable dataclass with a class-level KIND string.
- Transport events describe the connection and inbound pushes.
- Component events describe state changes of a single component.
- Collection events describe devices entering/leaving the collection.
- Dispatch on isinstance() (or on .kind when routing by name).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass(frozen=True, slots=True)
class Event:
    KIND = "event"

    @property
    def kind(self) -> str:
        return self.KIND


# -------------------------
# Transport events
# -------------------------

@dataclass(frozen=True, slots=True)
class Connected(Event):
    KIND = "connected"

    hostname: str


@dataclass(frozen=True, slots=True)
class Disconnected(Event):
    KIND = "disconnected"

    hostname: str
    code: int
    reason: str = ""
    next_attempt_ms: Optional[int] = None  # None when no reconnect is scheduled


@dataclass(frozen=True, slots=True)
class TransportErrorOccurred(Event):
    KIND = "transport_error"

    hostname: str
    error: BaseException


@dataclass(frozen=True, slots=True)
class RequestSent(Event):
    KIND = "request_sent"

    hostname: str
    envelope: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class StatusUpdate(Event):
    """NotifyStatus / NotifyFullStatus push."""

    KIND = "status_update"

    ts: Optional[float]
    params: Mapping[str, Any]
    full: bool = False


@dataclass(frozen=True, slots=True)
class EventNotification(Event):
    """NotifyEvent push; ``events`` is the raw batch."""

    KIND = "event_notification"

    ts: Optional[float]
    events: tuple[Mapping[str, Any], ...] = ()


# -------------------------
# Component events
# -------------------------

@dataclass(frozen=True, slots=True)
class ComponentEvent(Event):
    component: str  # component key, e.g. "switch:0"


@dataclass(frozen=True, slots=True)
class CharacteristicChanged(ComponentEvent):
    KIND = "change"

    characteristic: str
    value: Any


@dataclass(frozen=True, slots=True)
class ConfigChanged(ComponentEvent):
    KIND = "config_changed"

    revision: Optional[int] = None
    restart_required: bool = False


@dataclass(frozen=True, slots=True)
class InputTriggered(ComponentEvent):
    """Button events: btn_down, btn_up, single_push, double_push, long_push."""

    KIND = "input_triggered"

    action: str


@dataclass(frozen=True, slots=True)
class WifiStatusChanged(ComponentEvent):
    KIND = "wifi_status_changed"

    action: str
    reason: Optional[int] = None
    sta_ip: Optional[str] = None
    ssid: Optional[str] = None


@dataclass(frozen=True, slots=True)
class OtaProgress(ComponentEvent):
    """ota_begin, ota_progress, ota_success and ota_error."""

    KIND = "ota_progress"

    stage: str
    progress_percent: Optional[float] = None
    msg: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SleepRequested(ComponentEvent):
    KIND = "sleep"


@dataclass(frozen=True, slots=True)
class SmokeAlarmChanged(ComponentEvent):
    KIND = "smoke_alarm"

    action: str


@dataclass(frozen=True, slots=True)
class ComponentEventReceived(ComponentEvent):
    """Any other component event, passed through verbatim."""

    KIND = "component_event"

    event: str
    data: Mapping[str, Any] = field(default_factory=dict)


# -------------------------
# Collection events
# -------------------------

@dataclass(frozen=True, slots=True)
class DeviceAdded(Event):
    KIND = "device_added"

    device_id: str
    device: Any


@dataclass(frozen=True, slots=True)
class DeviceRemoved(Event):
    KIND = "device_removed"

    device_id: str
    device: Any


@dataclass(frozen=True, slots=True)
class DeviceExcluded(Event):
    KIND = "device_excluded"

    device_id: str


@dataclass(frozen=True, slots=True)
class UnknownDevice(Event):
    KIND = "unknown_device"

    device_id: str
    model: str


@dataclass(frozen=True, slots=True)
class DeviceError(Event):
    KIND = "device_error"

    device_id: str
    error: BaseException
