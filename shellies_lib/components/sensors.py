"""Sensor components: temperature, humidity, device power and smoke."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..events import SmokeAlarmChanged
from .base import Component, compound, scalar


class Temperature(Component):
    TYPE = "Temperature"
    CHARACTERISTICS = (
        scalar("tC"),
        scalar("tF"),
        scalar("errors"),
    )

    def __init__(self, device, instance_id: Optional[int] = 0) -> None:
        super().__init__(device, instance_id)


class Humidity(Component):
    TYPE = "Humidity"
    CHARACTERISTICS = (
        scalar("rh"),
        scalar("errors"),
    )

    def __init__(self, device, instance_id: Optional[int] = 0) -> None:
        super().__init__(device, instance_id)


class DevicePower(Component):
    TYPE = "DevicePower"
    CHARACTERISTICS = (
        compound("battery", {"V": None, "percent": None}),
        compound("external", {"present": False}),
        scalar("errors"),
    )

    def __init__(self, device, instance_id: Optional[int] = 0) -> None:
        super().__init__(device, instance_id)


class Smoke(Component):
    TYPE = "Smoke"
    CHARACTERISTICS = (
        scalar("alarm", False),
        scalar("mute", False),
    )

    def __init__(self, device, instance_id: Optional[int] = 0) -> None:
        super().__init__(device, instance_id)

    async def mute_alarm(self) -> Any:
        return await self.rpc("Mute")

    def handle_event(self, event: Mapping[str, Any]) -> None:
        name = event.get("event")
        if name in ("alarm", "alarm_off", "alarm_test"):
            self._emit(SmokeAlarmChanged(component=self.key, action=name))
            return
        super().handle_event(event)
