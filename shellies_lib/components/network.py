"""Connectivity components: Wi-Fi, Ethernet, BLE, cloud, MQTT and outbound WebSocket."""

from __future__ import annotations

from typing import Any, Mapping

from ..events import WifiStatusChanged
from .base import Component, scalar


class WiFi(Component):
    TYPE = "WiFi"
    CHARACTERISTICS = (
        scalar("sta_ip"),
        scalar("status", "disconnected"),
        scalar("ssid"),
        scalar("rssi", 0),
    )

    async def scan(self) -> Any:
        return await self.rpc("Scan")

    async def list_ap_clients(self) -> Any:
        return await self.rpc("ListAPClients")

    def handle_event(self, event: Mapping[str, Any]) -> None:
        name = event.get("event")
        if name in ("sta_connect_fail", "sta_disconnected"):
            reason = event.get("reason")
            self._emit(
                WifiStatusChanged(
                    component=self.key,
                    action=name,
                    reason=reason if isinstance(reason, int) else None,
                    sta_ip=event.get("sta_ip"),
                    ssid=event.get("ssid"),
                )
            )
            return
        super().handle_event(event)


class Ethernet(Component):
    TYPE = "Eth"
    CHARACTERISTICS = (scalar("ip"),)


class BluetoothLowEnergy(Component):
    TYPE = "BLE"


class Cloud(Component):
    TYPE = "Cloud"
    CHARACTERISTICS = (scalar("connected", False),)


class Mqtt(Component):
    TYPE = "Mqtt"
    CHARACTERISTICS = (scalar("connected", False),)


class OutboundWebSocket(Component):
    TYPE = "Ws"
    CHARACTERISTICS = (scalar("connected", False),)
