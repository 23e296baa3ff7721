from .base import (
    Characteristic,
    CharacteristicKind,
    Component,
    ComponentSpec,
    apply_update,
    compound,
    scalar,
)
from .input import Input
from .network import BluetoothLowEnergy, Cloud, Ethernet, Mqtt, OutboundWebSocket, WiFi
from .outputs import Cover, Light, Switch
from .script import Script
from .sensors import DevicePower, Humidity, Smoke, Temperature
from .sys import Sys

__all__ = [
    "BluetoothLowEnergy",
    "Characteristic",
    "CharacteristicKind",
    "Cloud",
    "Component",
    "ComponentSpec",
    "Cover",
    "DevicePower",
    "Ethernet",
    "Humidity",
    "Input",
    "Light",
    "Mqtt",
    "OutboundWebSocket",
    "Script",
    "Smoke",
    "Switch",
    "Sys",
    "Temperature",
    "WiFi",
    "apply_update",
    "compound",
    "scalar",
]
