"""
shellies_lib/devices/models.py

Device model catalog: which components each hardware model exposes.
"""

from __future__ import annotations

from ..components import (
    BluetoothLowEnergy,
    Cloud,
    Cover,
    DevicePower,
    Ethernet,
    Humidity,
    Input,
    Light,
    Mqtt,
    OutboundWebSocket,
    Script,
    Smoke,
    Switch,
    Sys,
    Temperature,
    WiFi,
)
from ..components.base import Component, ComponentSpec
from ..components.ui import HtUi, PlugsUi, Ui
from .base import Device


def single(key: str, cls: type[Component]) -> ComponentSpec:
    return ComponentSpec(key, cls)


def indexed(cls: type[Component], count: int) -> tuple[ComponentSpec, ...]:
    key = cls.TYPE.lower()
    return tuple(ComponentSpec(f"{key}:{i}", cls, i) for i in range(count))


COMMON = (
    single("sys", Sys),
    single("wifi", WiFi),
    single("ble", BluetoothLowEnergy),
    single("cloud", Cloud),
    single("mqtt", Mqtt),
    single("ws", OutboundWebSocket),
)
SCRIPT = (single("script", Script),)


# -------------------------
# Plus series
# -------------------------

class ShellyPlus1(Device):
    MODEL = "SNSW-001X16EU"
    MODEL_NAME = "Shelly Plus 1"
    COMPONENTS = COMMON + indexed(Input, 1) + indexed(Switch, 1) + SCRIPT


class ShellyPlus1Pm(Device):
    MODEL = "SNSW-001P16EU"
    MODEL_ALIASES = ("SNSW-001P15UL",)
    MODEL_NAME = "Shelly Plus 1 PM"
    COMPONENTS = COMMON + indexed(Input, 1) + indexed(Switch, 1) + SCRIPT


class ShellyPlus2Pm(Device):
    MODEL = "SNSW-002P16EU"
    MODEL_NAME = "Shelly Plus 2 PM"
    COMPONENTS = COMMON + indexed(Cover, 1) + indexed(Input, 2) + indexed(Switch, 2) + SCRIPT


class ShellyPlusHt(Device):
    MODEL = "SNSN-0013A"
    MODEL_NAME = "Shelly Plus H&T"
    COMPONENTS = (
        COMMON
        + indexed(Temperature, 1)
        + indexed(Humidity, 1)
        + indexed(DevicePower, 1)
        + (single("ht_ui", HtUi),)
    )


class ShellyPlusI4(Device):
    MODEL = "SNSN-0024X"
    MODEL_NAME = "Shelly Plus I4"
    COMPONENTS = COMMON + indexed(Input, 4) + SCRIPT


class ShellyPlusPlugS(Device):
    MODEL = "SNPL-00112EU"
    MODEL_NAME = "Shelly Plus Plug S"
    COMPONENTS = COMMON + indexed(Switch, 1) + SCRIPT + (single("plugs_ui", PlugsUi),)


class ShellyPlusPlugUs(Device):
    MODEL = "SNPL-00116US"
    MODEL_NAME = "Shelly Plus Plug US"
    COMPONENTS = COMMON + indexed(Switch, 1) + SCRIPT


class ShellyPlusPlugUk(ShellyPlusPlugS):
    MODEL = "SNPL-00112UK"
    MODEL_NAME = "Shelly Plus Plug UK"


class ShellyPlusPlugIt(ShellyPlusPlugS):
    MODEL = "SNPL-00110IT"
    MODEL_NAME = "Shelly Plus Plug IT"


class ShellyPlusSmoke(Device):
    MODEL = "SNSN-0031Z"
    MODEL_NAME = "Shelly Plus Smoke"
    COMPONENTS = COMMON + indexed(DevicePower, 1) + indexed(Smoke, 1)


class ShellyPlusWallDimmer(Device):
    MODEL = "SNDM-0013US"
    MODEL_NAME = "Shelly Plus Wall Dimmer"
    COMPONENTS = COMMON + indexed(Light, 1) + SCRIPT


# -------------------------
# Pro series
# -------------------------

class ShellyPro1(Device):
    MODEL = "SPSW-001XE16EU"
    MODEL_ALIASES = ("SPSW-101XE16EU", "SPSW-201XE16EU")
    MODEL_NAME = "Shelly Pro 1"
    COMPONENTS = COMMON + indexed(Input, 2) + indexed(Switch, 1) + SCRIPT


class ShellyPro1Pm(Device):
    MODEL = "SPSW-001PE16EU"
    MODEL_ALIASES = ("SPSW-101PE16EU", "SPSW-201PE16EU")
    MODEL_NAME = "Shelly Pro 1 PM"
    COMPONENTS = COMMON + indexed(Input, 2) + indexed(Switch, 1) + SCRIPT


class ShellyPro2(Device):
    MODEL = "SPSW-002XE16EU"
    MODEL_ALIASES = ("SPSW-102XE16EU", "SPSW-202XE16EU")
    MODEL_NAME = "Shelly Pro 2"
    COMPONENTS = COMMON + indexed(Input, 2) + indexed(Switch, 2) + SCRIPT


class ShellyPro2Pm(Device):
    MODEL = "SPSW-002PE16EU"
    MODEL_NAME = "Shelly Pro 2 PM"
    # No outbound websocket component on this model.
    COMPONENTS = (
        single("sys", Sys),
        single("wifi", WiFi),
        single("ble", BluetoothLowEnergy),
        single("cloud", Cloud),
        single("mqtt", Mqtt),
    ) + indexed(Cover, 1) + indexed(Input, 2) + indexed(Switch, 2) + SCRIPT


class ShellyPro3(Device):
    MODEL = "SPSW-003XE16EU"
    MODEL_NAME = "Shelly Pro 3"
    COMPONENTS = (
        COMMON + (single("eth", Ethernet),) + indexed(Input, 3) + indexed(Switch, 3) + SCRIPT
    )


class ShellyPro4Pm(Device):
    MODEL = "SPSW-004PE16EU"
    MODEL_NAME = "Shelly Pro 4 PM"
    COMPONENTS = (
        COMMON
        + (single("eth", Ethernet),)
        + indexed(Input, 4)
        + indexed(Switch, 4)
        + SCRIPT
        + (single("ui", Ui),)
    )


ALL_MODELS: tuple[type[Device], ...] = (
    ShellyPlus1,
    ShellyPlus1Pm,
    ShellyPlus2Pm,
    ShellyPlusHt,
    ShellyPlusI4,
    ShellyPlusPlugS,
    ShellyPlusPlugUs,
    ShellyPlusPlugUk,
    ShellyPlusPlugIt,
    ShellyPlusSmoke,
    ShellyPlusWallDimmer,
    ShellyPro1,
    ShellyPro1Pm,
    ShellyPro2,
    ShellyPro2Pm,
    ShellyPro3,
    ShellyPro4Pm,
)
