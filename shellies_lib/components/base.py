"""
shellies_lib/components/base.py

Component state model.

Principles:
- Each component class declares an ordered CHARACTERISTICS schema.
- Patch-style updates: only declared characteristics present in the payload
  are applied; unknown keys are ignored.
- Compound (object) characteristics are merged field-by-field, so a partial
  payload never drops sibling fields.
- Change notifications fire after the whole payload has been applied, in
  declared order.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Mapping, MutableMapping, Optional, Sequence

from ..events import CharacteristicChanged, ComponentEvent, ComponentEventReceived, ConfigChanged

if TYPE_CHECKING:
    from ..devices.base import Device

logger = logging.getLogger(__name__)


class CharacteristicKind(str, Enum):
    SCALAR = "scalar"
    COMPOUND = "compound"


@dataclass(frozen=True, slots=True)
class Characteristic:
    name: str
    kind: CharacteristicKind = CharacteristicKind.SCALAR
    default: Any = None


def scalar(name: str, default: Any = None) -> Characteristic:
    return Characteristic(name, CharacteristicKind.SCALAR, default)


def compound(name: str, default: Any = None) -> Characteristic:
    return Characteristic(name, CharacteristicKind.COMPOUND, default)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same_scalar(a: Any, b: Any) -> bool:
    # int and float compare as one numeric kind; bool never equals a number.
    if a != b:
        return False
    return type(a) is type(b) or (_is_number(a) and _is_number(b))



def apply_update(
    schema: Sequence[Characteristic],
    target: MutableMapping[str, Any],
    data: Mapping[str, Any],
) -> list[str]:
    """
    Apply ``data`` to ``target`` according to ``schema``.

    Returns the names of characteristics whose value changed, in schema order.
    """
    changed: list[str] = []
    for ch in schema:
        if ch.name not in data:
            continue
        incoming = data[ch.name]
        current = target.get(ch.name)

        if ch.kind is CharacteristicKind.COMPOUND and isinstance(incoming, Mapping) and isinstance(current, dict):
            merged = {**current, **incoming}
            if merged == current:
                continue
            current.update(copy.deepcopy(dict(incoming)))
            changed.append(ch.name)
            continue

        if ch.kind is CharacteristicKind.COMPOUND:
            if incoming == current and type(incoming) is type(current):
                continue
        elif _same_scalar(incoming, current):
            continue

        target[ch.name] = copy.deepcopy(incoming) if isinstance(incoming, (dict, list)) else incoming
        changed.append(ch.name)
    return changed


ComponentCallback = Callable[[ComponentEvent], None]


class Component:
    """
    One functional unit of a device (switch, cover, Wi-Fi, ...).

    Characteristic values are read through attribute access
    (``switch.output``) or ``get()``. They are only mutated by update().
    """

    TYPE: ClassVar[str] = ""
    CHARACTERISTICS: ClassVar[tuple[Characteristic, ...]] = ()

    def __init__(self, device: "Device", instance_id: Optional[int] = None) -> None:
        self.device = device
        self.id = instance_id
        self.config: dict[str, Any] = {}
        self._values: dict[str, Any] = {
            ch.name: copy.deepcopy(ch.default) for ch in self.CHARACTERISTICS
        }
        self._subscribers: list[ComponentCallback] = []
        self._subscriber_error_types: set[type] = set()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.key}>"

    def __getattr__(self, name: str) -> Any:
        values = self.__dict__.get("_values")
        if values is not None and name in values:
            return values[name]
        raise AttributeError(f"{type(self).__name__!s} has no attribute {name!r}")

    @property
    def key(self) -> str:
        key = self.TYPE.lower()
        return key if self.id is None else f"{key}:{self.id}"

    @property
    def values(self) -> Mapping[str, Any]:
        return self._values

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    # --------------------------
    # State updates
    # --------------------------

    def update(self, data: Mapping[str, Any]) -> list[str]:
        """Apply a partial status payload and emit change events."""
        if not isinstance(data, Mapping):
            return []
        changed = apply_update(self.CHARACTERISTICS, self._values, data)
        for name in changed:
            self._emit(CharacteristicChanged(component=self.key, characteristic=name, value=self._values[name]))
        return changed

    def handle_event(self, event: Mapping[str, Any]) -> None:
        """
        Handle a NotifyEvent entry addressed to this component.

        Subclasses handle their own event names and defer to this method for
        everything else.
        """
        name = event.get("event")
        if name == "config_changed":
            cfg_rev = event.get("cfg_rev")
            self._emit(
                ConfigChanged(
                    component=self.key,
                    revision=cfg_rev if isinstance(cfg_rev, int) else None,
                    restart_required=bool(event.get("restart_required", False)),
                )
            )
            return
        self._emit(
            ComponentEventReceived(
                component=self.key,
                event=str(name),
                data={k: v for k, v in event.items() if k not in ("component", "id", "event")},
            )
        )

    # --------------------------
    # Subscriptions
    # --------------------------

    def subscribe(self, callback: ComponentCallback) -> Callable[[], None]:
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: ComponentCallback) -> bool:
        if callback not in self._subscribers:
            return False
        self._subscribers.remove(callback)
        return True

    def _emit(self, event: ComponentEvent) -> None:
        for cb in list(self._subscribers):
            try:
                cb(event)
            except Exception as exc:  # noqa: BLE001
                exc_type = type(exc)
                if exc_type not in self._subscriber_error_types:
                    self._subscriber_error_types.add(exc_type)
                    logger.warning("Subscriber callback failed for %s: %s", self.key, exc_type.__name__)
        self.device.emit_component_event(self, event)

    # --------------------------
    # RPC
    # --------------------------

    async def rpc(self, method: str, **params: Any) -> Any:
        """Call ``<TYPE>.<method>``, injecting this component's id."""
        payload = {k: v for k, v in params.items() if v is not None}
        if self.id is not None:
            payload = {"id": self.id, **payload}
        return await self.device.rpc.request(f"{self.TYPE}.{method}", payload or None)

    async def get_status(self) -> Mapping[str, Any]:
        status = await self.rpc("GetStatus")
        if isinstance(status, Mapping):
            self.update(status)
        return status

    async def get_config(self) -> Mapping[str, Any]:
        config = await self.rpc("GetConfig")
        if isinstance(config, Mapping):
            self.config = dict(config)
        return config

    async def set_config(self, config: Mapping[str, Any]) -> Mapping[str, Any]:
        return await self.rpc("SetConfig", config=dict(config))


@dataclass(frozen=True, slots=True)
class ComponentSpec:
    """Declares one component of a device model: its key, class and instance id."""

    key: str
    cls: type[Component]
    instance_id: Optional[int] = None

    def build(self, device: "Device") -> Component:
        return self.cls(device, self.instance_id)
