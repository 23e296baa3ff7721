"""
shellies_lib/devices/base.py

Device aggregate.

A Device owns one RpcClient (and through it one WebSocketSession) and a
fixed, ordered set of components declared by its model class. It routes
inbound status and event pushes to the matching component; keys it does
not know are ignored.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, ClassVar, Iterator, Mapping, Optional

from ..components.base import Component, ComponentSpec
from ..events import (
    Connected,
    Disconnected,
    Event,
    EventNotification,
    StatusUpdate,
    TransportErrorOccurred,
)
from ..rpc import RpcClient
from ..services import HttpService, KvsService, ScheduleService, ShellyService, WebhookService
from ..types import DeviceIdentity

logger = logging.getLogger(__name__)

DeviceCallback = Callable[[Event], None]


class Device:
    """
    Base class for every device model.

    Subclasses declare MODEL (the identifier reported by Shelly.GetDeviceInfo),
    optional MODEL_ALIASES, a human readable MODEL_NAME and COMPONENTS.
    """

    MODEL: ClassVar[str] = ""
    MODEL_ALIASES: ClassVar[tuple[str, ...]] = ()
    MODEL_NAME: ClassVar[str] = ""
    COMPONENTS: ClassVar[tuple[ComponentSpec, ...]] = ()

    def __init__(self, identity: DeviceIdentity, rpc: RpcClient) -> None:
        self.identity = identity
        self.rpc = rpc
        self.shelly = ShellyService(rpc, identity.id)
        self.kvs = KvsService(rpc)
        self.schedule = ScheduleService(rpc)
        self.webhook = WebhookService(rpc)
        self.http = HttpService(rpc)

        self._subscribers: list[DeviceCallback] = []
        self._subscriber_error_types: set[type] = set()

        self._components: dict[str, Component] = {}
        for spec in self.COMPONENTS:
            if spec.key in self._components:
                raise ValueError(f"{type(self).__name__} declares component {spec.key!r} twice")
            self._components[spec.key] = spec.build(self)

        self._unsubscribe_session = rpc.session.subscribe(self._on_session_event)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id} ({self.model})>"

    @property
    def id(self) -> str:
        return self.identity.id

    @property
    def model(self) -> str:
        return self.identity.model

    @property
    def mac(self) -> str:
        return self.identity.mac

    @property
    def firmware(self) -> str:
        return self.identity.ver

    @property
    def connected(self) -> bool:
        return self.rpc.session.connected

    # --------------------------
    # Components
    # --------------------------

    def has_component(self, key: str) -> bool:
        return key in self._components

    def get_component(self, key: str) -> Optional[Component]:
        return self._components.get(key)

    def __getitem__(self, key: str) -> Component:
        return self._components[key]

    def __contains__(self, key: object) -> bool:
        return key in self._components

    def __iter__(self) -> Iterator[Component]:
        return iter(self._components.values())

    def __len__(self) -> int:
        return len(self._components)

    @property
    def components(self) -> Mapping[str, Component]:
        return self._components

    # --------------------------
    # Inbound routing
    # --------------------------

    def _on_session_event(self, evt: Event) -> None:
        if isinstance(evt, StatusUpdate):
            self.handle_status(evt.params)
        elif isinstance(evt, EventNotification):
            self.handle_events(evt.events)
        elif isinstance(evt, (Connected, Disconnected, TransportErrorOccurred)):
            self._emit(evt)

    def handle_status(self, status: Mapping[str, Any]) -> None:
        """Fan a status payload (push or Shelly.GetStatus result) out to components."""
        for key, data in status.items():
            component = self._components.get(key)
            if component is None or not isinstance(data, Mapping):
                continue
            component.update(data)

    def handle_events(self, events: Any) -> None:
        for event in events:
            if not isinstance(event, Mapping):
                continue
            key = self._event_component_key(event)
            component = self._components.get(key) if key else None
            if component is None:
                logger.debug("Dropping event %r for unknown component %r on %s", event.get("event"), key, self.id)
                continue
            component.handle_event(event)

    def _event_component_key(self, event: Mapping[str, Any]) -> Optional[str]:
        name = event.get("component")
        if not isinstance(name, str) or not name:
            return None
        if name in self._components:
            return name
        instance_id = event.get("id")
        if isinstance(instance_id, int):
            return f"{name}:{instance_id}"
        return name

    # --------------------------
    # Hydration
    # --------------------------

    async def load_status(self) -> Mapping[str, Any]:
        """Fetch the full status in one call and apply it to every component."""
        status = await self.shelly.get_status()
        if isinstance(status, Mapping):
            self.handle_status(status)
        return status

    async def load_config(self) -> Mapping[str, Any]:
        """Fetch the full configuration in one call and store it on every component."""
        config = await self.shelly.get_config()
        if isinstance(config, Mapping):
            for key, data in config.items():
                component = self._components.get(key)
                if component is not None and isinstance(data, Mapping):
                    component.config = dict(data)
        return config

    # --------------------------
    # Subscriptions
    # --------------------------

    def subscribe(self, callback: DeviceCallback) -> Callable[[], None]:
        """Receive component events from every component, plus connection events."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: DeviceCallback) -> bool:
        if callback not in self._subscribers:
            return False
        self._subscribers.remove(callback)
        return True

    def emit_component_event(self, component: Component, event: Event) -> None:
        del component
        self._emit(event)

    def _emit(self, event: Event) -> None:
        for cb in list(self._subscribers):
            try:
                cb(event)
            except Exception as exc:  # noqa: BLE001
                exc_type = type(exc)
                if exc_type not in self._subscriber_error_types:
                    self._subscriber_error_types.add(exc_type)
                    logger.warning("Subscriber callback failed for %s: %s", self.id, exc_type.__name__)

    async def destroy(self) -> None:
        self._unsubscribe_session()
        self._subscribers.clear()
        await self.rpc.destroy()
