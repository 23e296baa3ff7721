"""
Device collection for shellies_lib.

Shellies ties discoverers, the model registry and Device construction
together:
- discoverers announce DeviceIdentifiers;
- each new id is resolved to options, connected, identified via
  Shelly.GetDeviceInfo, matched against the registry, hydrated and added;
- consumers observe the collection through subscribe().

Failures while adding a device are reported as DeviceError/UnknownDevice
events and never propagate into the discoverer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterator, Mapping, Optional

import aiohttp

from .devices.base import Device
from .devices.registry import DeviceRegistry, create_default_registry
from .discovery import DeviceDiscoverer
from .errors import MissingHostnameError, ProtocolError, UnknownModelError
from .events import (
    DeviceAdded,
    DeviceError,
    DeviceExcluded,
    DeviceRemoved,
    Event,
    UnknownDevice,
)
from .rpc import RpcClient
from .session import WebSocketSession
from .types import DeviceIdentifiers, DeviceIdentity, DeviceOptions, SessionConfig, ShelliesConfig

__all__ = ["Shellies"]

SessionFactory = Callable[[str, SessionConfig], WebSocketSession]
CollectionCallback = Callable[[Event], None]


class Shellies:
    """
    Collection of discovered devices.

    Typical usage:
        shellies = Shellies(ShelliesConfig(default_options=DeviceOptions(password="secret")))
        shellies.subscribe(on_event)
        await shellies.register_discoverer(StaticDiscoverer([DeviceIdentifiers("shellyplus1-abc", "10.0.0.5")]))
        ...
        await shellies.close()
    """

    def __init__(
        self,
        config: ShelliesConfig | None = None,
        *,
        registry: Optional[DeviceRegistry] = None,
        client_session: Optional[aiohttp.ClientSession] = None,
        session_factory: Optional[SessionFactory] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or ShelliesConfig()
        self.registry = registry if registry is not None else create_default_registry()
        self._log = logger or logging.getLogger(__name__)
        self._client_session = client_session
        self._session_factory = session_factory or self._create_session

        self._devices: dict[str, Device] = {}
        self._pending: set[str] = set()
        self._ignored: set[str] = set()
        self._discoverers: dict[DeviceDiscoverer, Callable[[], bool]] = {}
        self._tasks: set[asyncio.Task] = set()

        self._subscribers: list[CollectionCallback] = []
        self._subscriber_error_types: set[type] = set()

    # --------------------------
    # Collection
    # --------------------------

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[Device]:
        return iter(list(self._devices.values()))

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    def has(self, device_id: str) -> bool:
        return device_id in self._devices

    def get(self, device_id: str) -> Optional[Device]:
        return self._devices.get(device_id)

    def add(self, device: Device) -> bool:
        """Add a device; returns False if a device with the same id exists."""
        if device.id in self._devices:
            return False
        self._devices[device.id] = device
        self._log.info("Added %s (%s) at %s", device.id, device.MODEL_NAME or device.model, device.rpc.hostname)
        self._emit(DeviceAdded(device_id=device.id, device=device))
        return True

    async def remove(self, device_id: str, *, destroy: bool = True) -> bool:
        device = self._devices.pop(device_id, None)
        if device is None:
            return False
        self._emit(DeviceRemoved(device_id=device_id, device=device))
        if destroy:
            await device.destroy()
        return True

    # --------------------------
    # Subscriptions
    # --------------------------

    def subscribe(self, callback: CollectionCallback) -> Callable[[], None]:
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: CollectionCallback) -> bool:
        if callback not in self._subscribers:
            return False
        self._subscribers.remove(callback)
        return True

    def _emit(self, event: Event) -> None:
        for cb in list(self._subscribers):
            try:
                cb(event)
            except Exception as exc:  # noqa: BLE001
                exc_type = type(exc)
                if exc_type not in self._subscriber_error_types:
                    self._subscriber_error_types.add(exc_type)
                    self._log.warning("Subscriber callback failed: %s", exc_type.__name__)

    # --------------------------
    # Discovery
    # --------------------------

    async def register_discoverer(self, discoverer: DeviceDiscoverer, *, start: bool = True) -> None:
        if discoverer in self._discoverers:
            return
        self._discoverers[discoverer] = discoverer.subscribe(self._on_discovered)
        if start:
            await discoverer.start()

    async def unregister_discoverer(self, discoverer: DeviceDiscoverer) -> None:
        unsubscribe = self._discoverers.pop(discoverer, None)
        if unsubscribe is None:
            return
        unsubscribe()
        await discoverer.stop()

    def _on_discovered(self, identifiers: DeviceIdentifiers) -> None:
        task = asyncio.get_running_loop().create_task(self.handle_discovered(identifiers))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait until every in-flight discovery has been handled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _create_session(self, hostname: str, cfg: SessionConfig) -> WebSocketSession:
        return WebSocketSession(hostname, cfg, client_session=self._client_session)

    def create_rpc_client(self, identifiers: DeviceIdentifiers, options: DeviceOptions) -> RpcClient:
        if options.protocol == "websocket" and identifiers.hostname:
            session = self._session_factory(identifiers.hostname, self.config.session)
            return RpcClient(session, password=options.password)
        raise MissingHostnameError(
            f"Missing required device identifier(s) (device ID: {identifiers.device_id}, protocol: {options.protocol})"
        )

    async def handle_discovered(self, identifiers: DeviceIdentifiers) -> Optional[Device]:
        """
        Connect to, identify and add a discovered device.

        Returns the added device, or None when it was skipped or failed.
        """
        device_id = identifiers.device_id
        if device_id in self._devices or device_id in self._pending or device_id in self._ignored:
            return None

        options = self.config.options_for(device_id)
        if options.exclude:
            self._ignored.add(device_id)
            self._log.debug("Excluding device %s", device_id)
            self._emit(DeviceExcluded(device_id=device_id))
            return None

        self._pending.add(device_id)
        rpc: Optional[RpcClient] = None
        try:
            rpc = self.create_rpc_client(identifiers, options)
            info = await rpc.request("Shelly.GetDeviceInfo")
            identity = DeviceIdentity.from_device_info(info if isinstance(info, Mapping) else {})
            if identity.id != device_id:
                raise ProtocolError(f"Unexpected device ID (returned: {identity.id}, expected: {device_id})")

            try:
                cls = self.registry.resolve(identity.model)
            except UnknownModelError:
                self._ignored.add(device_id)
                self._log.info("Unknown model %r for device %s", identity.model, device_id)
                await rpc.destroy()
                self._emit(UnknownDevice(device_id=device_id, model=identity.model))
                return None

            device = cls(identity, rpc)
            await device.load_status()
        except asyncio.CancelledError:
            if rpc is not None:
                await rpc.destroy()
            raise
        except Exception as exc:  # noqa: BLE001
            if isinstance(exc, MissingHostnameError):
                self._ignored.add(device_id)
            if rpc is not None:
                await rpc.destroy()
            self._log.warning("Failed to add discovered device (id: %s): %s", device_id, exc)
            self._emit(DeviceError(device_id=device_id, error=exc))
            return None
        finally:
            self._pending.discard(device_id)

        self.add(device)
        return device

    # --------------------------
    # Shutdown
    # --------------------------

    async def close(self) -> None:
        """Stop discoverers, cancel in-flight discoveries and destroy every device."""
        for discoverer in list(self._discoverers):
            await self.unregister_discoverer(discoverer)
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        for device_id in list(self._devices):
            await self.remove(device_id)
