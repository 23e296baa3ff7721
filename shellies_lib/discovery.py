"""
shellies_lib/discovery.py

Discovery interface.

A discoverer produces DeviceIdentifiers and hands them to its subscribers
(normally Shellies.handle_discovered). How devices are found is up to the
concrete discoverer; StaticDiscoverer replays a configured list.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from .types import DeviceIdentifiers, DeviceOptions

logger = logging.getLogger(__name__)

DiscoverCallback = Callable[[DeviceIdentifiers], None]
OptionsCallback = Callable[[str], Optional[DeviceOptions]]


class DeviceDiscoverer:
    """Base class for discoverers."""

    def __init__(self, options_callback: Optional[OptionsCallback] = None) -> None:
        self._options_callback = options_callback
        self._subscribers: list[DiscoverCallback] = []
        self._subscriber_error_types: set[type] = set()
        self.running = False

    async def start(self) -> None:
        self.running = True

    async def stop(self) -> None:
        self.running = False

    def subscribe(self, callback: DiscoverCallback) -> Callable[[], None]:
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: DiscoverCallback) -> bool:
        if callback not in self._subscribers:
            return False
        self._subscribers.remove(callback)
        return True

    def _handle_discovered_device(self, identifiers: DeviceIdentifiers) -> None:
        opts = self._options_callback(identifiers.device_id) if self._options_callback else None
        if opts is not None and opts.exclude:
            logger.debug("Discoverer skipping excluded device %s", identifiers.device_id)
            return
        for cb in list(self._subscribers):
            try:
                cb(identifiers)
            except Exception as exc:  # noqa: BLE001
                exc_type = type(exc)
                if exc_type not in self._subscriber_error_types:
                    self._subscriber_error_types.add(exc_type)
                    logger.warning("Discovery callback failed: %s", exc_type.__name__)


class StaticDiscoverer(DeviceDiscoverer):
    """Announces a fixed list of devices every time it is started."""

    def __init__(
        self,
        identifiers: Iterable[DeviceIdentifiers],
        options_callback: Optional[OptionsCallback] = None,
    ) -> None:
        super().__init__(options_callback)
        self.identifiers = tuple(identifiers)

    async def start(self) -> None:
        await super().start()
        for identifiers in self.identifiers:
            self._handle_discovered_device(identifiers)
