"""
shellies_lib/devices/registry.py

Explicit model registry. Built once and handed to the collection; nothing
registers itself at import time.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from ..errors import DuplicateModelError, UnknownModelError
from .base import Device
from .models import ALL_MODELS

logger = logging.getLogger(__name__)


class DeviceRegistry:
    def __init__(self, models: Iterable[type[Device]] = ()) -> None:
        self._classes: dict[str, type[Device]] = {}
        for cls in models:
            self.register(cls)

    def register(self, cls: type[Device]) -> None:
        """
        Register a device class under its MODEL and MODEL_ALIASES.

        Raises:
            DuplicateModelError: an identifier is already registered.
            ValueError: the class declares no MODEL.
        """
        if not cls.MODEL:
            raise ValueError(f"{cls.__name__} does not declare a MODEL")
        identifiers = [m.upper() for m in (cls.MODEL, *cls.MODEL_ALIASES)]
        for model in identifiers:
            existing = self._classes.get(model)
            if existing is not None:
                raise DuplicateModelError(
                    f"Model {model!r} is already registered to {existing.__name__} (cannot register {cls.__name__})"
                )
        for model in identifiers:
            self._classes[model] = cls
        logger.debug("Registered %s for %s", cls.__name__, ", ".join(identifiers))

    def get(self, model: str) -> Optional[type[Device]]:
        """Return the class for ``model`` (case-insensitive), or None if unknown."""
        if not isinstance(model, str):
            return None
        return self._classes.get(model.upper())

    def resolve(self, model: str) -> type[Device]:
        """Like get(), but raises UnknownModelError for an unknown model."""
        cls = self.get(model)
        if cls is None:
            raise UnknownModelError(model)
        return cls

    def __contains__(self, model: object) -> bool:
        return isinstance(model, str) and model.upper() in self._classes

    def __len__(self) -> int:
        return len(self._classes)

    def __iter__(self) -> Iterator[str]:
        return iter(self._classes)


def create_default_registry() -> DeviceRegistry:
    return DeviceRegistry(ALL_MODELS)
