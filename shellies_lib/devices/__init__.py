from .base import Device
from .models import ALL_MODELS
from .registry import DeviceRegistry, create_default_registry

__all__ = ["ALL_MODELS", "Device", "DeviceRegistry", "create_default_registry"]
