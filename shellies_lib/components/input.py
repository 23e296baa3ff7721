from __future__ import annotations

from typing import Any, Mapping, Optional

from ..events import InputTriggered
from .base import Component, scalar

INPUT_ACTIONS = frozenset({"btn_down", "btn_up", "single_push", "double_push", "long_push"})


class Input(Component):
    TYPE = "Input"
    CHARACTERISTICS = (scalar("state"),)

    def __init__(self, device, instance_id: Optional[int] = 0) -> None:
        super().__init__(device, instance_id)

    def handle_event(self, event: Mapping[str, Any]) -> None:
        name = event.get("event")
        if name in INPUT_ACTIONS:
            self._emit(InputTriggered(component=self.key, action=name))
            return
        super().handle_event(event)
