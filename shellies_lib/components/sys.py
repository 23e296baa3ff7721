from __future__ import annotations

from typing import Any, Mapping

from ..events import OtaProgress, SleepRequested
from .base import Component, compound, scalar

OTA_EVENTS = {
    "ota_begin": "begin",
    "ota_progress": "progress",
    "ota_success": "success",
    "ota_error": "error",
}


class Sys(Component):
    """System information, OTA progress and sleep notifications."""

    TYPE = "Sys"
    CHARACTERISTICS = (
        scalar("mac", ""),
        scalar("restart_required", False),
        scalar("time"),
        scalar("unixtime"),
        scalar("uptime", 0),
        scalar("ram_size", 0),
        scalar("ram_free", 0),
        scalar("fs_size", 0),
        scalar("fs_free", 0),
        scalar("cfg_rev", 0),
        scalar("kvs_rev", 0),
        scalar("schedule_rev"),
        scalar("webhook_rev"),
        compound("available_updates", {}),
        compound("wakeup_reason"),
    )

    def handle_event(self, event: Mapping[str, Any]) -> None:
        name = event.get("event")
        stage = OTA_EVENTS.get(name) if isinstance(name, str) else None
        if stage is not None:
            progress = event.get("progress_percent")
            msg = event.get("msg")
            self._emit(
                OtaProgress(
                    component=self.key,
                    stage=stage,
                    progress_percent=progress if isinstance(progress, (int, float)) else None,
                    msg=msg if isinstance(msg, str) else None,
                )
            )
            return
        if name == "sleep":
            self._emit(SleepRequested(component=self.key))
            return
        super().handle_event(event)
