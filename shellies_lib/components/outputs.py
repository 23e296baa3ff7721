"""Switch, Cover and Light: the output components."""

from __future__ import annotations

from typing import Any, Optional

from .base import Component, compound, scalar


class Switch(Component):
    TYPE = "Switch"
    CHARACTERISTICS = (
        scalar("source", ""),
        scalar("output", False),
        scalar("timer_started_at"),
        scalar("timer_duration"),
        scalar("apower"),
        scalar("voltage"),
        scalar("current"),
        scalar("pf"),
        compound("aenergy"),
        compound("temperature", {"tC": None, "tF": None}),
        scalar("errors"),
    )

    def __init__(self, device, instance_id: Optional[int] = 0) -> None:
        super().__init__(device, instance_id)

    async def toggle(self) -> Any:
        return await self.rpc("Toggle")

    async def set(self, on: bool, *, toggle_after: Optional[float] = None) -> Any:
        """Turn the output on/off, optionally flipping it back after ``toggle_after`` seconds."""
        return await self.rpc("Set", on=on, toggle_after=toggle_after)


class Cover(Component):
    TYPE = "Cover"
    CHARACTERISTICS = (
        scalar("source", ""),
        scalar("state", "stopped"),
        scalar("apower"),
        scalar("voltage"),
        scalar("current"),
        scalar("pf"),
        compound("aenergy"),
        scalar("current_pos"),
        scalar("target_pos"),
        scalar("move_timeout"),
        scalar("move_started_at"),
        scalar("pos_control", False),
        compound("temperature", {"tC": None, "tF": None}),
        scalar("errors"),
    )

    def __init__(self, device, instance_id: Optional[int] = 0) -> None:
        super().__init__(device, instance_id)

    async def open(self, duration: Optional[float] = None) -> Any:
        return await self.rpc("Open", duration=duration)

    async def close(self, duration: Optional[float] = None) -> Any:
        return await self.rpc("Close", duration=duration)

    async def stop(self) -> Any:
        return await self.rpc("Stop")

    async def go_to_position(self, pos: Optional[int] = None, *, rel: Optional[int] = None) -> Any:
        """Move to an absolute (``pos``) or relative (``rel``) position in percent."""
        if pos is None and rel is None:
            raise ValueError("go_to_position requires pos or rel")
        return await self.rpc("GoToPosition", pos=pos, rel=rel)

    async def calibrate(self) -> Any:
        return await self.rpc("Calibrate")


class Light(Component):
    TYPE = "Light"
    CHARACTERISTICS = (
        scalar("source", ""),
        scalar("output", False),
        scalar("brightness", 0),
        scalar("timer_started_at"),
        scalar("timer_duration"),
    )

    def __init__(self, device, instance_id: Optional[int] = 0) -> None:
        super().__init__(device, instance_id)

    async def toggle(self) -> Any:
        return await self.rpc("Toggle")

    async def set(
        self,
        on: Optional[bool] = None,
        *,
        brightness: Optional[int] = None,
        toggle_after: Optional[float] = None,
    ) -> Any:
        return await self.rpc("Set", on=on, brightness=brightness, toggle_after=toggle_after)
