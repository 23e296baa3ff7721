from __future__ import annotations

import pytest

from shellies_lib.components import Cover, DevicePower, Input, Switch, Sys, WiFi, apply_update, compound, scalar
from shellies_lib.events import (
    CharacteristicChanged,
    ComponentEventReceived,
    ConfigChanged,
    InputTriggered,
    OtaProgress,
    SleepRequested,
    WifiStatusChanged,
)


class _FakeRpc:
    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    async def request(self, method, params=None, *, timeout_s=None):
        del timeout_s
        self.calls.append((method, params))
        return {"was_on": False}


class _FakeDevice:
    def __init__(self) -> None:
        self.rpc = _FakeRpc()
        self.forwarded: list[object] = []

    def emit_component_event(self, component, event) -> None:
        del component
        self.forwarded.append(event)


def _changes(component) -> list[CharacteristicChanged]:
    events: list[CharacteristicChanged] = []
    component.subscribe(lambda evt: events.append(evt) if isinstance(evt, CharacteristicChanged) else None)
    return events


def test_unknown_keys_leave_component_untouched() -> None:
    switch = Switch(_FakeDevice(), 0)
    events = _changes(switch)
    before = dict(switch.values)

    changed = switch.update({"bogus": 1, "another": {"x": 1}})

    assert changed == []
    assert events == []
    assert dict(switch.values) == before


def test_scalar_change_emits_once_with_value() -> None:
    switch = Switch(_FakeDevice(), 0)
    events = _changes(switch)

    switch.update({"output": True})
    switch.update({"output": True})

    assert switch.output is True
    assert [(e.component, e.characteristic, e.value) for e in events] == [("switch:0", "output", True)]


def test_scalar_comparison_keeps_bool_distinct_from_numbers() -> None:
    switch = Switch(_FakeDevice(), 0)
    switch.update({"apower": 1, "output": True})
    events = _changes(switch)

    switch.update({"apower": 1.0})
    assert events == []

    switch.update({"apower": 0})
    switch.update({"apower": 0.0})
    assert [e.characteristic for e in events] == ["apower"]

    switch.update({"output": 1})
    assert [e.characteristic for e in events] == ["apower", "output"]
    assert switch.output == 1 and switch.output is not True


def test_compound_deep_equal_payload_emits_nothing() -> None:
    switch = Switch(_FakeDevice(), 0)
    switch.update({"aenergy": {"total": 10.5, "by_minute": [1.0, 2.0, 3.0], "minute_ts": 100}})
    events = _changes(switch)

    switch.update({"aenergy": {"total": 10.5, "by_minute": [1.0, 2.0, 3.0], "minute_ts": 100}})
    switch.update({"aenergy": {"total": 10.5}})

    assert events == []


def test_compound_partial_update_keeps_sibling_fields() -> None:
    switch = Switch(_FakeDevice(), 0)
    switch.update({"temperature": {"tC": 40.0, "tF": 104.0}})
    original = switch.temperature
    events = _changes(switch)

    switch.update({"temperature": {"tC": 41.0}})

    assert len(events) == 1
    assert events[0].characteristic == "temperature"
    assert switch.temperature == {"tC": 41.0, "tF": 104.0}
    # merged in place
    assert switch.temperature is original


def test_compound_update_does_not_alias_payload() -> None:
    power = DevicePower(_FakeDevice(), 0)
    payload = {"battery": {"V": 3.1, "percent": 80}}

    power.update(payload)
    payload["battery"]["percent"] = 10

    assert power.battery == {"V": 3.1, "percent": 80}


def test_change_count_matches_characteristics_that_differ() -> None:
    cover = Cover(_FakeDevice(), 0)
    events = _changes(cover)
    sequence = [
        {"state": "opening", "current_pos": 10, "target_pos": 100},
        {"state": "opening", "current_pos": 20, "target_pos": 100},
        {"state": "open", "current_pos": 100, "aenergy": {"total": 1.0}},
        {"state": "open", "aenergy": {"total": 1.0}, "unknown": True},
        {"temperature": {"tC": None}},
    ]
    expected = [3, 1, 3, 0, 0]

    for payload, count in zip(sequence, expected):
        before = len(events)
        cover.update(payload)
        assert len(events) - before == count


def test_change_events_fire_after_update_in_declared_order() -> None:
    switch = Switch(_FakeDevice(), 0)
    seen: list[tuple[str, bool, float]] = []

    def _on_change(evt) -> None:
        # every field is already applied when the first event arrives
        seen.append((evt.characteristic, switch.output, switch.apower))

    switch.subscribe(_on_change)
    switch.update({"apower": 12.5, "output": True, "source": "button"})

    assert seen == [
        ("source", True, 12.5),
        ("output", True, 12.5),
        ("apower", True, 12.5),
    ]


def test_subscriber_failure_does_not_stop_other_subscribers(caplog) -> None:
    switch = Switch(_FakeDevice(), 0)
    received: list[str] = []

    def _boom(evt) -> None:
        raise ValueError("bad subscriber")

    switch.subscribe(_boom)
    switch.subscribe(lambda evt: received.append(evt.characteristic))

    switch.update({"output": True})
    switch.update({"output": False})

    assert received == ["output", "output"]
    assert sum("ValueError" in r.getMessage() for r in caplog.records) == 1


def test_unsubscribe_stops_events() -> None:
    switch = Switch(_FakeDevice(), 0)
    events: list[object] = []
    unsubscribe = switch.subscribe(events.append)

    unsubscribe()
    switch.update({"output": True})

    assert events == []


def test_events_are_forwarded_to_device() -> None:
    device = _FakeDevice()
    switch = Switch(device, 1)

    switch.update({"output": True})

    assert len(device.forwarded) == 1
    assert device.forwarded[0].component == "switch:1"


def test_apply_update_uses_explicit_schema() -> None:
    schema = (scalar("a"), compound("b"))
    target: dict = {"a": 1, "b": {"x": 1, "y": 2}}

    changed = apply_update(schema, target, {"a": 1, "b": {"y": 3}, "c": 4})

    assert changed == ["b"]
    assert target == {"a": 1, "b": {"x": 1, "y": 3}}


def test_handle_event_config_changed() -> None:
    switch = Switch(_FakeDevice(), 0)
    events: list[object] = []
    switch.subscribe(events.append)

    switch.handle_event({"component": "switch:0", "event": "config_changed", "cfg_rev": 12, "restart_required": True})

    assert events == [ConfigChanged(component="switch:0", revision=12, restart_required=True)]


def test_subclass_events_fall_back_to_base() -> None:
    button = Input(_FakeDevice(), 2)
    events: list[object] = []
    button.subscribe(events.append)

    button.handle_event({"component": "input:2", "id": 2, "event": "single_push", "ts": 1.0})
    button.handle_event({"component": "input:2", "id": 2, "event": "config_changed", "cfg_rev": 3})
    button.handle_event({"component": "input:2", "id": 2, "event": "something_new", "ts": 2.0})

    assert events[0] == InputTriggered(component="input:2", action="single_push")
    assert isinstance(events[1], ConfigChanged)
    assert events[1].revision == 3
    assert events[2] == ComponentEventReceived(component="input:2", event="something_new", data={"ts": 2.0})


def test_sys_and_wifi_domain_events() -> None:
    sys_component = Sys(_FakeDevice())
    wifi = WiFi(_FakeDevice())
    events: list[object] = []
    sys_component.subscribe(events.append)
    wifi.subscribe(events.append)

    sys_component.handle_event({"component": "sys", "event": "ota_progress", "progress_percent": 42, "msg": "ok"})
    sys_component.handle_event({"component": "sys", "event": "sleep"})
    wifi.handle_event({"component": "wifi", "event": "sta_disconnected", "reason": 201, "ssid": "home"})

    assert events == [
        OtaProgress(component="sys", stage="progress", progress_percent=42, msg="ok"),
        SleepRequested(component="sys"),
        WifiStatusChanged(component="wifi", action="sta_disconnected", reason=201, sta_ip=None, ssid="home"),
    ]


@pytest.mark.asyncio
async def test_actions_inject_instance_id() -> None:
    device = _FakeDevice()
    switch = Switch(device, 1)
    cover = Cover(device, 0)
    wifi = WiFi(device)

    await switch.set(True, toggle_after=5)
    await switch.toggle()
    await cover.go_to_position(50)
    await wifi.scan()
    await switch.set_config({"name": "Lamp"})

    assert device.rpc.calls == [
        ("Switch.Set", {"id": 1, "on": True, "toggle_after": 5}),
        ("Switch.Toggle", {"id": 1}),
        ("Cover.GoToPosition", {"id": 0, "pos": 50}),
        ("WiFi.Scan", None),
        ("Switch.SetConfig", {"id": 1, "config": {"name": "Lamp"}}),
    ]


@pytest.mark.asyncio
async def test_go_to_position_requires_a_target() -> None:
    cover = Cover(_FakeDevice(), 0)
    with pytest.raises(ValueError):
        await cover.go_to_position()
