from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import aiohttp
import pytest

from shellies_lib import Shellies, StaticDiscoverer
from shellies_lib.devices.models import ShellyPlus1, ShellyPro4Pm
from shellies_lib.errors import ConnectionFailed, MissingHostnameError, ProtocolError
from shellies_lib.events import DeviceAdded, DeviceError, DeviceExcluded, DeviceRemoved, UnknownDevice
from shellies_lib.types import DeviceIdentifiers, DeviceOptions, SessionConfig, ShelliesConfig

DEVICES = {
    "10.0.0.5": {"id": "shellyplus1-a8032ab1", "mac": "A8032AB1", "model": "SNSW-001X16EU", "gen": 2, "ver": "1.0.8"},
    "10.0.0.6": {"id": "shellypro4pm-c8f09e", "mac": "C8F09E", "model": "SPSW-004PE16EU", "gen": 2, "ver": "1.1.0"},
    "10.0.0.7": {"id": "shellyfuture-0001", "mac": "0001", "model": "SXXX-0000", "gen": 3, "ver": "2.0.0"},
}


class _FakeWebSocket:
    def __init__(self, info: dict) -> None:
        self.info = info
        self.sent: list[dict] = []
        self.close_code = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def receive(self):
        return await self._inbox.get()

    async def send_str(self, data: str) -> None:
        envelope = json.loads(data)
        self.sent.append(envelope)
        result = self.info if envelope["method"] == "Shelly.GetDeviceInfo" else {"switch:0": {"output": True}}
        reply = json.dumps({"id": envelope["id"], "src": self.info["id"], "result": result})
        self._inbox.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=reply, extra=None))

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        self.close_code = code
        self._inbox.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.CLOSED, data=None, extra=None))
        return True

    def exception(self):
        return None


class _FakeNetwork:
    """aiohttp.ClientSession stand-in that serves DEVICES by hostname."""

    def __init__(self, devices=None) -> None:
        self.closed = False
        self.devices = dict(DEVICES if devices is None else devices)
        self.sockets: dict[str, _FakeWebSocket] = {}

    async def ws_connect(self, url: str, **kwargs) -> _FakeWebSocket:
        del kwargs
        host = url.split("/")[2]
        info = self.devices.get(host)
        if info is None:
            raise aiohttp.ClientConnectionError("refused")
        ws = self.sockets[host] = _FakeWebSocket(info)
        return ws

    async def close(self) -> None:
        self.closed = True


def _shellies(network: _FakeNetwork, **config) -> tuple[Shellies, list]:
    cfg = ShelliesConfig(
        session=SessionConfig(client_id="test-client", ping_interval_s=0, reconnect_interval_s=0),
        **config,
    )
    shellies = Shellies(cfg, client_session=network)
    events: list = []
    shellies.subscribe(events.append)
    return shellies, events


@pytest.mark.asyncio
async def test_discovered_device_is_identified_hydrated_and_added() -> None:
    network = _FakeNetwork()
    shellies, events = _shellies(network)

    device = await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.5"))

    assert isinstance(device, ShellyPlus1)
    assert device.firmware == "1.0.8"
    assert device["switch:0"].output is True
    assert [e["method"] for e in network.sockets["10.0.0.5"].sent] == ["Shelly.GetDeviceInfo", "Shelly.GetStatus"]
    assert events == [DeviceAdded(device_id="shellyplus1-a8032ab1", device=device)]
    assert shellies.get("shellyplus1-a8032ab1") is device
    assert len(shellies) == 1

    # already known
    assert await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.5")) is None
    assert len(events) == 1

    await shellies.close()


@pytest.mark.asyncio
async def test_excluded_device_is_never_contacted() -> None:
    network = _FakeNetwork()
    shellies, events = _shellies(network, device_options={"shellyplus1-a8032ab1": DeviceOptions(exclude=True)})

    await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.5"))
    await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.5"))

    assert events == [DeviceExcluded(device_id="shellyplus1-a8032ab1")]
    assert network.sockets == {}
    assert "shellyplus1-a8032ab1" not in shellies


@pytest.mark.asyncio
async def test_missing_hostname_is_reported_once() -> None:
    shellies, events = _shellies(_FakeNetwork())

    await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1"))
    await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1"))

    assert len(events) == 1
    assert isinstance(events[0], DeviceError)
    assert isinstance(events[0].error, MissingHostnameError)
    assert str(events[0].error) == (
        "Missing required device identifier(s) (device ID: shellyplus1-a8032ab1, protocol: websocket)"
    )


@pytest.mark.asyncio
async def test_unknown_model_is_reported_and_session_released() -> None:
    network = _FakeNetwork()
    shellies, events = _shellies(network)

    result = await shellies.handle_discovered(DeviceIdentifiers("shellyfuture-0001", "10.0.0.7"))
    await shellies.handle_discovered(DeviceIdentifiers("shellyfuture-0001", "10.0.0.7"))

    assert result is None
    assert events == [UnknownDevice(device_id="shellyfuture-0001", model="SXXX-0000")]
    assert network.sockets["10.0.0.7"].close_code == aiohttp.WSCloseCode.OK
    assert len(shellies) == 0


@pytest.mark.asyncio
async def test_mismatched_device_id_is_an_error() -> None:
    network = _FakeNetwork()
    shellies, events = _shellies(network)

    await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-ffffff", "10.0.0.5"))

    assert len(events) == 1
    assert isinstance(events[0].error, ProtocolError)
    assert "shellyplus1-a8032ab1" in str(events[0].error)
    assert network.sockets["10.0.0.5"].close_code == aiohttp.WSCloseCode.OK


@pytest.mark.asyncio
async def test_malformed_device_info_is_reported_and_session_released() -> None:
    network = _FakeNetwork(
        {"10.0.0.8": {"id": "shellyplus1-0badbeef", "mac": "0BADBEEF", "model": "SNSW-001X16EU", "gen": "beta"}}
    )
    shellies, events = _shellies(network)

    result = await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-0badbeef", "10.0.0.8"))

    assert result is None
    assert len(events) == 1
    assert isinstance(events[0], DeviceError)
    assert isinstance(events[0].error, ValueError)
    assert network.sockets["10.0.0.8"].close_code == aiohttp.WSCloseCode.OK
    assert len(shellies) == 0


@pytest.mark.asyncio
async def test_unreachable_device_is_an_error_and_may_be_retried() -> None:
    network = _FakeNetwork()
    shellies, events = _shellies(network)

    await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.99"))
    await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.5"))

    assert isinstance(events[0], DeviceError)
    assert isinstance(events[0].error, ConnectionFailed)
    assert isinstance(events[1], DeviceAdded)

    await shellies.close()


@pytest.mark.asyncio
async def test_password_comes_from_device_options() -> None:
    shellies, _ = _shellies(
        _FakeNetwork(),
        device_options=lambda device_id: DeviceOptions(password="secret") if device_id.startswith("shellypro") else None,
    )

    pro = await shellies.handle_discovered(DeviceIdentifiers("shellypro4pm-c8f09e", "10.0.0.6"))
    plus = await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.5"))

    assert isinstance(pro, ShellyPro4Pm)
    assert pro.rpc.password == "secret"
    assert plus.rpc.password is None

    await shellies.close()


@pytest.mark.asyncio
async def test_static_discoverer_feeds_the_collection() -> None:
    network = _FakeNetwork()
    shellies, events = _shellies(network)
    discoverer = StaticDiscoverer(
        [
            DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.5"),
            DeviceIdentifiers("shellypro4pm-c8f09e", "10.0.0.6"),
        ]
    )

    await shellies.register_discoverer(discoverer)
    await shellies.wait_idle()

    assert discoverer.running
    assert sorted(d.id for d in shellies) == ["shellyplus1-a8032ab1", "shellypro4pm-c8f09e"]
    assert all(isinstance(e, DeviceAdded) for e in events)

    await shellies.close()

    assert not discoverer.running
    removed = [e.device_id for e in events if isinstance(e, DeviceRemoved)]
    assert sorted(removed) == ["shellyplus1-a8032ab1", "shellypro4pm-c8f09e"]
    assert len(shellies) == 0
    assert all(ws.close_code == aiohttp.WSCloseCode.OK for ws in network.sockets.values())


@pytest.mark.asyncio
async def test_remove_without_destroy_keeps_connection() -> None:
    network = _FakeNetwork()
    shellies, events = _shellies(network)
    device = await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.5"))

    assert await shellies.remove(device.id, destroy=False) is True
    assert await shellies.remove(device.id) is False

    assert events[-1] == DeviceRemoved(device_id=device.id, device=device)
    assert device.connected
    await device.destroy()


@pytest.mark.asyncio
async def test_add_rejects_duplicate_ids() -> None:
    shellies, events = _shellies(_FakeNetwork())
    device = await shellies.handle_discovered(DeviceIdentifiers("shellyplus1-a8032ab1", "10.0.0.5"))

    assert shellies.add(device) is False
    assert len(events) == 1

    await shellies.close()
