"""
shellies_lib/services.py

Device-wide RPC namespaces that are not components: Shelly.*, KVS.*,
Schedule.*, Webhook.* and HTTP.*.
These are thin forwarders; they hold no state.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .auth import AUTH_USERNAME, build_ha1
from .rpc import RpcClient


class Service:
    NAMESPACE = ""

    def __init__(self, rpc: RpcClient) -> None:
        self._rpc = rpc

    async def rpc(self, method: str, **params: Any) -> Any:
        payload = {k: v for k, v in params.items() if v is not None}
        return await self._rpc.request(f"{self.NAMESPACE}.{method}", payload or None)


class ShellyService(Service):
    NAMESPACE = "Shelly"

    def __init__(self, rpc: RpcClient, device_id: Optional[str] = None) -> None:
        super().__init__(rpc)
        self.device_id = device_id

    async def get_status(self) -> Mapping[str, Any]:
        return await self.rpc("GetStatus")

    async def get_config(self) -> Mapping[str, Any]:
        return await self.rpc("GetConfig")

    async def list_methods(self) -> Mapping[str, Any]:
        return await self.rpc("ListMethods")

    async def get_device_info(self) -> Mapping[str, Any]:
        return await self.rpc("GetDeviceInfo")

    async def list_profiles(self) -> Mapping[str, Any]:
        return await self.rpc("ListProfiles")

    async def set_profile(self, name: str) -> Mapping[str, Any]:
        return await self.rpc("SetProfile", name=name)

    async def list_timezones(self) -> Mapping[str, Any]:
        return await self.rpc("ListTimezones")

    async def detect_location(self) -> Mapping[str, Any]:
        return await self.rpc("DetectLocation")

    async def check_for_update(self) -> Mapping[str, Any]:
        return await self.rpc("CheckForUpdate")

    async def update(self, stage: Optional[str] = None, *, url: Optional[str] = None) -> Any:
        """Install a firmware update; ``stage`` is "stable" or "beta"."""
        return await self.rpc("Update", stage=stage, url=url)

    async def factory_reset(self) -> Any:
        return await self.rpc("FactoryReset")

    async def reset_wifi_config(self) -> Any:
        return await self.rpc("ResetWiFiConfig")

    async def reboot(self, delay_ms: Optional[int] = None) -> Any:
        return await self.rpc("Reboot", delay_ms=delay_ms)

    async def set_auth(self, password: Optional[str]) -> Any:
        """Enable authentication with ``password``, or disable it with None."""
        if not self.device_id:
            raise ValueError("set_auth requires the device id (used as the realm)")
        ha1 = build_ha1(self.device_id, password) if password else None
        return await self._rpc.request(
            f"{self.NAMESPACE}.SetAuth",
            {"user": AUTH_USERNAME, "realm": self.device_id, "ha1": ha1},
        )

    async def put_user_ca(self, data: Optional[str], *, append: bool = False) -> Any:
        return await self._rpc.request(f"{self.NAMESPACE}.PutUserCA", {"data": data, "append": append})


class KvsService(Service):
    """Key-value store."""

    NAMESPACE = "KVS"

    async def set(self, key: str, value: Any, *, etag: Optional[str] = None) -> Mapping[str, Any]:
        params: dict[str, Any] = {"key": key, "value": value}
        if etag is not None:
            params["etag"] = etag
        return await self._rpc.request(f"{self.NAMESPACE}.Set", params)

    async def get(self, key: str) -> Mapping[str, Any]:
        return await self.rpc("Get", key=key)

    async def get_many(self, match: Optional[str] = None) -> Mapping[str, Any]:
        return await self.rpc("GetMany", match=match)

    async def list(self, match: Optional[str] = None) -> Mapping[str, Any]:
        return await self.rpc("List", match=match)

    async def delete(self, key: str, *, etag: Optional[str] = None) -> Mapping[str, Any]:
        return await self.rpc("Delete", key=key, etag=etag)


class ScheduleService(Service):
    """Jobs that run RPC calls at fixed times or intervals."""

    NAMESPACE = "Schedule"

    async def list(self) -> Mapping[str, Any]:
        return await self.rpc("List")

    async def create(self, job: Mapping[str, Any]) -> Mapping[str, Any]:
        """``job`` holds enable, timespec and calls; the device assigns the id."""
        return await self._rpc.request(f"{self.NAMESPACE}.Create", dict(job))

    async def update(self, job: Mapping[str, Any]) -> Mapping[str, Any]:
        """``job`` must carry the id of the job to change."""
        return await self._rpc.request(f"{self.NAMESPACE}.Update", dict(job))

    async def delete(self, job_id: int) -> Mapping[str, Any]:
        return await self.rpc("Delete", id=job_id)

    async def delete_all(self) -> Any:
        return await self.rpc("DeleteAll")


class WebhookService(Service):
    """HTTP requests sent by the device when events fire."""

    NAMESPACE = "Webhook"

    async def list_supported(self) -> Mapping[str, Any]:
        return await self.rpc("ListSupported")

    async def list(self) -> Mapping[str, Any]:
        return await self.rpc("List")

    async def create(self, hook: Mapping[str, Any]) -> Mapping[str, Any]:
        return await self._rpc.request(f"{self.NAMESPACE}.Create", dict(hook))

    async def update(self, hook: Mapping[str, Any]) -> Mapping[str, Any]:
        return await self._rpc.request(f"{self.NAMESPACE}.Update", dict(hook))

    async def delete(self, hook_id: int) -> Mapping[str, Any]:
        return await self.rpc("Delete", id=hook_id)

    async def delete_all(self) -> Mapping[str, Any]:
        return await self.rpc("DeleteAll")


class HttpService(Service):
    """HTTP requests sent from the device itself."""

    NAMESPACE = "HTTP"

    async def get(
        self,
        url: str,
        *,
        timeout: Optional[int] = None,
        ssl_ca: Optional[str] = None,
    ) -> Mapping[str, Any]:
        return await self.rpc("GET", url=url, timeout=timeout, ssl_ca=ssl_ca)

    async def post(
        self,
        url: str,
        body: str,
        *,
        content_type: str = "application/json",
        timeout: Optional[int] = None,
        ssl_ca: Optional[str] = None,
    ) -> Mapping[str, Any]:
        return await self.rpc(
            "POST", url=url, body=body, content_type=content_type, timeout=timeout, ssl_ca=ssl_ca
        )
