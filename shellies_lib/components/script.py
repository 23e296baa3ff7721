from __future__ import annotations

from typing import Any, Optional

from .base import Component, scalar


class Script(Component):
    """
    Scripting support. Unlike most components the device exposes a single
    ``script`` key and each call names the script it targets.
    """

    TYPE = "Script"
    CHARACTERISTICS = (scalar("running", False),)

    async def _call(self, method: str, **params: Any) -> Any:
        payload = {k: v for k, v in params.items() if v is not None}
        return await self.device.rpc.request(f"{self.TYPE}.{method}", payload or None)

    async def list(self) -> Any:
        return await self._call("List")

    async def create(self, name: Optional[str] = None) -> Any:
        return await self._call("Create", name=name)

    async def delete(self, script_id: int) -> Any:
        return await self._call("Delete", id=script_id)

    async def start(self, script_id: int) -> Any:
        return await self._call("Start", id=script_id)

    async def stop(self, script_id: int) -> Any:
        return await self._call("Stop", id=script_id)

    async def put_code(self, script_id: int, code: str, *, append: bool = False) -> Any:
        return await self._call("PutCode", id=script_id, code=code, append=append)

    async def get_code(self, script_id: int, *, offset: Optional[int] = None, length: Optional[int] = None) -> Any:
        return await self._call("GetCode", id=script_id, offset=offset, len=length)

    async def eval(self, script_id: int, code: str) -> Any:
        return await self._call("Eval", id=script_id, code=code)

    async def get_script_status(self, script_id: int) -> Any:
        return await self._call("GetStatus", id=script_id)

    async def get_script_config(self, script_id: int) -> Any:
        return await self._call("GetConfig", id=script_id)

    async def set_script_config(self, script_id: int, config: dict[str, Any]) -> Any:
        return await self._call("SetConfig", id=script_id, config=config)
