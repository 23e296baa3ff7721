"""Client library for Shelly Gen2+ devices over JSON-RPC/WebSocket."""

from .auth import AuthChallenge, create_auth_response
from .client import Shellies
from .components import (
    Component,
    Cover,
    Input,
    Light,
    Switch,
    Sys,
    WiFi,
)
from .devices import Device, DeviceRegistry, create_default_registry
from .discovery import DeviceDiscoverer, StaticDiscoverer
from .errors import (
    AuthError,
    AuthProtocolError,
    ConnectionClosed,
    ConnectionFailed,
    InvalidPasswordError,
    RequestTimeout,
    RpcError,
    SendFailed,
    ShelliesError,
    UnauthorizedError,
)
from .rpc import RpcClient
from .session import SessionState, WebSocketSession
from .types import (
    DeviceIdentifiers,
    DeviceIdentity,
    DeviceOptions,
    SessionConfig,
    ShelliesConfig,
)

__all__ = [
    "AuthChallenge",
    "AuthError",
    "AuthProtocolError",
    "Component",
    "ConnectionClosed",
    "ConnectionFailed",
    "Cover",
    "Device",
    "DeviceDiscoverer",
    "DeviceIdentifiers",
    "DeviceIdentity",
    "DeviceOptions",
    "DeviceRegistry",
    "Input",
    "InvalidPasswordError",
    "Light",
    "RequestTimeout",
    "RpcClient",
    "RpcError",
    "SendFailed",
    "SessionConfig",
    "SessionState",
    "Shellies",
    "ShelliesConfig",
    "ShelliesError",
    "StaticDiscoverer",
    "Switch",
    "Sys",
    "UnauthorizedError",
    "WebSocketSession",
    "WiFi",
    "create_auth_response",
    "create_default_registry",
]
