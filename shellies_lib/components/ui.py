"""UI settings components; they carry configuration only."""

from __future__ import annotations

from .base import Component


class HtUi(Component):
    TYPE = "HT_UI"


class PlugsUi(Component):
    TYPE = "PLUGS_UI"


class Ui(Component):
    """Screen settings of the Pro 4PM (idle_brightness lives in config)."""

    TYPE = "UI"
