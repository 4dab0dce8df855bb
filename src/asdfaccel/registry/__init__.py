"""Collaborator interfaces and the asdf adapter."""

from __future__ import annotations

from .asdf_cli import UP_TO_DATE_REASON, AsdfCli, parse_plugin_list
from .base import PluginRegistry, PluginUpdater

__all__ = [
    "PluginRegistry",
    "PluginUpdater",
    "AsdfCli",
    "UP_TO_DATE_REASON",
    "parse_plugin_list",
]
