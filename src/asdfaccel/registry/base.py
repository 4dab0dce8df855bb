from __future__ import annotations

from typing import Optional, Protocol

from asdfaccel.models import PluginRef, SyncOutcome


class PluginRegistry(Protocol):
    """
    Enumerates installed plugins.

    list() must raise RegistryUnavailableError when the underlying tool is
    missing or cannot be queried.
    """

    def list(self) -> list[PluginRef]: ...


class PluginUpdater(Protocol):
    """
    Brings one plugin's local definition up to date with its upstream.

    Returns succeeded, skipped("already up to date") for no-ops, or raises an
    AsdfAccelError describing the failure. SyncTask converts raised errors to
    failed outcomes.
    """

    def update(self, plugin: PluginRef, *, timeout: Optional[float] = None) -> SyncOutcome: ...
