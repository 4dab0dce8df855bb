"""PluginSyncManager: registry -> selection -> scheduler orchestration."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from asdfaccel.config import AcceleratorSettings
from asdfaccel.errors import RegistryUnavailableError
from asdfaccel.models import PluginRef, SyncReport
from asdfaccel.plan import SyncSelection
from asdfaccel.registry import AsdfCli, PluginRegistry, PluginUpdater
from asdfaccel.scheduler import JobHandle, SyncScheduler, resolve_parallelism
from asdfaccel.task import SyncTask
from asdfaccel.util.system import cpu_count

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HealthStatus:
    """Snapshot used by the `health` command."""

    asdf_installed: bool
    asdf_version: Optional[str] = None
    plugin_count: Optional[int] = None
    cpu_count: int = 1
    error: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.asdf_installed and self.error is None


class PluginSyncManager:
    """High-level entry point for plugin sync: list -> select -> run."""

    def __init__(self, settings: Optional[AcceleratorSettings] = None) -> None:
        self._settings = settings or AcceleratorSettings()
        cli = AsdfCli(
            asdf_bin=self._settings.asdf_bin,
            data_dir=self._settings.asdf_data_dir,
            max_retries=self._settings.network_retries,
        )
        self._asdf: Optional[AsdfCli] = cli
        self._registry: PluginRegistry = cli
        self._updater: PluginUpdater = cli

    @classmethod
    def from_components(
        cls,
        registry: PluginRegistry,
        updater: PluginUpdater,
        *,
        settings: Optional[AcceleratorSettings] = None,
    ) -> "PluginSyncManager":
        """Create manager with injected collaborators (useful for tests)."""
        obj = cls.__new__(cls)
        obj._settings = settings or AcceleratorSettings()
        obj._asdf = registry if isinstance(registry, AsdfCli) else None
        obj._registry = registry
        obj._updater = updater
        return obj

    @property
    def settings(self) -> AcceleratorSettings:
        return self._settings

    def list_plugins(self) -> list[PluginRef]:
        """
        Read one registry snapshot.

        Raises:
            RegistryUnavailableError: if plugins cannot be enumerated.
        """
        plugins = list(self._registry.list())
        logger.debug("Registry returned %d plugin(s)", len(plugins))
        return plugins

    def select(
        self,
        *,
        only: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ) -> list[PluginRef]:
        """List plugins and apply the only/exclude filter."""
        selection = SyncSelection.from_lists(only, exclude)
        plugins = self.list_plugins()
        for name in selection.unmatched_includes(plugins):
            logger.warning("Ignoring unknown plugin in --only: %s", name)
        return selection.apply(plugins)

    def sync(
        self,
        *,
        only: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
        jobs: Optional[int] = None,
        background: bool = False,
        timeout: Optional[float] = None,
    ) -> SyncReport | JobHandle:
        """
        Sync selected plugins.

        Policy:
            - Pre-flight errors raise: InvalidConcurrencyError (checked before
              the registry is read), RegistryUnavailableError.
            - Per-plugin errors never raise; they are failed outcomes.
            - background=True returns a JobHandle without blocking.
        """
        self.resolve_jobs(jobs)
        selected = self.select(only=only, exclude=exclude)
        return self.run(selected, jobs=jobs, background=background, timeout=timeout)

    def resolve_jobs(self, jobs: Optional[int] = None) -> int:
        """Effective worker count: explicit jobs, else settings, else CPU count."""
        return resolve_parallelism(jobs if jobs is not None else self._settings.jobs)

    def run(
        self,
        selected: list[PluginRef],
        *,
        jobs: Optional[int] = None,
        background: bool = False,
        timeout: Optional[float] = None,
    ) -> SyncReport | JobHandle:
        """Sync an already selected list of plugins."""
        handle = self.start(selected, jobs=jobs, timeout=timeout)
        if background:
            return handle
        return handle.wait()

    def start(
        self,
        selected: list[PluginRef],
        *,
        jobs: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> JobHandle:
        """Start a detached run over an already selected list of plugins."""
        max_parallel = self.resolve_jobs(jobs)
        task = SyncTask(
            self._updater,
            timeout=timeout if timeout is not None else self._settings.task_timeout,
        )
        scheduler = SyncScheduler(task, max_parallel=max_parallel)
        return scheduler.start(selected, max_parallel)

    def health(self) -> HealthStatus:
        """Probe asdf: installed, version, plugin count. Never raises."""
        status = HealthStatus(asdf_installed=True, cpu_count=cpu_count())
        if self._asdf is not None:
            status.asdf_installed = self._asdf.is_installed()
            if not status.asdf_installed:
                return status
            try:
                status.asdf_version = self._asdf.version()
            except RegistryUnavailableError as exc:
                status.error = str(exc)
                return status
        try:
            status.plugin_count = len(self.list_plugins())
        except RegistryUnavailableError as exc:
            status.error = str(exc)
        return status


def write_report(report: SyncReport, path: Path) -> None:
    """Write the report as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2) + "\n", encoding="utf-8")
