"""asdf command-line adapter (registry + updater)."""

from __future__ import annotations

import logging
import os
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from asdfaccel.errors import (
    AsdfAccelError,
    NetworkError,
    ProcessErrorInfo,
    RegistryUnavailableError,
    TaskTimeoutError,
    map_process_error,
)
from asdfaccel.models import PluginRef, SyncOutcome
from asdfaccel.util.process import CommandRunner, RunResult, sh_join
from asdfaccel.util.time import monotonic

logger = logging.getLogger(__name__)

UP_TO_DATE_REASON = "already up to date"

_NO_PLUGINS_MARKER = "no plugins installed"


@dataclass(frozen=True)
class _RetryPolicy:
    max_retries: int = 2
    initial_delay_sec: float = 1.0


def default_data_dir() -> Path:
    env = os.environ.get("ASDF_DATA_DIR")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".asdf"


class AsdfCli:
    """
    Talks to an installed asdf through its command line.

    Implements both PluginRegistry (list) and PluginUpdater (update).
    """

    def __init__(
        self,
        *,
        asdf_bin: str = "asdf",
        data_dir: Optional[Path] = None,
        max_retries: int = 2,
    ) -> None:
        self._asdf_bin = asdf_bin
        self._data_dir = data_dir if data_dir is not None else default_data_dir()
        self._retry_policy = _RetryPolicy(max_retries=max_retries)
        self._runner = CommandRunner()

    @classmethod
    def from_runner(
        cls,
        runner: CommandRunner,
        *,
        asdf_bin: str = "asdf",
        data_dir: Optional[Path] = None,
        max_retries: int = 2,
        initial_delay_sec: float = 1.0,
    ) -> "AsdfCli":
        """Create an adapter around a pre-built runner (useful for tests)."""
        obj = cls.__new__(cls)
        obj._asdf_bin = asdf_bin
        obj._data_dir = data_dir if data_dir is not None else default_data_dir()
        obj._retry_policy = _RetryPolicy(
            max_retries=max_retries,
            initial_delay_sec=initial_delay_sec,
        )
        obj._runner = runner
        return obj

    # ----------------------------
    # Environment
    # ----------------------------
    def is_installed(self) -> bool:
        if os.path.sep in self._asdf_bin:
            return os.access(self._asdf_bin, os.X_OK)
        return shutil.which(self._asdf_bin) is not None

    def version(self) -> str:
        """
        Return the asdf version string (e.g. "0.14.0-ccdd47d").

        Raises:
            RegistryUnavailableError: if asdf cannot be run.
        """
        result = self._run_asdf(["--version"])
        if not result.ok:
            raise RegistryUnavailableError(
                "asdf --version failed",
                details={"returncode": result.returncode, "stderr": result.stderr.strip()},
            )
        return _parse_version(result.stdout)

    def plugin_dir(self, name: str) -> Path:
        return self._data_dir / "plugins" / name

    # ----------------------------
    # PluginRegistry
    # ----------------------------
    def list(self) -> list[PluginRef]:
        """
        List installed plugins with their URLs and refs when asdf reports them.

        Raises:
            RegistryUnavailableError: asdf is missing or the listing failed.
        """
        result = self._run_asdf(["plugin", "list", "--urls", "--refs"])
        combined = f"{result.stdout}\n{result.stderr}".lower()
        if _NO_PLUGINS_MARKER in combined:
            return []
        if not result.ok:
            raise RegistryUnavailableError(
                "Failed to list asdf plugins",
                details={
                    "returncode": result.returncode,
                    "stderr": result.stderr.strip(),
                },
            )
        return parse_plugin_list(result.stdout)

    # ----------------------------
    # PluginUpdater
    # ----------------------------
    def update(self, plugin: PluginRef, *, timeout: Optional[float] = None) -> SyncOutcome:
        """
        Update one plugin checkout.

        Network failures are retried with exponential backoff inside the
        timeout budget. When HEAD does not move, the plugin is reported as
        skipped ("already up to date").

        Raises:
            AsdfAccelError subclasses classified by map_process_error, or
            TaskTimeoutError when the budget is exhausted.
        """
        deadline = monotonic() + timeout if timeout is not None else None
        before = self._head_commit(plugin.name, deadline)

        argv = ["plugin", "update", plugin.name]
        delay = self._retry_policy.initial_delay_sec
        attempt = 0
        while True:
            result = self._run_asdf(argv, timeout=_remaining(deadline, plugin.name))
            if result.ok:
                break
            error = map_process_error(
                ProcessErrorInfo(
                    returncode=result.returncode,
                    command=sh_join(result.args),
                    stderr=result.stderr,
                    details={"plugin": plugin.name},
                )
            )
            if not isinstance(error, NetworkError) or attempt >= self._retry_policy.max_retries:
                raise error
            attempt += 1
            logger.debug(
                "Retrying %s after network error (attempt %d): %s",
                plugin.name,
                attempt,
                error,
            )
            if deadline is not None and monotonic() + delay >= deadline:
                raise error
            time.sleep(delay)
            delay *= 2

        after = self._head_commit(plugin.name, deadline)
        if before is not None and before == after:
            return SyncOutcome.skipped(UP_TO_DATE_REASON)
        return SyncOutcome.succeeded()

    # ----------------------------
    # Internals
    # ----------------------------
    def _run_asdf(self, args: list[str], *, timeout: Optional[float] = None) -> RunResult:
        argv = [self._asdf_bin, *args]
        try:
            return self._runner.run(argv, timeout=timeout, env=self._asdf_env())
        except FileNotFoundError as exc:
            raise RegistryUnavailableError(
                f"asdf executable not found: {self._asdf_bin}",
                details={"asdf_bin": self._asdf_bin},
                cause=exc,
            ) from exc

    def _asdf_env(self) -> dict[str, str]:
        return {"ASDF_DATA_DIR": str(self._data_dir)}

    def _head_commit(self, name: str, deadline: Optional[float] = None) -> Optional[str]:
        """Commit of the plugin checkout, or None when it is not a git repo."""
        path = self.plugin_dir(name)
        if not (path / ".git").exists():
            return None
        timeout = _remaining(deadline, name)
        try:
            result = self._runner.run(
                ["git", "-C", str(path), "rev-parse", "HEAD"],
                timeout=timeout,
            )
        except (FileNotFoundError, AsdfAccelError) as exc:
            logger.debug("Cannot read HEAD of %s: %s", path, exc)
            return None
        if not result.ok:
            return None
        return result.stdout.strip() or None


def _remaining(deadline: Optional[float], name: str) -> Optional[float]:
    if deadline is None:
        return None
    left = deadline - monotonic()
    if left <= 0:
        raise TaskTimeoutError(f"Timed out syncing {name}", details={"plugin": name})
    return left


def parse_plugin_list(stdout: str) -> list[PluginRef]:
    """
    Parse `asdf plugin list --urls --refs` output.

    Each line is "<name> [<url> [<branch> <commit>]]", whitespace separated.
    """
    plugins: list[PluginRef] = []
    for line in stdout.splitlines():
        parts = line.split()
        if not parts:
            continue
        name = parts[0]
        url = parts[1] if len(parts) >= 2 else None
        ref = parts[-1] if len(parts) >= 4 else None
        plugins.append(PluginRef(name=name, url=url, ref=ref))
    return plugins


def _parse_version(stdout: str) -> str:
    text = stdout.strip()
    for prefix in ("asdf version ", "asdf "):
        if text.lower().startswith(prefix):
            text = text[len(prefix):]
            break
    return text.lstrip("v")
