"""Thin subprocess wrapper shared by the asdf and git adapters."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from asdfaccel.errors import TaskTimeoutError

logger = logging.getLogger(__name__)


def sh_join(args: Sequence[str]) -> str:
    return shlex.join(list(args))


@dataclass(frozen=True)
class RunResult:
    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Run external commands, capturing text output."""

    def run(
        self,
        args: Iterable[str],
        *,
        timeout: Optional[float] = None,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> RunResult:
        """
        Run a command and return its result. Never raises on non-zero exit.

        Raises:
            TaskTimeoutError: if the command outlives timeout (it is killed).
            FileNotFoundError: if the executable does not exist.
        """
        argv = list(args)
        logger.debug("RUN %s", sh_join(argv))

        merged_env = None
        if env is not None:
            merged_env = dict(os.environ)
            merged_env.update(dict(env))

        try:
            cp = subprocess.run(
                argv,
                text=True,
                capture_output=True,
                check=False,
                timeout=timeout,
                cwd=str(cwd) if cwd is not None else None,
                env=merged_env,
            )
        except subprocess.TimeoutExpired as exc:
            raise TaskTimeoutError(
                f"Command timed out after {timeout:g}s: {sh_join(argv)}",
                details={"command": sh_join(argv), "timeout_sec": timeout},
                cause=exc,
            ) from exc

        return RunResult(
            args=argv,
            returncode=cp.returncode,
            stdout=cp.stdout or "",
            stderr=cp.stderr or "",
        )
