from .ids import new_run_id, new_uuid
from .process import CommandRunner, RunResult, sh_join
from .system import cpu_count, default_parallelism
from .time import monotonic, normalize_dt, now_utc, to_rfc3339

__all__ = [
    "new_uuid",
    "new_run_id",
    "CommandRunner",
    "RunResult",
    "sh_join",
    "cpu_count",
    "default_parallelism",
    "now_utc",
    "monotonic",
    "normalize_dt",
    "to_rfc3339",
]
