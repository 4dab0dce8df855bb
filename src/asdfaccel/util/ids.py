from __future__ import annotations

import uuid


def new_uuid() -> str:
    """Generate a UUID4 string."""
    return str(uuid.uuid4())


def new_run_id() -> str:
    """Generate a short identifier for one sync run (used in logs and handles)."""
    return new_uuid().split("-", 1)[0]
