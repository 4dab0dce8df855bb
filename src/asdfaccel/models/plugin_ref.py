"""Data model for installed asdf plugins."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True, frozen=True)
class PluginRef:
    """
    Identifies one plugin within a registry snapshot.

    Notes:
        - name is the unique key; url/ref are informational and only present
          when the registry reports them.
    """

    name: str
    url: Optional[str] = None
    ref: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("PluginRef.name must be a non-empty string")
