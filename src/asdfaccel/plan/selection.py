"""Plugin selection from --only / --exclude lists."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from asdfaccel.models import PluginRef


def select_plugins(
    all_plugins: Sequence[PluginRef],
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> list[PluginRef]:
    """
    Compute the plugins a sync run acts on.

    Rules:
        - Empty include keeps every plugin; otherwise only names in include.
        - Names in include that match nothing are ignored.
        - Names in exclude are always removed, even if also in include.
        - Input order is preserved; a repeated name is kept once.
    """
    include_set = frozenset(include)
    exclude_set = frozenset(exclude)

    selected: list[PluginRef] = []
    seen: set[str] = set()
    for plugin in all_plugins:
        if plugin.name in seen:
            continue
        if include_set and plugin.name not in include_set:
            continue
        if plugin.name in exclude_set:
            continue
        seen.add(plugin.name)
        selected.append(plugin)
    return selected


@dataclass(slots=True, frozen=True)
class SyncSelection:
    """Filter criteria for one invocation."""

    include: frozenset[str] = field(default_factory=frozenset)
    exclude: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_lists(
        cls,
        only: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ) -> "SyncSelection":
        """Build from CLI-style lists; blank entries are dropped."""
        return cls(
            include=frozenset(_clean(only)),
            exclude=frozenset(_clean(exclude)),
        )

    def apply(self, all_plugins: Sequence[PluginRef]) -> list[PluginRef]:
        return select_plugins(all_plugins, self.include, self.exclude)

    def unmatched_includes(self, all_plugins: Sequence[PluginRef]) -> list[str]:
        """Names in include that no plugin carries (reported, not an error)."""
        known = {p.name for p in all_plugins}
        return sorted(self.include - known)


def _clean(names: Optional[Iterable[str]]) -> list[str]:
    if not names:
        return []
    return [n.strip() for n in names if isinstance(n, str) and n.strip()]
