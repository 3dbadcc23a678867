from __future__ import annotations

from typing import Dict, Iterable, Iterator, Tuple

from mediaintake.specs.common.enums import EntryState, PlatformId
from mediaintake.specs.common.errors import InvalidTransitionError
from mediaintake.specs.models.domain import ABSENT, PENDING, Artifact, RegistryEntry

# Entries only move forward: absent -> pending -> resolved, or absent -> resolved
_FORWARD = {
    EntryState.ABSENT: {EntryState.PENDING, EntryState.RESOLVED},
    EntryState.PENDING: {EntryState.RESOLVED},
    EntryState.RESOLVED: set(),
}


class OutputRegistry:
    """Platform -> artifact mapping read by presentation layers.

    Keys are fixed at construction from the platform configuration; the
    server response never adds keys. Only the orchestrator writes to it.
    """

    def __init__(self, platforms: Iterable[PlatformId]) -> None:
        self._platforms: Tuple[PlatformId, ...] = tuple(PlatformId(p) for p in platforms)
        if not self._platforms:
            raise ValueError("OutputRegistry requires at least one platform")
        self._entries: Dict[PlatformId, RegistryEntry] = {p: ABSENT for p in self._platforms}

    @property
    def platforms(self) -> Tuple[PlatformId, ...]:
        return self._platforms

    def get(self, platform: PlatformId) -> RegistryEntry:
        return self._entries[PlatformId(platform)]

    def replace(self, platform: PlatformId, entry: RegistryEntry) -> None:
        platform = PlatformId(platform)
        if platform not in self._entries:
            raise KeyError(f"Platform not configured: {platform.value}")
        current = self._entries[platform]
        if entry.state not in _FORWARD[current.state]:
            raise InvalidTransitionError(
                f"Cannot move {platform.value} from {current.state.value} to {entry.state.value}",
                details={"platform": platform.value, "from": current.state.value, "to": entry.state.value},
            )
        self._entries[platform] = entry

    def mark_pending(self, platform: PlatformId) -> None:
        self.replace(platform, PENDING)

    def resolve(self, platform: PlatformId, artifact: Artifact) -> None:
        self.replace(platform, RegistryEntry.resolved(artifact))

    def reset(self) -> None:
        self._entries = {p: ABSENT for p in self._platforms}

    def snapshot(self) -> Dict[PlatformId, RegistryEntry]:
        return dict(self._entries)

    def is_empty(self) -> bool:
        return all(entry.state is EntryState.ABSENT for entry in self._entries.values())

    def __iter__(self) -> Iterator[PlatformId]:
        return iter(self._platforms)

    def __contains__(self, platform: object) -> bool:
        return platform in self._entries


__all__ = ["OutputRegistry"]
