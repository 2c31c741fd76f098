"""
Refresh outcome tracking for LifeOS.

Store failures are logged and degraded locally (callers get an empty
collection or zeroed aggregate). ``DegradationLog`` remembers each of those
local degrades so the orchestrator can report whether a refresh was a clean
success, a partial result computed on incomplete data, or a failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class RefreshStatus(StrEnum):
    """Outcome of one refresh cycle."""

    SUCCESS = "success"  # every read and write went through
    PARTIAL = "partial"  # snapshot computed, but some reads/writes degraded
    FAILED = "failed"    # no snapshot could be computed


@dataclass(frozen=True)
class Degradation:
    """One locally-handled failure."""

    component: str
    operation: str
    error: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __str__(self) -> str:
        return f"{self.component}.{self.operation}: {self.error}"


class DegradationLog:
    """Collects degradations between two ``drain()`` calls."""

    def __init__(self) -> None:
        self._entries: list[Degradation] = []

    def record(self, component: str, operation: str, error: BaseException | str) -> None:
        """Remember a failure that was handled by degrading."""
        self._entries.append(Degradation(component, operation, str(error)))

    @property
    def entries(self) -> list[Degradation]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def drain(self) -> list[Degradation]:
        """Return and clear everything recorded so far."""
        entries, self._entries = self._entries, []
        return entries
