from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Literal, Optional


TaskPriority = Literal["P1", "P2", "P3"]

# Highest tier first.
PRIORITY_TIERS: tuple[str, ...] = ("P1", "P2", "P3")
HIGHEST_PRIORITY: TaskPriority = "P1"
LOWEST_PRIORITY: TaskPriority = "P3"

TASK_STATUSES: tuple[str, ...] = (
    "not_started",
    "in_progress",
    "blocked",
    "pending_verification",
    "verified",
    "needs_recheck",
    "failed",
    "decomposed",
)


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    description: str = ""
    status: str = "not_started"
    priority: str = "P2"
    estimated_minutes: Optional[float] = None
    acceptance_criteria: str = ""
    dependencies: tuple[str, ...] = field(default_factory=tuple)

    @property
    def minutes(self) -> float:
        """Estimate with a missing or non-finite value treated as zero."""
        if self.estimated_minutes is None or not math.isfinite(self.estimated_minutes):
            return 0
        return self.estimated_minutes
