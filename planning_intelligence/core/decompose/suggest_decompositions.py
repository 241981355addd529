from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from planning_intelligence.core.model import LOWEST_PRIORITY, Task


logger = logging.getLogger(__name__)


MAX_SUBTASK_MINUTES = 45
MIN_DESCRIPTION_CHARS = 20
DEFAULT_ESTIMATE_MINUTES = 30
MINUTES_PER_SUBTASK = 30
MIN_SUBTASKS = 2


@dataclass(frozen=True)
class SuggestedSubtask:
    title: str
    estimated_minutes: float
    priority: str


@dataclass(frozen=True)
class DecompositionSuggestion:
    task_id: str
    reason: str
    suggested_subtasks: list[SuggestedSubtask]


@dataclass(frozen=True)
class SubtaskStep:
    prefix: str
    minutes: int
    # Only emitted when the target subtask count exceeds this.
    min_target: int = 0
    demote: bool = False


@dataclass(frozen=True)
class KeywordFamily:
    name: str
    keywords: tuple[str, ...]
    steps: tuple[SubtaskStep, ...]


# Checked in order; the first family with a keyword in the title wins.
KEYWORD_FAMILIES: tuple[KeywordFamily, ...] = (
    KeywordFamily(
        name="create",
        keywords=("create", "implement", "add", "build"),
        steps=(
            SubtaskStep("Design interface/API for", 20),
            SubtaskStep("Implement core logic for", 30),
            SubtaskStep("Write unit tests for", 25),
            SubtaskStep("Add error handling for", 20, min_target=3),
            SubtaskStep("Document", 15, min_target=4, demote=True),
        ),
    ),
    KeywordFamily(
        name="fix",
        keywords=("fix", "debug", "resolve"),
        steps=(
            SubtaskStep("Investigate root cause for", 20),
            SubtaskStep("Implement fix for", 25),
            SubtaskStep("Write regression test for", 20),
        ),
    ),
    KeywordFamily(
        name="refactor",
        keywords=("refactor", "update", "migrate"),
        steps=(
            SubtaskStep("Analyze current code for", 20),
            SubtaskStep("Apply changes for", 30),
            SubtaskStep("Update tests for", 20),
            SubtaskStep("Verify backwards compatibility for", 15, min_target=3),
        ),
    ),
    KeywordFamily(
        name="test",
        keywords=("test", "verify"),
        steps=(
            SubtaskStep("Write happy-path tests for", 25),
            SubtaskStep("Write edge-case tests for", 25),
            SubtaskStep("Write error-handling tests for", 20),
        ),
    ),
)


def suggest_decompositions(tasks: Sequence[Task]) -> list[DecompositionSuggestion]:
    """Return a suggestion for every task that breaks a sizing or quality rule."""
    out: list[DecompositionSuggestion] = []
    for task in tasks:
        reasons = decomposition_reasons(task)
        if not reasons:
            continue
        out.append(
            DecompositionSuggestion(
                task_id=task.id,
                reason="; ".join(reasons),
                suggested_subtasks=generate_subtasks(task),
            )
        )
    logger.debug("decomposition: %d of %d tasks flagged", len(out), len(tasks))
    return out


def decomposition_reasons(task: Task) -> list[str]:
    reasons: list[str] = []
    if task.minutes > MAX_SUBTASK_MINUTES:
        reasons.append(
            f"Estimated {task.minutes:g} minutes exceeds {MAX_SUBTASK_MINUTES}-minute limit"
        )
    if len((task.description or "").strip()) < MIN_DESCRIPTION_CHARS:
        reasons.append(f"Description is too vague (less than {MIN_DESCRIPTION_CHARS} characters)")
    if not (task.acceptance_criteria or "").strip():
        reasons.append("Missing acceptance criteria")
    return reasons


def generate_subtasks(task: Task) -> list[SuggestedSubtask]:
    estimate = task.minutes if task.estimated_minutes is not None else DEFAULT_ESTIMATE_MINUTES
    target = max(MIN_SUBTASKS, math.ceil(estimate / MINUTES_PER_SUBTASK))

    family = match_family(task.title)
    if family is None:
        per_step = math.ceil(estimate / target)
        subtasks = [
            SuggestedSubtask(
                title=f"Step {i} of: {task.title}",
                estimated_minutes=per_step,
                priority=task.priority,
            )
            for i in range(1, target + 1)
        ]
    else:
        subtasks = [
            SuggestedSubtask(
                title=f"{step.prefix}: {task.title}",
                estimated_minutes=step.minutes,
                priority=LOWEST_PRIORITY if step.demote else task.priority,
            )
            for step in family.steps
            if target > step.min_target
        ]

    return [
        SuggestedSubtask(
            title=s.title,
            estimated_minutes=min(s.estimated_minutes, MAX_SUBTASK_MINUTES),
            priority=s.priority,
        )
        for s in subtasks
    ]


def match_family(title: str) -> Optional[KeywordFamily]:
    lowered = (title or "").lower()
    for family in KEYWORD_FAMILIES:
        if any(k in lowered for k in family.keywords):
            return family
    return None
