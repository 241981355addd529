from __future__ import annotations

import math
from typing import Any, Iterable, Optional, cast

from planning_intelligence.core.errors import TaskValidationError
from planning_intelligence.core.model import PRIORITY_TIERS, Task


TEXT_FIELDS: tuple[str, ...] = ("description", "status", "acceptance_criteria")


def parse_tasks(doc: dict[str, Any]) -> tuple[Optional[list[Task]], list[TaskValidationError]]:
    """Turn a loaded snapshot into Task records.

    Returns (tasks, errors). Tasks is None when errors exist. Dangling
    dependency ids are not errors; the engines drop them.
    """

    file = cast(Optional[str], doc.get("__file__"))
    errors: list[TaskValidationError] = []

    raw_tasks = doc.get("tasks")
    if not isinstance(raw_tasks, list):
        errors.append(
            TaskValidationError(
                code="E_REQUIRED_FIELD",
                message="tasks is required and must be an array",
                file=file,
                path="tasks",
            )
        )
        return None, errors

    tasks: list[Task] = []
    seen: set[str] = set()

    for i, raw in enumerate(raw_tasks):
        task_path = f"tasks[{i}]"

        def err(code: str, message: str, field: Optional[str] = None) -> None:
            errors.append(
                TaskValidationError(
                    code=code,
                    message=message,
                    file=file,
                    path=f"{task_path}.{field}" if field else task_path,
                )
            )

        if not isinstance(raw, dict):
            err("E_INVALID_TYPE", "task must be an object")
            continue

        tid = raw.get("id")
        if not isinstance(tid, str) or not tid.strip():
            err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", "id")
            continue

        if tid in seen:
            err("E_DUPLICATE_ID", f"duplicate task id: {tid}", "id")
            continue
        seen.add(tid)

        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            err("E_REQUIRED_FIELD", "title is required and must be a non-empty string", "title")
            continue

        ok = True
        for name in TEXT_FIELDS:
            value = raw.get(name)
            if value is not None and not isinstance(value, str):
                err("E_INVALID_TYPE", f"{name} must be a string", name)
                ok = False

        priority = raw.get("priority")
        if priority is None:
            priority = "P2"
        elif priority not in PRIORITY_TIERS:
            err("E_INVALID_ENUM", f"priority must be one of {list(PRIORITY_TIERS)}", "priority")
            ok = False

        minutes = raw.get("estimated_minutes")
        if minutes is not None:
            if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
                err("E_INVALID_TYPE", "estimated_minutes must be a number", "estimated_minutes")
                ok = False
            elif not math.isfinite(minutes) or minutes < 0:
                err("E_INVALID_VALUE", "estimated_minutes must be a finite number >= 0", "estimated_minutes")
                ok = False

        deps = raw.get("dependencies")
        if deps is None:
            deps = []
        elif not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
            err("E_INVALID_TYPE", "dependencies must be an array of strings", "dependencies")
            ok = False

        if not ok:
            continue

        tasks.append(
            Task(
                id=tid,
                title=title,
                description=raw.get("description") or "",
                status=raw.get("status") or "not_started",
                priority=cast(str, priority),
                estimated_minutes=cast(Optional[float], minutes),
                acceptance_criteria=raw.get("acceptance_criteria") or "",
                dependencies=tuple(cast(list[str], deps)),
            )
        )

    if errors:
        return None, _sorted(errors)
    return tasks, []


def _sorted(errors: Iterable[TaskValidationError]) -> list[TaskValidationError]:
    return sorted(errors, key=TaskValidationError.sort_key)
