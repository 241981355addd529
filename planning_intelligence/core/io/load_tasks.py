from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from planning_intelligence.core.errors import TaskLoadError


def load_tasks(path: str) -> dict[str, Any]:
    """Load a YAML/JSON task snapshot.

    Returns a dict with keys: tasks, optional plan_id and name.
    Does not coerce types; the validator owns shape checking.
    """

    p = Path(path)
    if not p.exists():
        raise TaskLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:  # pragma: no cover
        raise TaskLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    if suffix not in {".yaml", ".yml", ".json"}:
        raise TaskLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message="supported formats are .yaml/.yml and .json",
            file=str(p),
        )

    try:
        if suffix == ".json":
            data = json.loads(raw_text)
        else:
            data = yaml.safe_load(raw_text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        code = "E_JSON_PARSE" if suffix == ".json" else "E_YAML_PARSE"
        raise TaskLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise TaskLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )

    normalized: dict[str, Any] = {"tasks": data.get("tasks")}
    for key in ("plan_id", "name"):
        if key in data:
            normalized[key] = data.get(key)

    normalized["__file__"] = str(p)
    return normalized
