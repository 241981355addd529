from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import yaml


DEFAULT_HEALTH_WEIGHTS: dict[str, float] = {
    "granularity": 25,
    "acceptance_criteria": 20,
    "priority_balance": 15,
    "dependency_health": 20,
    "description_quality": 10,
    "decomposition_readiness": 10,
}


class WeightsConfigError(ValueError):
    pass


def load_weights_file(path: str | Path) -> dict[str, float]:
    """Load health factor weight overrides from a YAML file.

    Format:
      <factor>: <positive number>

    Factor keys must be one of DEFAULT_HEALTH_WEIGHTS.
    """
    p = Path(path)
    try:
        raw: Any = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise WeightsConfigError(f"weights file is not valid YAML: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise WeightsConfigError("weights file must be a mapping of factor -> number")

    return {_check_key(k): _check_weight(k, v) for k, v in raw.items()}


def merged_weights(overrides: dict[str, float] | None = None) -> dict[str, float]:
    """Defaults with overrides applied; overrides get the same checks as a file."""
    merged = dict(DEFAULT_HEALTH_WEIGHTS)
    for k, v in (overrides or {}).items():
        merged[_check_key(k)] = _check_weight(k, v)
    return merged


def _check_key(key: Any) -> str:
    if not isinstance(key, str) or key.strip() not in DEFAULT_HEALTH_WEIGHTS:
        raise WeightsConfigError(
            f"unknown health factor: {key} (choose from: {', '.join(sorted(DEFAULT_HEALTH_WEIGHTS))})"
        )
    return key.strip()


def _check_weight(key: Any, value: Any) -> float:
    # bool is an int subclass; reject it explicitly.
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or not math.isfinite(value)
        or value <= 0
    ):
        raise WeightsConfigError(f"weight for '{key}' must be a finite positive number")
    return value


def load_and_merge(weights_file: str | None) -> dict[str, float]:
    if not weights_file:
        return merged_weights()
    return merged_weights(load_weights_file(weights_file))
