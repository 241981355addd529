from __future__ import annotations

from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Optional, Sequence

from planning_intelligence.core.decompose.suggest_decompositions import (
    DecompositionSuggestion,
    suggest_decompositions,
)
from planning_intelligence.core.graph.build_graph import DependencyGraph, build_dependency_graph
from planning_intelligence.core.health.plan_health import PlanHealth, calculate_plan_health
from planning_intelligence.core.model import Task
from planning_intelligence.core.risk.analyze_risks import (
    FactorIdSequence,
    RiskAnalysis,
    analyze_risks,
)
from planning_intelligence.core.schedule.optimize_schedule import (
    ScheduleOptimization,
    optimize_schedule,
)


@dataclass(frozen=True)
class PlanReport:
    task_count: int
    graph: DependencyGraph
    risks: RiskAnalysis
    decompositions: list[DecompositionSuggestion]
    schedule: ScheduleOptimization
    health: PlanHealth


def build_plan_report(
    tasks: Sequence[Task],
    *,
    ids: Optional[FactorIdSequence] = None,
    weights: Optional[dict[str, float]] = None,
) -> PlanReport:
    """Run every analysis over one snapshot."""
    return PlanReport(
        task_count=len(tasks),
        graph=build_dependency_graph(tasks),
        risks=analyze_risks(tasks, ids=ids),
        decompositions=suggest_decompositions(tasks),
        schedule=optimize_schedule(tasks),
        health=calculate_plan_health(tasks, weights=weights),
    )


def to_dict(result: Any) -> Any:
    """Convert a result dataclass (or a list of them) into JSON-ready data."""
    if is_dataclass(result) and not isinstance(result, type):
        return _plain(asdict(result))
    if isinstance(result, (list, tuple)):
        return [to_dict(x) for x in result]
    return _plain(result)


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
