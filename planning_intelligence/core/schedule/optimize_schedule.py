from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from planning_intelligence.core.graph.build_graph import build_dependency_graph
from planning_intelligence.core.model import LOWEST_PRIORITY, Task
from planning_intelligence.core.scoring import clamp, round_half_up, round_tenths


logger = logging.getLogger(__name__)


HOURS_PER_DAY = 8
REORDER_OUT_DEGREE = 2
MAX_FRONTLOADED = 5
MAX_DEFERRED = 3


@dataclass(frozen=True)
class TimeEstimate:
    hours: float
    days: float


@dataclass(frozen=True)
class ReorderingSuggestion:
    task_id: str
    suggested_position: int
    reason: str


@dataclass(frozen=True)
class ParallelizationOpportunity:
    tasks: list[str]
    savings_minutes: float


@dataclass(frozen=True)
class ScheduleOptimization:
    original_estimate: TimeEstimate
    optimized_estimate: TimeEstimate
    savings: int
    reordering_suggestions: list[ReorderingSuggestion]
    parallelization_opportunities: list[ParallelizationOpportunity]


def optimize_schedule(tasks: Sequence[Task]) -> ScheduleOptimization:
    """Estimate completion time under unlimited parallelism within each depth layer.

    The optimized figure takes the longest task per layer and adds the full
    duration of every cyclic task left without a layer.
    """

    if not tasks:
        zero = TimeEstimate(hours=0, days=0)
        return ScheduleOptimization(
            original_estimate=zero,
            optimized_estimate=zero,
            savings=0,
            reordering_suggestions=[],
            parallelization_opportunities=[],
        )

    graph = build_dependency_graph(tasks)
    by_id: dict[str, Task] = {}
    for t in tasks:
        by_id.setdefault(t.id, t)

    original = sum(t.minutes for t in by_id.values())

    layer_max: dict[int, float] = {}
    unlayered: set[str] = set()
    for node in graph.nodes:
        if node.depth < 0:
            unlayered.add(node.id)
            continue
        layer_max[node.depth] = max(layer_max.get(node.depth, 0), by_id[node.id].minutes)
    optimized = sum(layer_max.values())
    # A cycle member relaxed from a layered predecessor already sits in a layer.
    optimized += sum(by_id[tid].minutes for tid in graph.cycle_nodes if tid in unlayered)

    savings = 0
    if original > 0:
        savings = int(clamp(round_half_up((original - optimized) / original * 100)))

    opportunities: list[ParallelizationOpportunity] = []
    for group in graph.parallel_groups:
        if len(group) < 2:
            continue
        durations = [by_id[tid].minutes for tid in group]
        saved = sum(durations) - max(durations)
        if saved > 0:
            opportunities.append(ParallelizationOpportunity(tasks=list(group), savings_minutes=saved))

    reorder: list[ReorderingSuggestion] = []
    hubs = sorted(
        (n for n in graph.nodes if n.out_degree > REORDER_OUT_DEGREE), key=lambda n: -n.out_degree
    )
    for position, node in enumerate(hubs[:MAX_FRONTLOADED]):
        reorder.append(
            ReorderingSuggestion(
                task_id=node.id,
                suggested_position=position,
                reason=f"Bottleneck: {node.out_degree} tasks depend on this. Complete early.",
            )
        )

    deferrable = [
        n
        for n in graph.nodes
        if n.out_degree == 0 and n.in_degree > 0 and n.priority == LOWEST_PRIORITY
    ]
    for node in deferrable[:MAX_DEFERRED]:
        reorder.append(
            ReorderingSuggestion(
                task_id=node.id,
                suggested_position=len(tasks) - 1,
                reason="Low-priority leaf task can be deferred.",
            )
        )

    logger.debug(
        "schedule: original=%smin optimized=%smin savings=%d%%", original, optimized, savings
    )

    return ScheduleOptimization(
        original_estimate=_estimate(original),
        optimized_estimate=_estimate(optimized),
        savings=savings,
        reordering_suggestions=reorder,
        parallelization_opportunities=opportunities,
    )


def _estimate(minutes: float) -> TimeEstimate:
    hours = minutes / 60
    return TimeEstimate(hours=round_tenths(hours), days=round_tenths(hours / HOURS_PER_DAY))
