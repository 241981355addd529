from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from planning_intelligence.core.graph.build_graph import build_dependency_graph
from planning_intelligence.core.health.weights_config import merged_weights
from planning_intelligence.core.model import PRIORITY_TIERS, Task
from planning_intelligence.core.scoring import clamp, round_half_up


logger = logging.getLogger(__name__)


Grade = Literal["A", "B", "C", "D", "F"]

# Ideal share per priority tier, P1/P2/P3.
IDEAL_PRIORITY_SPLIT: tuple[float, ...] = (0.3, 0.4, 0.3)
GOOD_DESCRIPTION_CHARS = 50


@dataclass(frozen=True)
class HealthFactor:
    name: str
    score: int
    weight: float
    details: str


@dataclass(frozen=True)
class PlanHealth:
    score: int
    grade: Grade
    factors: list[HealthFactor]


def calculate_plan_health(
    tasks: Sequence[Task], *, weights: Optional[dict[str, float]] = None
) -> PlanHealth:
    """Score plan quality over six weighted dimensions.

    ``weights`` overrides DEFAULT_HEALTH_WEIGHTS per factor key; the final
    score is the mean over the weights actually attached to the factors.
    Bad overrides raise WeightsConfigError before any scoring happens.
    """

    w = merged_weights(weights)
    if not tasks:
        return PlanHealth(
            score=0,
            grade="F",
            factors=[HealthFactor(name="No tasks", score=0, weight=1, details="Plan has no tasks.")],
        )

    total = len(tasks)
    factors: list[HealthFactor] = []

    # Task granularity
    in_range = sum(1 for t in tasks if 15 <= t.minutes <= 45)
    over_45 = sum(1 for t in tasks if t.minutes > 45)
    over_120 = sum(1 for t in tasks if t.minutes > 120)
    granularity = clamp(in_range / total * 100 - over_120 * 10)
    factors.append(
        HealthFactor(
            name="Task Granularity",
            score=round_half_up(granularity),
            weight=w["granularity"],
            details=f"{in_range}/{total} in 15-45 min. {over_45} oversized. {over_120} exceed 2h.",
        )
    )

    # Acceptance criteria coverage
    with_criteria = sum(1 for t in tasks if (t.acceptance_criteria or "").strip())
    factors.append(
        HealthFactor(
            name="Acceptance Criteria Coverage",
            score=round_half_up(with_criteria / total * 100),
            weight=w["acceptance_criteria"],
            details=f"{with_criteria}/{total} have criteria.",
        )
    )

    # Priority balance
    counts = [sum(1 for t in tasks if t.priority == tier) for tier in PRIORITY_TIERS]
    deviation = sum(abs(c / total - ideal) for c, ideal in zip(counts, IDEAL_PRIORITY_SPLIT)) / len(
        IDEAL_PRIORITY_SPLIT
    )
    distinct = len({t.priority for t in tasks})
    balance = max(0.0, (1 - deviation * 3) * 100)
    if distinct == 1:
        balance = max(0.0, balance - 30)
    factors.append(
        HealthFactor(
            name="Priority Balance",
            score=round_half_up(balance),
            weight=w["priority_balance"],
            details=f"P1:{counts[0]} P2:{counts[1]} P3:{counts[2]}. {distinct} distinct.",
        )
    )

    # Dependency health
    graph = build_dependency_graph(tasks)
    dep_score = 100.0
    if graph.has_cycles:
        dep_score -= 50
    if graph.max_depth > 5:
        dep_score -= 30
    elif graph.max_depth > 3:
        dep_score -= 15
    avg_in = sum(n.in_degree for n in graph.nodes) / max(len(graph.nodes), 1)
    if avg_in > 2:
        dep_score -= min(20, (avg_in - 2) * 10)
    dep_score = max(0.0, dep_score)
    factors.append(
        HealthFactor(
            name="Dependency Health",
            score=round_half_up(dep_score),
            weight=w["dependency_health"],
            details=(
                f"Depth:{graph.max_depth}. Cycles:{'YES' if graph.has_cycles else 'No'}. "
                f"AvgIn:{avg_in:.1f}."
            ),
        )
    )

    # Description quality
    lengths = [len((t.description or "").strip()) for t in tasks]
    avg_len = sum(lengths) / total
    good = sum(1 for n in lengths if n >= GOOD_DESCRIPTION_CHARS)
    quality = clamp(
        min(100, avg_len / GOOD_DESCRIPTION_CHARS * 100 * 0.5 + good / total * 100 * 0.5)
    )
    factors.append(
        HealthFactor(
            name="Description Quality",
            score=round_half_up(quality),
            weight=w["description_quality"],
            details=f"Avg:{round_half_up(avg_len)} chars. {good}/{total}>={GOOD_DESCRIPTION_CHARS}.",
        )
    )

    # Decomposition readiness
    over_60 = sum(1 for t in tasks if t.minutes > 60)
    readiness = max(0, 100 - over_120 * 25 - over_60 * 10)
    factors.append(
        HealthFactor(
            name="Decomposition Readiness",
            score=round_half_up(readiness),
            weight=w["decomposition_readiness"],
            details=f"{over_120} exceed 2h. {over_60} exceed 1h.",
        )
    )

    total_weight = sum(f.weight for f in factors)
    weighted = sum(f.score * f.weight for f in factors) / total_weight
    score = round_half_up(clamp(weighted))

    logger.debug("plan health: score=%d factors=%s", score, {f.name: f.score for f in factors})

    return PlanHealth(score=score, grade=grade_for(score), factors=factors)


def grade_for(score: int) -> Grade:
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"
