from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from planning_intelligence.core.graph.build_graph import build_dependency_graph
from planning_intelligence.core.model import HIGHEST_PRIORITY, Task
from planning_intelligence.core.scoring import clamp, round_half_up


logger = logging.getLogger(__name__)


RiskCategory = Literal["technical", "resource", "schedule", "scope", "external"]
Severity = Literal["low", "medium", "high", "critical"]
OverallRisk = Severity

SEVERITY_WEIGHTS: dict[str, int] = {"low": 1, "medium": 2, "high": 3, "critical": 4}

# Rule thresholds. Downstream consumers pin severity transitions at these
# exact boundaries.
LARGE_PLAN_TASKS = 50
MODERATE_PLAN_TASKS = 30
P1_RATIO_HIGH = 0.7
P1_RATIO_MEDIUM = 0.5
MIN_DESCRIPTION_CHARS = 20
MAX_TASK_MINUTES = 45
HUGE_TASK_MINUTES = 120
DEEP_CHAIN_DEPTH = 3
CRITICAL_CHAIN_DEPTH = 5
BOTTLENECK_OUT_DEGREE = 3
SEVERE_BOTTLENECK_OUT_DEGREE = 5
HIGH_EFFORT_HOURS = 80
CRITICAL_EFFORT_HOURS = 160
TOP_BOTTLENECKS = 5

HEALTHY_RECOMMENDATION = "Plan looks healthy. Proceed with execution."
EMPTY_RECOMMENDATION = "No tasks to analyze. Create tasks first."


class FactorIdSequence:
    """Issues traceability ids for risk factors ("risk-1", "risk-2", ...).

    Ids carry no meaning beyond a single report; pass a fresh sequence for
    reproducible output.
    """

    def __init__(self, prefix: str = "risk") -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)

    def next_id(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"

    def reset(self) -> None:
        self._counter = itertools.count(1)


_default_ids = FactorIdSequence()


def reset_factor_ids() -> None:
    """Reset the shared id sequence. Intended for test harnesses."""
    _default_ids.reset()


@dataclass(frozen=True)
class RiskFactor:
    id: str
    category: RiskCategory
    severity: Severity
    probability: float
    impact: float
    risk_score: float
    title: str
    description: str
    mitigation: str
    affected_tasks: list[str]


@dataclass(frozen=True)
class Bottleneck:
    task_id: str
    dependent_count: int
    blocking_risk: float


@dataclass(frozen=True)
class RiskAnalysis:
    overall_risk: OverallRisk
    risk_score: int
    factors: list[RiskFactor]
    recommendations: list[str]
    critical_path: list[str]
    bottlenecks: list[Bottleneck]


def analyze_risks(tasks: Sequence[Task], *, ids: Optional[FactorIdSequence] = None) -> RiskAnalysis:
    """Scan a task snapshot for known risk patterns.

    Each rule fires independently and contributes one factor (bottlenecks
    contribute one per node). The aggregate score normalizes the summed factor
    scores against the all-critical ceiling for the same number of factors.
    """

    if not tasks:
        return RiskAnalysis(
            overall_risk="low",
            risk_score=0,
            factors=[],
            recommendations=[EMPTY_RECOMMENDATION],
            critical_path=[],
            bottlenecks=[],
        )

    seq = ids if ids is not None else _default_ids
    graph = build_dependency_graph(tasks)
    total = len(tasks)
    all_ids = [t.id for t in tasks]

    factors: list[RiskFactor] = []

    def add(
        category: RiskCategory,
        severity: Severity,
        probability: float,
        impact: float,
        title: str,
        description: str,
        mitigation: str,
        affected: list[str],
    ) -> None:
        factors.append(
            RiskFactor(
                id=seq.next_id(),
                category=category,
                severity=severity,
                probability=probability,
                impact=impact,
                risk_score=probability * impact * SEVERITY_WEIGHTS[severity],
                title=title,
                description=description,
                mitigation=mitigation,
                affected_tasks=affected,
            )
        )

    # Plan scope
    if total > LARGE_PLAN_TASKS:
        add(
            "scope",
            "high",
            0.7,
            0.6,
            "Large plan scope",
            f"Plan has {total} tasks, which increases coordination overhead.",
            "Consider breaking the plan into phases of 20-30 tasks each.",
            list(all_ids),
        )
    elif total > MODERATE_PLAN_TASKS:
        add(
            "scope",
            "medium",
            0.4,
            0.4,
            "Moderate plan scope",
            f"Plan has {total} tasks. Monitor for scope growth.",
            "Review and prune low-priority tasks regularly.",
            list(all_ids),
        )

    # Priority concentration
    p1 = [t.id for t in tasks if t.priority == HIGHEST_PRIORITY]
    p1_ratio = len(p1) / total
    if p1_ratio > P1_RATIO_HIGH:
        add(
            "resource",
            "high",
            0.8,
            0.7,
            "Excessive P1 concentration",
            f"{round_half_up(p1_ratio * 100)}% of tasks are P1. When everything is critical, nothing is.",
            "Re-prioritize: only truly blocking tasks should be P1.",
            p1,
        )
    elif p1_ratio > P1_RATIO_MEDIUM:
        add(
            "resource",
            "medium",
            0.5,
            0.5,
            "High P1 concentration",
            f"{round_half_up(p1_ratio * 100)}% of tasks are P1.",
            "Review P1 tasks and downgrade those that are not truly blocking.",
            p1,
        )

    # Acceptance criteria
    missing_criteria = [t.id for t in tasks if not (t.acceptance_criteria or "").strip()]
    if missing_criteria:
        ratio = len(missing_criteria) / total
        add(
            "scope",
            _ratio_severity(ratio),
            0.6 + ratio * 0.3,
            0.5 + ratio * 0.3,
            "Missing acceptance criteria",
            f"{len(missing_criteria)} of {total} tasks have no acceptance criteria.",
            "Add clear, binary acceptance criteria to every task.",
            missing_criteria,
        )

    # Descriptions
    vague = [t.id for t in tasks if len((t.description or "").strip()) < MIN_DESCRIPTION_CHARS]
    if vague:
        ratio = len(vague) / total
        add(
            "scope",
            _ratio_severity(ratio),
            0.5 + ratio * 0.3,
            0.4 + ratio * 0.3,
            "Vague task descriptions",
            f"{len(vague)} of {total} tasks have descriptions shorter than {MIN_DESCRIPTION_CHARS} characters.",
            "Expand descriptions to include what, why, and context.",
            vague,
        )

    # Task size
    oversized = [t for t in tasks if t.minutes > MAX_TASK_MINUTES]
    if oversized:
        severity: Severity = "high" if any(t.minutes > HUGE_TASK_MINUTES for t in oversized) else "medium"
        add(
            "schedule",
            severity,
            0.7,
            0.6,
            "Oversized tasks detected",
            f"{len(oversized)} tasks exceed {MAX_TASK_MINUTES} minutes.",
            "Decompose tasks >45 min into 15-45 min subtasks.",
            [t.id for t in oversized],
        )

    # Chain depth
    if graph.max_depth > DEEP_CHAIN_DEPTH:
        severity = "critical" if graph.max_depth > CRITICAL_CHAIN_DEPTH else "high"
        add(
            "schedule",
            severity,
            0.6,
            0.8,
            "Deep dependency chains",
            f"Maximum dependency depth is {graph.max_depth}.",
            "Flatten the dependency graph.",
            [n.id for n in graph.nodes if n.depth > DEEP_CHAIN_DEPTH],
        )

    # Cycles
    if graph.has_cycles:
        add(
            "technical",
            "critical",
            1.0,
            1.0,
            "Circular dependencies detected",
            f"{len(graph.cycle_nodes)} tasks are involved in dependency cycles.",
            "Break the cycles by removing or reversing at least one dependency.",
            list(graph.cycle_nodes),
        )

    # Bottlenecks
    bottleneck_nodes = [n for n in graph.nodes if n.out_degree > BOTTLENECK_OUT_DEGREE]
    for node in bottleneck_nodes:
        severity = "high" if node.out_degree > SEVERE_BOTTLENECK_OUT_DEGREE else "medium"
        add(
            "schedule",
            severity,
            0.5,
            0.3 + node.out_degree / total,
            f'Bottleneck: "{node.title}"',
            f'Task "{node.title}" has {node.out_degree} tasks depending on it.',
            f'Prioritize "{node.title}" for early completion.',
            [node.id],
        )

    # Total effort
    total_hours = sum(t.minutes for t in tasks) / 60
    if total_hours > HIGH_EFFORT_HOURS:
        severity = "critical" if total_hours > CRITICAL_EFFORT_HOURS else "high"
        add(
            "schedule",
            severity,
            0.6,
            0.7,
            "High total effort estimate",
            f"Plan totals {total_hours:.1f} hours of work.",
            "Break the plan into incremental milestones.",
            list(all_ids),
        )

    raw = sum(f.risk_score for f in factors)
    ceiling = max(len(factors) * SEVERITY_WEIGHTS["critical"], 1)
    score = int(clamp(round_half_up(raw / ceiling * 100)))

    ranked = sorted((n for n in graph.nodes if n.out_degree > 0), key=lambda n: -n.out_degree)
    bottlenecks = [
        Bottleneck(task_id=n.id, dependent_count=n.out_degree, blocking_risk=n.out_degree / total)
        for n in ranked[:TOP_BOTTLENECKS]
    ]

    recommendations: list[str] = []
    if graph.has_cycles:
        recommendations.append("CRITICAL: Resolve dependency cycles before starting any work.")
    if missing_criteria:
        recommendations.append(f"Add acceptance criteria to {len(missing_criteria)} tasks.")
    if oversized:
        recommendations.append(f"Decompose {len(oversized)} oversized tasks (>45 min).")
    if p1_ratio > P1_RATIO_MEDIUM:
        recommendations.append("Re-prioritize tasks: too many P1 tasks dilute focus.")
    if graph.max_depth > DEEP_CHAIN_DEPTH:
        recommendations.append("Flatten dependency chains to reduce cascading delay risk.")
    if bottleneck_nodes:
        recommendations.append("Prioritize bottleneck tasks for early completion.")
    if not recommendations:
        recommendations.append(HEALTHY_RECOMMENDATION)

    logger.debug(
        "risk analysis: factors=%d score=%d rules=%s",
        len(factors),
        score,
        [f.title for f in factors],
    )

    return RiskAnalysis(
        overall_risk=_overall(score),
        risk_score=score,
        factors=factors,
        recommendations=recommendations,
        critical_path=list(graph.critical_path),
        bottlenecks=bottlenecks,
    )


def _ratio_severity(ratio: float) -> Severity:
    if ratio > 0.5:
        return "high"
    if ratio > 0.2:
        return "medium"
    return "low"


def _overall(score: int) -> OverallRisk:
    if score >= 75:
        return "critical"
    if score >= 50:
        return "high"
    if score >= 25:
        return "medium"
    return "low"
