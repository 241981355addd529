from pathlib import Path

import pytest

from planning_intelligence.core.health.plan_health import calculate_plan_health, grade_for
from planning_intelligence.core.health.weights_config import DEFAULT_HEALTH_WEIGHTS, WeightsConfigError
from planning_intelligence.core.io.load_tasks import load_tasks
from planning_intelligence.core.model import Task
from planning_intelligence.core.validate.validate_tasks import parse_tasks

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _fixture(name: str) -> list[Task]:
    tasks, errors = parse_tasks(load_tasks(str(EXAMPLES / name)))
    assert errors == []
    return tasks


def _task(tid: str, minutes: float | None = 30, priority: str = "P2", **kw) -> Task:
    return Task(id=tid, title=f"Task {tid}", estimated_minutes=minutes, priority=priority, **kw)


def _scores(health) -> dict[str, int]:
    return {f.name: f.score for f in health.factors}


def test_empty_plan():
    h = calculate_plan_health([])
    assert h.score == 0
    assert h.grade == "F"
    assert [(f.name, f.score, f.weight) for f in h.factors] == [("No tasks", 0, 1)]


def test_basic_fixture_scores_a():
    h = calculate_plan_health(_fixture("basic-tasks.yaml"))
    assert _scores(h) == {
        "Task Granularity": 100,
        "Acceptance Criteria Coverage": 100,
        "Priority Balance": 80,
        "Dependency Health": 100,
        "Description Quality": 100,
        "Decomposition Readiness": 100,
    }
    assert [f.weight for f in h.factors] == [25, 20, 15, 20, 10, 10]
    assert h.score == 97
    assert h.grade == "A"


def test_weight_override_changes_weighted_mean():
    h = calculate_plan_health(_fixture("basic-tasks.yaml"), weights={"priority_balance": 185})
    assert h.score == 86
    assert h.grade == "B"


@pytest.mark.parametrize(
    "weights",
    [
        {k: 0 for k in DEFAULT_HEALTH_WEIGHTS},
        {"granularity": float("nan")},
        {"granularity": -5},
        {"velocity": 10},
    ],
)
def test_bad_weight_overrides_raise(weights):
    with pytest.raises(WeightsConfigError):
        calculate_plan_health(_fixture("basic-tasks.yaml"), weights=weights)


def test_bad_weight_overrides_raise_for_empty_plan():
    with pytest.raises(WeightsConfigError):
        calculate_plan_health([], weights={"granularity": 0})


def test_cycle_penalizes_dependency_health():
    h = calculate_plan_health(_fixture("cyclic-tasks.yaml"))
    assert _scores(h)["Dependency Health"] == 50
    dep = next(f for f in h.factors if f.name == "Dependency Health")
    assert dep.details == "Depth:0. Cycles:YES. AvgIn:0.8."


def test_single_priority_tier_scores_zero_balance():
    h = calculate_plan_health([_task("a"), _task("b"), _task("c")])
    assert _scores(h)["Priority Balance"] == 0


def test_ideal_priority_split_scores_full_balance():
    tasks = (
        [_task(f"a{i}", priority="P1") for i in range(3)]
        + [_task(f"b{i}", priority="P2") for i in range(4)]
        + [_task(f"c{i}", priority="P3") for i in range(3)]
    )
    assert _scores(calculate_plan_health(tasks))["Priority Balance"] == 100


def test_granularity_and_readiness_penalties():
    h = calculate_plan_health([_task("huge", 130), _task("long", 70)])
    scores = _scores(h)
    assert scores["Task Granularity"] == 0
    assert scores["Decomposition Readiness"] == 55


def test_deep_graph_penalty():
    tasks = [_task("t0")] + [_task(f"t{i}", dependencies=(f"t{i - 1}",)) for i in range(1, 5)]
    assert _scores(calculate_plan_health(tasks))["Dependency Health"] == 85
    tasks = [_task("t0")] + [_task(f"t{i}", dependencies=(f"t{i - 1}",)) for i in range(1, 7)]
    assert _scores(calculate_plan_health(tasks))["Dependency Health"] == 70


def test_dense_in_degree_penalty():
    roots = [_task(f"r{i}") for i in range(4)]
    ids = tuple(t.id for t in roots)
    dense = [_task(f"d{i}", dependencies=ids) for i in range(6)]
    # avg in-degree = 24 / 10 = 2.4 -> minus 4
    assert _scores(calculate_plan_health(roots + dense))["Dependency Health"] == 96


def test_description_quality_blend():
    h = calculate_plan_health([_task("a", description="x" * 25)])
    assert _scores(h)["Description Quality"] == 25
    h = calculate_plan_health([_task("a", description=None)])
    assert _scores(h)["Description Quality"] == 0


def test_missing_estimates_count_as_zero_minutes():
    h = calculate_plan_health([_task("a", None)])
    scores = _scores(h)
    assert scores["Task Granularity"] == 0
    assert scores["Decomposition Readiness"] == 100


def test_score_bounded_under_pathological_input():
    tasks = [
        _task(f"t{i}", 1000, priority="P1", dependencies=(f"t{(i + 1) % 8}",), description=None)
        for i in range(8)
    ]
    h = calculate_plan_health(tasks)
    assert 0 <= h.score <= 100
    assert all(0 <= f.score <= 100 for f in h.factors)
    assert h.grade == "F"


@pytest.mark.parametrize(
    "score, grade",
    [(100, "A"), (90, "A"), (89, "B"), (80, "B"), (79, "C"), (70, "C"), (69, "D"), (60, "D"), (59, "F"), (0, "F")],
)
def test_grade_thresholds(score, grade):
    assert grade_for(score) == grade
