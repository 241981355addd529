from pathlib import Path

from planning_intelligence.core.graph.build_graph import build_dependency_graph
from planning_intelligence.core.io.load_tasks import load_tasks
from planning_intelligence.core.model import Task
from planning_intelligence.core.validate.validate_tasks import parse_tasks

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _task(tid: str, minutes: float | None = 30, deps: tuple[str, ...] = ()) -> Task:
    return Task(id=tid, title=f"Task {tid}", estimated_minutes=minutes, dependencies=deps)


def _fixture(name: str) -> list[Task]:
    tasks, errors = parse_tasks(load_tasks(str(EXAMPLES / name)))
    assert errors == []
    assert tasks is not None
    return tasks


def _depths(graph) -> dict[str, int]:
    return {n.id: n.depth for n in graph.nodes}


def test_empty_graph():
    g = build_dependency_graph([])
    assert g.nodes == []
    assert g.edges == []
    assert g.critical_path == []
    assert g.parallel_groups == []
    assert g.max_depth == 0
    assert g.has_cycles is False
    assert g.cycle_nodes == []


def test_dangling_dependency_is_dropped():
    g = build_dependency_graph([_task("a", deps=("x",))])
    assert g.edges == []
    node = g.node("a")
    assert node is not None
    assert node.in_degree == 0
    assert node.depth == 0


def test_critical_path_two_tasks():
    g = build_dependency_graph([_task("a", 10), _task("b", 20, ("a",))])
    assert g.critical_path == ["a", "b"]


def test_critical_path_prefers_longer_branch():
    tasks = [_task("a", 10), _task("b", 20, ("a",)), _task("c", 5, ("a",))]
    g = build_dependency_graph(tasks)
    assert g.critical_path == ["a", "b"]


def test_critical_path_follows_heaviest_predecessor():
    tasks = [
        _task("a", 5),
        _task("b", 50),
        _task("c", 10, ("a", "b")),
    ]
    g = build_dependency_graph(tasks)
    assert g.critical_path == ["b", "c"]


def test_diamond():
    tasks = [
        _task("a"),
        _task("b", deps=("a",)),
        _task("c", deps=("a",)),
        _task("d", deps=("b", "c")),
    ]
    g = build_dependency_graph(tasks)
    assert g.max_depth == 2
    assert g.has_cycles is False
    assert _depths(g) == {"a": 0, "b": 1, "c": 1, "d": 2}
    assert any({"b", "c"} <= set(group) for group in g.parallel_groups)
    assert g.node("a").out_degree == 2
    assert g.node("d").in_degree == 2


def test_edges_point_from_prerequisite_to_dependent():
    g = build_dependency_graph([_task("a"), _task("b", deps=("a",))])
    assert [(e.from_id, e.to_id) for e in g.edges] == [("a", "b")]


def test_self_dependency_is_a_cycle():
    g = build_dependency_graph([_task("a", deps=("a",)), _task("b")])
    assert g.has_cycles is True
    assert g.cycle_nodes == ["a"]
    assert g.node("a").depth == -1
    assert g.node("b").depth == 0
    assert g.critical_path == ["b"]


def test_cycle_with_downstream_node():
    g = build_dependency_graph(_fixture("cyclic-tasks.yaml"))
    assert g.has_cycles is True
    assert set(g.cycle_nodes) == {"A", "B", "C"}
    assert _depths(g) == {"A": -1, "B": -1, "C": -1, "D": 0, "E": -1}
    assert g.max_depth == 0
    assert g.critical_path == ["D"]
    assert g.parallel_groups == []


def test_cycle_not_reachable_from_any_root():
    tasks = [_task("r"), _task("x", deps=("y",)), _task("y", deps=("x",))]
    g = build_dependency_graph(tasks)
    assert g.has_cycles is True
    assert {"x", "y"} <= set(g.cycle_nodes)
    assert "r" not in g.cycle_nodes


def test_cycle_nodes_include_path_into_cycle():
    tasks = [_task("r"), _task("x", deps=("r", "y")), _task("y", deps=("x",))]
    g = build_dependency_graph(tasks)
    assert g.has_cycles is True
    assert {"x", "y"} <= set(g.cycle_nodes)


def test_cycle_side_path_members_are_marked():
    # a -> b -> c -> a, with a second route b -> d -> c
    tasks = [
        _task("a", deps=("c",)),
        _task("b", deps=("a",)),
        _task("c", deps=("b", "d")),
        _task("d", deps=("b",)),
    ]
    g = build_dependency_graph(tasks)
    assert g.has_cycles is True
    assert g.cycle_nodes == ["a", "b", "c", "d"]


def test_downstream_of_cycle_is_not_a_member():
    tasks = [_task("x", deps=("y",)), _task("y", deps=("x",)), _task("z", deps=("x",))]
    g = build_dependency_graph(tasks)
    assert g.cycle_nodes == ["x", "y"]


def test_node_with_layered_and_cyclic_predecessors_gets_a_depth():
    tasks = [
        _task("r", 10),
        _task("a", 10, ("b",)),
        _task("b", 10, ("a",)),
        _task("c", 600, ("r", "a")),
    ]
    g = build_dependency_graph(tasks)
    assert _depths(g) == {"r": 0, "a": -1, "b": -1, "c": 1}
    assert g.max_depth == 1
    assert g.critical_path == ["r", "c"]


def test_depth_is_one_plus_max_predecessor_depth():
    tasks = [
        _task("a"),
        _task("b"),
        _task("c", deps=("a",)),
        _task("d", deps=("b", "c")),
        _task("e", deps=("d", "a")),
        _task("f", deps=("g",)),
        _task("g", deps=("f",)),
        _task("h", deps=("e", "f")),
    ]
    g = build_dependency_graph(tasks)
    depth = _depths(g)
    preds: dict[str, list[str]] = {t.id: [] for t in tasks}
    for e in g.edges:
        preds[e.to_id].append(e.from_id)

    for tid, d in depth.items():
        if d == -1:
            continue
        if not preds[tid]:
            assert d == 0
        else:
            assert d == 1 + max(depth[p] for p in preds[tid])

    assert depth["f"] == depth["g"] == -1
    assert depth["h"] == 4
    assert g.max_depth == 4


def test_parallel_groups_exclude_single_member_layers():
    tasks = [_task("a"), _task("b", deps=("a",)), _task("c", deps=("b",))]
    g = build_dependency_graph(tasks)
    assert g.parallel_groups == []


def test_missing_estimates_count_as_zero():
    tasks = [_task("a", None), _task("b", 5, ("a",))]
    g = build_dependency_graph(tasks)
    assert g.critical_path == ["a", "b"]


def test_long_chain_does_not_recurse():
    n = 3000
    tasks = [_task("t0")] + [_task(f"t{i}", deps=(f"t{i - 1}",)) for i in range(1, n)]
    g = build_dependency_graph(tasks)
    assert g.has_cycles is False
    assert g.max_depth == n - 1
    assert len(g.critical_path) == n


def test_long_cycle_detected_without_recursion():
    n = 3000
    tasks = [_task(f"t{i}", deps=(f"t{(i - 1) % n}",)) for i in range(n)]
    g = build_dependency_graph(tasks)
    assert g.has_cycles is True
    assert len(g.cycle_nodes) == n


def test_build_is_idempotent():
    tasks = _fixture("basic-tasks.yaml")
    assert build_dependency_graph(tasks) == build_dependency_graph(tasks)


def test_basic_fixture():
    g = build_dependency_graph(_fixture("basic-tasks.yaml"))
    assert g.max_depth == 2
    assert g.critical_path == ["T1", "T2", "T4"]
    assert g.parallel_groups == [["T1", "T5"], ["T2", "T3"]]
