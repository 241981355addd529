from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from planning_intelligence.core.model import Task


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyNode:
    id: str
    title: str
    status: str
    priority: str
    depth: int  # -1 when the node never clears topological layering
    in_degree: int
    out_degree: int


@dataclass(frozen=True)
class DependencyEdge:
    from_id: str  # prerequisite
    to_id: str  # dependent


@dataclass(frozen=True)
class DependencyGraph:
    nodes: list[DependencyNode]
    edges: list[DependencyEdge]
    critical_path: list[str]
    parallel_groups: list[list[str]]
    max_depth: int
    has_cycles: bool
    cycle_nodes: list[str]

    def node(self, task_id: str) -> Optional[DependencyNode]:
        for n in self.nodes:
            if n.id == task_id:
                return n
        return None


def build_dependency_graph(tasks: Sequence[Task]) -> DependencyGraph:
    """Build the dependency graph for a task snapshot.

    Edges point from prerequisite to dependent and are only materialized when
    both ends are present; dangling dependency ids are dropped. Never raises:
    cyclic nodes get depth -1 and are excluded from the critical path and the
    parallel groups.
    """

    if not tasks:
        return DependencyGraph(
            nodes=[],
            edges=[],
            critical_path=[],
            parallel_groups=[],
            max_depth=0,
            has_cycles=False,
            cycle_nodes=[],
        )

    # Index once; duplicate ids are a caller error, first occurrence wins.
    ordered: list[Task] = []
    index: dict[str, int] = {}
    for t in tasks:
        if t.id in index:
            continue
        index[t.id] = len(ordered)
        ordered.append(t)

    n = len(ordered)
    succ: list[list[int]] = [[] for _ in range(n)]
    pred: list[list[int]] = [[] for _ in range(n)]
    edges: list[DependencyEdge] = []

    for i, t in enumerate(ordered):
        for dep in t.dependencies or ():
            j = index.get(dep)
            if j is None:
                continue
            edges.append(DependencyEdge(from_id=dep, to_id=t.id))
            succ[j].append(i)
            pred[i].append(j)

    in_cycle, has_cycles = _detect_cycles(succ)
    depth, max_depth = _layer_depths(succ, pred)
    minutes = [t.minutes for t in ordered]

    critical = _critical_path(pred, depth, minutes)
    groups = _parallel_groups(pred, depth)

    nodes = [
        DependencyNode(
            id=t.id,
            title=t.title,
            status=t.status,
            priority=t.priority,
            depth=depth[i],
            in_degree=len(pred[i]),
            out_degree=len(succ[i]),
        )
        for i, t in enumerate(ordered)
    ]
    cycle_nodes = [ordered[i].id for i in range(n) if in_cycle[i]]

    logger.debug(
        "dependency graph: nodes=%d edges=%d max_depth=%d cycles=%s",
        n,
        len(edges),
        max_depth,
        len(cycle_nodes),
    )

    return DependencyGraph(
        nodes=nodes,
        edges=edges,
        critical_path=[ordered[i].id for i in critical],
        parallel_groups=[[ordered[i].id for i in g] for g in groups],
        max_depth=max_depth,
        has_cycles=has_cycles,
        cycle_nodes=cycle_nodes,
    )


def _detect_cycles(succ: list[list[int]]) -> tuple[list[bool], bool]:
    """Three-colour DFS from every white node.

    Reaching a gray node marks it, the current node and every node on the
    current DFS path as cycle members. Uses an explicit frame stack instead of
    recursion; ``path`` holds exactly the gray nodes.
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    n = len(succ)
    state = [WHITE] * n
    in_cycle = [False] * n
    found = False

    for root in range(n):
        if state[root] != WHITE:
            continue

        state[root] = GRAY
        path: list[int] = [root]
        frames: list[Iterator[int]] = [iter(succ[root])]

        while frames:
            u = path[-1]
            v = next(frames[-1], None)
            if v is None:
                frames.pop()
                path.pop()
                state[u] = BLACK
                continue
            if state[v] == GRAY:
                found = True
                in_cycle[v] = True
                for a in path:
                    in_cycle[a] = True
            elif state[v] == WHITE:
                state[v] = GRAY
                path.append(v)
                frames.append(iter(succ[v]))

    # Cycle members off the DFS path (b -> d -> c inside a -> b -> c -> a)
    # only show up as part of a strongly connected component.
    for comp in _strongly_connected(succ):
        if len(comp) > 1 or comp[0] in succ[comp[0]]:
            found = True
            for u in comp:
                in_cycle[u] = True

    return in_cycle, found


def _strongly_connected(succ: list[list[int]]) -> list[list[int]]:
    """Tarjan's algorithm with an explicit work stack."""
    n = len(succ)
    index = [-1] * n
    low = [0] * n
    on_stack = [False] * n
    stack: list[int] = []
    components: list[list[int]] = []
    counter = 0

    for root in range(n):
        if index[root] != -1:
            continue

        index[root] = low[root] = counter
        counter += 1
        stack.append(root)
        on_stack[root] = True
        work: list[tuple[int, Iterator[int]]] = [(root, iter(succ[root]))]

        while work:
            u, it = work[-1]
            descended = False
            for v in it:
                if index[v] == -1:
                    index[v] = low[v] = counter
                    counter += 1
                    stack.append(v)
                    on_stack[v] = True
                    work.append((v, iter(succ[v])))
                    descended = True
                    break
                if on_stack[v]:
                    low[u] = min(low[u], index[v])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[u])
            if low[u] == index[u]:
                comp: list[int] = []
                while True:
                    w = stack.pop()
                    on_stack[w] = False
                    comp.append(w)
                    if w == u:
                        break
                components.append(comp)

    return components


def _layer_depths(succ: list[list[int]], pred: list[list[int]]) -> tuple[list[int], int]:
    """Kahn layering: depth is the longest edge count from a root.

    A node takes a depth as soon as any layered predecessor relaxes it, even
    when another predecessor sits on a cycle and it is never dequeued itself.
    Nodes reachable only through cycles stay at -1.
    """
    n = len(succ)
    remaining = [len(p) for p in pred]
    depth = [-1] * n
    tentative = [0] * n

    q: deque[int] = deque()
    for i in range(n):
        if remaining[i] == 0:
            q.append(i)

    max_depth = 0
    while q:
        cur = q.popleft()
        depth[cur] = tentative[cur]
        if depth[cur] > max_depth:
            max_depth = depth[cur]
        for nxt in succ[cur]:
            tentative[nxt] = max(tentative[nxt], depth[cur] + 1)
            depth[nxt] = tentative[nxt]
            if depth[nxt] > max_depth:
                max_depth = depth[nxt]
            remaining[nxt] -= 1
            if remaining[nxt] == 0:
                q.append(nxt)

    return depth, max_depth


def _critical_path(pred: list[list[int]], depth: list[int], minutes: list[float]) -> list[int]:
    """Longest cumulative-duration chain through the layered part of the graph."""
    layered = sorted((i for i in range(len(depth)) if depth[i] >= 0), key=lambda i: depth[i])

    dist: dict[int, float] = {}
    back: dict[int, Optional[int]] = {}
    for i in layered:
        best: Optional[int] = None
        for p in pred[i]:
            if p not in dist:
                continue
            if best is None or dist[p] > dist[best]:
                best = p
        dist[i] = (dist[best] if best is not None else 0) + minutes[i]
        back[i] = best

    end: Optional[int] = None
    for i in layered:
        if end is None or dist[i] > dist[end]:
            end = i

    path: list[int] = []
    cur = end
    while cur is not None:
        path.append(cur)
        cur = back[cur]
    path.reverse()
    return path


def _parallel_groups(pred: list[list[int]], depth: list[int]) -> list[list[int]]:
    by_depth: dict[int, list[int]] = {}
    for i, d in enumerate(depth):
        if d < 0:
            continue
        by_depth.setdefault(d, []).append(i)

    groups: list[list[int]] = []
    for members in by_depth.values():
        if len(members) < 2:
            continue
        same_depth = set(members)
        independent = [i for i in members if not any(p in same_depth for p in pred[i])]
        if len(independent) > 1:
            groups.append(independent)
    return groups
