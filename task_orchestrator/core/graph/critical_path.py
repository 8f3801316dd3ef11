from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from task_orchestrator.core.model import TaskNode

logger = logging.getLogger(__name__)


def compute_finish_times(nodes: dict[str, TaskNode]) -> dict[str, float]:
    """Earliest finish per node (CPM forward pass).

    finish(n) = duration(n) + max(finish(d) for d in deps(n)), 0 without deps.
    Back edges into a node still on the stack contribute 0.
    """

    finish: dict[str, float] = {}
    visiting: set[str] = set()

    for start in nodes:
        if start in finish:
            continue

        start_at: dict[str, float] = {start: 0}
        visiting.add(start)
        stack: list[tuple[str, Iterator[str]]] = [(start, iter(nodes[start].dependencies))]

        while stack:
            nid, deps = stack[-1]
            dep = next(deps, None)

            if dep is None:
                stack.pop()
                visiting.discard(nid)
                done = start_at.pop(nid) + nodes[nid].estimated_minutes
                finish[nid] = done
                if stack:
                    parent = stack[-1][0]
                    start_at[parent] = max(start_at[parent], done)
                continue

            if dep not in nodes:
                continue
            if dep in finish:
                start_at[nid] = max(start_at[nid], finish[dep])
                continue
            if dep in visiting:
                logger.warning("cycle detected at task %s (via %s); ignoring edge for finish time", dep, nid)
                continue

            visiting.add(dep)
            start_at[dep] = 0
            stack.append((dep, iter(nodes[dep].dependencies)))

    return finish


def _first_max(ids: Iterable[str], finish: dict[str, float]) -> Optional[str]:
    # Strictly greater wins: ties go to the earliest id in iteration order.
    best: Optional[str] = None
    for i in ids:
        if best is None or finish[i] > finish[best]:
            best = i
    return best


def find_critical_path(nodes: dict[str, TaskNode]) -> list[str]:
    """Dominant duration chain, root first.

    The terminus is the dependent-free node with the largest finish time;
    from there the trace follows the dependency with the largest finish time
    until a node without (known) dependencies. Ties resolve to the first
    candidate in declaration order: node order for termini, declared
    dependency order while tracing.
    """

    end_nodes = [nid for nid, n in nodes.items() if not n.dependents]
    if not end_nodes:
        return []

    finish = compute_finish_times(nodes)
    current = _first_max(end_nodes, finish)

    path: list[str] = []
    seen: set[str] = set()
    while current is not None:
        if current in seen:
            logger.warning("critical path trace revisited %s; stopping", current)
            break
        seen.add(current)
        path.append(current)
        deps = [d for d in nodes[current].dependencies if d in nodes]
        current = _first_max(deps, finish)

    path.reverse()
    return path
