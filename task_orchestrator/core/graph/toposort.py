from __future__ import annotations

import logging
from typing import Iterator

from task_orchestrator.core.model import TaskGraph

logger = logging.getLogger(__name__)


def topological_sort(graph: TaskGraph) -> list[str]:
    """DFS post-order: every dependency precedes its dependents.

    For acyclic graphs the result holds every id exactly once. When a cycle is
    found the branch being explored is abandoned: the nodes on it stay
    unemitted, and later attempts to visit them are skipped. The order built
    so far is still returned, so cyclic input yields a partial order.
    Unknown dependency ids are skipped.
    """

    result: list[str] = []
    visited: set[str] = set()
    visiting: set[str] = set()

    for start in graph.nodes:
        if start in visited:
            continue
        if start in visiting:
            logger.warning("skipping %s: left unresolved by an earlier cycle", start)
            continue

        visiting.add(start)
        stack: list[tuple[str, Iterator[str]]] = [(start, iter(graph.nodes[start].dependencies))]

        while stack:
            nid, deps = stack[-1]
            dep = next(deps, None)

            if dep is None:
                stack.pop()
                visiting.discard(nid)
                visited.add(nid)
                result.append(nid)
                continue

            if dep in visited or dep not in graph.nodes:
                continue
            if dep in visiting:
                logger.warning("cycle detected at %s; abandoning branch from %s", dep, start)
                stack.clear()
                break

            visiting.add(dep)
            stack.append((dep, iter(graph.nodes[dep].dependencies)))

    if len(result) != len(graph.nodes):
        logger.warning(
            "topological sort incomplete: %d of %d tasks ordered", len(result), len(graph.nodes)
        )
    return result
