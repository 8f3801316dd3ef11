from __future__ import annotations

import logging
from typing import Iterator

from task_orchestrator.core.model import TaskNode

logger = logging.getLogger(__name__)


def calculate_depths(nodes: dict[str, TaskNode]) -> dict[str, int]:
    """Longest-path depth per node, written to ``node.depth`` and returned.

    depth(n) = 1 + max(depth(d) for d in deps(n)), or 0 without deps.
    A dependency that is still being evaluated closes a cycle; it is counted
    as depth 0 and a warning is logged. Unknown dependency ids are ignored.
    """

    depths: dict[str, int] = {}
    visiting: set[str] = set()

    for start in nodes:
        if start in depths:
            continue

        best: dict[str, int] = {start: 0}
        visiting.add(start)
        stack: list[tuple[str, Iterator[str]]] = [(start, iter(nodes[start].dependencies))]

        while stack:
            nid, deps = stack[-1]
            dep = next(deps, None)

            if dep is None:
                stack.pop()
                visiting.discard(nid)
                depth = best.pop(nid)
                depths[nid] = depth
                nodes[nid].depth = depth
                if stack:
                    parent = stack[-1][0]
                    best[parent] = max(best[parent], depth + 1)
                continue

            if dep not in nodes:
                continue
            if dep in depths:
                best[nid] = max(best[nid], depths[dep] + 1)
                continue
            if dep in visiting:
                logger.warning("cycle detected at task %s (via %s); using depth 0", dep, nid)
                best[nid] = max(best[nid], 1)
                continue

            visiting.add(dep)
            best[dep] = 0
            stack.append((dep, iter(nodes[dep].dependencies)))

    return depths
