from __future__ import annotations

import logging
from typing import Iterable

from task_orchestrator.core.graph.critical_path import find_critical_path
from task_orchestrator.core.graph.depth import calculate_depths
from task_orchestrator.core.model import Phase, TaskGraph, TaskNode

logger = logging.getLogger(__name__)


def build_task_graph(phases: Iterable[Phase]) -> TaskGraph:
    """Build the dependency graph for validated phases.

    Nodes keep declaration order (phase order, then task order), which is the
    order every later tie-break relies on. Dependency ids that name no task are
    kept on the node but produce no reverse edge.
    """

    phase_list = list(phases)
    nodes: dict[str, TaskNode] = {}

    for phase in phase_list:
        for task in phase.tasks:
            if task.id in nodes:
                logger.warning("duplicate task id %s in phase %s; keeping the first", task.id, phase.id)
                continue
            nodes[task.id] = TaskNode(
                task=task,
                phase_id=phase.id,
                dependencies=list(task.dependencies),
            )

    for nid, node in nodes.items():
        for dep_id in node.dependencies:
            dep = nodes.get(dep_id)
            if dep is None:
                logger.debug("task %s depends on unknown id %s; no edge created", nid, dep_id)
                continue
            dep.dependents.append(nid)

    calculate_depths(nodes)

    critical_path_tasks = find_critical_path(nodes)
    for nid in critical_path_tasks:
        nodes[nid].critical_path = True

    total = sum(n.estimated_minutes for n in nodes.values())

    return TaskGraph(
        nodes=nodes,
        phases=phase_list,
        critical_path_tasks=critical_path_tasks,
        total_estimated_minutes=total,
    )
