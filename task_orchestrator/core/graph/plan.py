from __future__ import annotations

import logging

from task_orchestrator.core.model import ExecutionPlan, TaskGraph

logger = logging.getLogger(__name__)


def generate_execution_plan(graph: TaskGraph) -> ExecutionPlan:
    """Group tasks into levels that can run together.

    Each pass schedules every remaining task whose dependencies are all in
    earlier levels. A pass that schedules nothing ends the loop; tasks still
    left (cycles, unknown dependency ids) are not part of the plan.
    """

    levels: list[list[str]] = []
    scheduled: set[str] = set()

    while len(scheduled) < len(graph.nodes):
        level = [
            nid
            for nid, node in graph.nodes.items()
            if nid not in scheduled and all(d in scheduled for d in node.dependencies)
        ]
        if not level:
            break
        levels.append(level)
        scheduled.update(level)

    unscheduled = [nid for nid in graph.nodes if nid not in scheduled]
    if unscheduled:
        logger.warning("excluded %d unschedulable task(s) from plan: %s", len(unscheduled), ", ".join(unscheduled))

    parallel_opportunities = sum(max(0, len(level) - 1) for level in levels)

    # Critical-path sum, not a full forward/backward-pass makespan.
    estimated_duration = sum(
        graph.nodes[nid].estimated_minutes
        for nid in graph.critical_path_tasks
        if nid in graph.nodes
    )

    return ExecutionPlan(
        levels=levels,
        critical_path=list(graph.critical_path_tasks),
        estimated_duration=estimated_duration,
        parallel_opportunities=parallel_opportunities,
    )
