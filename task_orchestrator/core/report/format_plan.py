from __future__ import annotations

from collections import Counter

from task_orchestrator.core.model import ExecutionPlan, TaskGraph


MERMAID_LABEL_MAX = 30
CRITICAL_CLASS_DEF = "classDef critical fill:#ff6b6b,stroke:#c92a2a,color:#fff"


def _minutes(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else f"{v:g}"


def format_execution_plan(plan: ExecutionPlan) -> str:
    lines: list[str] = [
        "Execution Plan",
        "-" * 40,
        f"Total levels: {len(plan.levels)}",
        f"Estimated duration: {_minutes(plan.estimated_duration)} minutes",
        f"Parallel opportunities: {plan.parallel_opportunities}",
        "",
        "Critical Path:",
        "   " + " -> ".join(plan.critical_path),
        "",
        "Execution Levels:",
    ]
    for i, level in enumerate(plan.levels, start=1):
        parallel = " (parallel)" if len(level) > 1 else ""
        lines.append(f"   Level {i}: {', '.join(level)}{parallel}")
    return "\n".join(lines)


def _mermaid_label(text: str) -> str:
    return text[:MERMAID_LABEL_MAX].replace('"', "'")


def format_graph_as_mermaid(graph: TaskGraph) -> str:
    lines: list[str] = ["graph TD"]

    for nid, node in graph.nodes.items():
        style = ":::critical" if node.critical_path else ""
        lines.append(f'    {nid}["{_mermaid_label(node.task.description)}"]{style}')

    for nid, node in graph.nodes.items():
        for dep_id in node.dependencies:
            if dep_id in graph.nodes:
                lines.append(f"    {dep_id} --> {nid}")

    lines.append("")
    lines.append(f"    {CRITICAL_CLASS_DEF}")
    return "\n".join(lines)


def summarize_graph(graph: TaskGraph) -> str:
    per_phase = Counter(n.phase_id for n in graph.nodes.values())
    parts = [f"{p.id}={per_phase.get(p.id, 0)}" for p in graph.phases]
    return (
        f"OK: {len(graph.nodes)} tasks in {len(graph.phases)} phases ("
        + ", ".join(parts)
        + f")\nTotal estimate: {_minutes(graph.total_estimated_minutes)} minutes"
        + "\nCritical path: "
        + " -> ".join(graph.critical_path_tasks)
    )
