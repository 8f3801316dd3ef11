from helpers import diamond, load_example

from task_orchestrator.core.graph.build import build_task_graph
from task_orchestrator.core.graph.plan import generate_execution_plan
from task_orchestrator.core.report.format_plan import (
    format_execution_plan,
    format_graph_as_mermaid,
    summarize_graph,
)


def test_plan_report():
    text = format_execution_plan(generate_execution_plan(build_task_graph(diamond())))
    lines = text.splitlines()
    assert lines[0] == "Execution Plan"
    assert "Total levels: 3" in lines
    assert "Estimated duration: 20 minutes" in lines
    assert "Parallel opportunities: 1" in lines
    assert "   A -> B -> D" in lines
    assert "   Level 1: A" in lines
    assert "   Level 2: B, C (parallel)" in lines
    assert "   Level 3: D" in lines


def test_mermaid_diamond():
    text = format_graph_as_mermaid(build_task_graph(diamond()))
    lines = text.splitlines()
    assert lines[0] == "graph TD"
    assert '    A["Init project"]:::critical' in lines
    assert '    C["Setup DB"]' in lines
    assert "    A --> B" in lines
    assert "    C --> D" in lines
    assert lines[-1].strip().startswith("classDef critical")


def test_mermaid_label_is_truncated_and_quotes_replaced():
    text = format_graph_as_mermaid(build_task_graph(load_example("multi-phase.yaml")))
    assert "    lint-config[\"Configure 'lint' rules for the\"]" in text.splitlines()


def test_mermaid_skips_unknown_dependencies():
    text = format_graph_as_mermaid(build_task_graph(load_example("dangling.yaml")))
    assert "ghost -->" not in text
    assert "    a --> b" in text.splitlines()


def test_summary():
    text = summarize_graph(build_task_graph(diamond()))
    assert text.splitlines() == [
        "OK: 4 tasks in 1 phases (foundation=4)",
        "Total estimate: 28 minutes",
        "Critical path: A -> B -> D",
    ]
