import logging

from helpers import diamond, load_example

from task_orchestrator.core.graph.build import build_task_graph
from task_orchestrator.core.graph.plan import generate_execution_plan


def test_diamond_plan():
    plan = generate_execution_plan(build_task_graph(diamond()))
    assert plan.levels == [["A"], ["B", "C"], ["D"]]
    assert plan.parallel_opportunities == 1
    assert plan.critical_path == ["A", "B", "D"]
    assert plan.estimated_duration == 20


def test_levels_place_dependencies_strictly_earlier():
    graph = build_task_graph(load_example("multi-phase.yaml"))
    plan = generate_execution_plan(graph)
    level_of = {nid: i for i, level in enumerate(plan.levels) for nid in level}
    assert set(level_of) == set(graph.nodes)
    for nid, node in graph.nodes.items():
        for dep in node.dependencies:
            assert level_of[dep] < level_of[nid]


def test_multi_phase_plan_metrics():
    plan = generate_execution_plan(build_task_graph(load_example("multi-phase.yaml")))
    assert plan.levels == [
        ["init-repo"],
        ["install-deps", "lint-config"],
        ["api", "ui"],
        ["docs", "e2e"],
        ["deploy"],
    ]
    assert plan.parallel_opportunities == 3
    assert plan.estimated_duration == 70


def test_unschedulable_tasks_are_excluded(caplog):
    caplog.set_level(logging.WARNING)
    plan = generate_execution_plan(build_task_graph(load_example("dangling.yaml")))
    assert plan.levels == [["a"]]
    assert "excluded 2" in caplog.text


def test_cycle_does_not_loop_forever():
    plan = generate_execution_plan(build_task_graph(load_example("cycle.yaml")))
    assert plan.levels == [["start"]]
    assert plan.parallel_opportunities == 0


def test_empty_graph_plan():
    plan = generate_execution_plan(build_task_graph([]))
    assert plan.levels == []
    assert plan.estimated_duration == 0
    assert plan.parallel_opportunities == 0
