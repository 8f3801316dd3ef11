from helpers import diamond, load_example

from task_orchestrator.core.runtime.config import OrchestratorConfig
from task_orchestrator.core.runtime.orchestrator import Orchestrator


def _ids(nodes):
    return [n.id for n in nodes]


def _run(orch, *task_ids):
    for tid in task_ids:
        assert orch.start_task(tid), tid
        assert orch.complete_task(tid), tid


def test_initial_status():
    orch = Orchestrator(diamond())
    st = orch.get_status()
    assert (st.total, st.completed, st.running, st.failed, st.pending, st.blocked) == (4, 0, 0, 0, 4, 0)
    assert st.progress == 0
    assert _ids(orch.get_ready_tasks()) == ["A"]


def test_start_and_complete():
    orch = Orchestrator(diamond())
    assert orch.start_task("A")
    assert orch.running == {"A"}
    assert orch.get_status().running == 1
    assert orch.get_graph().nodes["A"].status == "running"

    assert orch.complete_task("A")
    assert orch.completed == {"A"}
    assert orch.get_status().running == 0
    assert sorted(_ids(orch.get_ready_tasks())) == ["B", "C"]
    # dependents' cached status refreshed
    nodes = orch.get_graph().nodes
    assert nodes["B"].status == "ready"
    assert nodes["C"].status == "ready"
    assert nodes["D"].status == "pending"


def test_ready_tasks_prioritize_critical_path():
    orch = Orchestrator(diamond())
    _run(orch, "A")
    assert _ids(orch.get_ready_tasks()) == ["B", "C"]


def test_ready_order_by_depth_when_not_prioritizing():
    phases = load_example("multi-phase.yaml")

    orch = Orchestrator(phases)
    _run(orch, "init-repo", "install-deps")
    assert _ids(orch.get_ready_tasks()) == ["api", "lint-config", "ui"]

    orch = Orchestrator(phases, OrchestratorConfig(prioritize_critical_path=False))
    _run(orch, "init-repo", "install-deps")
    assert _ids(orch.get_ready_tasks()) == ["lint-config", "api", "ui"]


def test_concurrency_limit_is_advisory():
    orch = Orchestrator(diamond(), OrchestratorConfig(max_concurrent=1))
    _run(orch, "A")

    nxt = _ids(orch.get_next_tasks())
    assert len(nxt) == 1
    assert nxt[0] in {"B", "C"}
    assert len(orch.get_ready_tasks()) == 2
    # get_next_tasks does not mutate
    assert orch.running == set()

    assert orch.start_task("B")
    assert not orch.can_start_more()
    assert orch.get_next_tasks() == []
    # start_task itself does not enforce the limit
    assert orch.start_task("C")
    assert orch.running == {"B", "C"}


def test_failure_cascade_blocks_downstream():
    orch = Orchestrator(diamond())
    _run(orch, "A")
    assert orch.start_task("B")
    assert orch.fail_task("B")

    assert orch.failed == {"B"}
    assert _ids(orch.get_ready_tasks()) == ["C"]
    assert orch.get_graph().nodes["D"].status == "blocked"
    assert orch.blocked_tasks() == ["D"]
    assert not orch.is_task_ready("D")

    _run(orch, "C")
    assert "D" not in _ids(orch.get_ready_tasks())
    assert not orch.start_task("D")

    st = orch.get_status()
    assert (st.completed, st.failed, st.blocked, st.pending) == (2, 1, 1, 0)
    assert not orch.is_complete()


def test_failure_of_root_blocks_everything():
    orch = Orchestrator(diamond())
    orch.start_task("A")
    orch.fail_task("A")
    assert orch.get_ready_tasks() == []
    assert orch.blocked_tasks() == ["B", "C", "D"]


def test_cascade_is_transitive_across_phases():
    orch = Orchestrator(load_example("multi-phase.yaml"))
    _run(orch, "init-repo")
    orch.start_task("install-deps")
    orch.fail_task("install-deps")
    assert orch.blocked_tasks() == ["api", "ui", "docs", "e2e", "deploy"]
    assert _ids(orch.get_ready_tasks()) == ["lint-config"]


def test_protocol_violations_return_false():
    orch = Orchestrator(diamond())
    assert not orch.start_task("nope")
    assert not orch.start_task("B")  # dependency not completed
    assert orch.start_task("A")
    assert not orch.start_task("A")  # already running

    assert not orch.complete_task("nope")
    assert not orch.fail_task("nope")
    assert orch.complete_task("A")
    assert not orch.complete_task("A")
    assert not orch.fail_task("A")
    assert orch.completed == {"A"}
    assert orch.failed == set()


def test_progress_and_completion():
    orch = Orchestrator(diamond())
    assert orch.get_progress() == 0
    assert not orch.is_complete()

    _run(orch, "A")
    assert orch.get_progress() == 25
    _run(orch, "B", "C")
    assert orch.get_progress() == 75
    _run(orch, "D")
    assert orch.get_progress() == 100
    assert orch.is_complete()


def test_empty_orchestrator():
    orch = Orchestrator([])
    assert orch.get_progress() == 100
    assert orch.is_complete()
    assert orch.get_ready_tasks() == []


def test_reset_clears_sets_and_cache():
    orch = Orchestrator(diamond())
    _run(orch, "A")
    orch.start_task("B")
    orch.fail_task("B")

    orch.reset()
    assert orch.get_status().completed == 0
    assert orch.get_progress() == 0
    assert orch.blocked_tasks() == []
    assert all(n.status == "pending" for n in orch.get_graph().nodes.values())
    assert _ids(orch.get_ready_tasks()) == ["A"]


def test_instances_do_not_share_state():
    phases = diamond()
    first = Orchestrator(phases)
    second = Orchestrator(phases)
    _run(first, "A")
    assert second.completed == set()
    assert second.get_graph().nodes["A"].status == "pending"
    assert first.get_graph() is not second.get_graph()


def test_cyclic_graph_never_raises():
    orch = Orchestrator(load_example("cycle.yaml"))
    assert _ids(orch.get_ready_tasks()) == ["start"]
    _run(orch, "start")
    assert orch.get_ready_tasks() == []
    assert not orch.is_complete()
    orch.fail_task("x")
    assert set(orch.blocked_tasks()) == {"y", "after"}


def test_execution_plan_from_orchestrator():
    plan = Orchestrator(diamond()).get_execution_plan()
    assert plan.levels == [["A"], ["B", "C"], ["D"]]
