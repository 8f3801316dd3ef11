from __future__ import annotations

import logging
from typing import Iterable, Optional

from task_orchestrator.core.graph.build import build_task_graph
from task_orchestrator.core.graph.plan import generate_execution_plan
from task_orchestrator.core.model import (
    ExecutionPlan,
    OrchestratorStatus,
    Phase,
    TaskGraph,
    TaskNode,
)
from task_orchestrator.core.runtime.config import DEFAULT_CONFIG, OrchestratorConfig

logger = logging.getLogger(__name__)


class Orchestrator:
    """Bookkeeping side of a start/complete/fail handshake.

    The caller executes tasks; the orchestrator decides what may run next and
    records outcomes. It never performs I/O and never raises on protocol
    misuse: bad calls return False or do nothing.

    ``max_concurrent`` is advisory. ``start_task`` does not check it; callers
    consult ``can_start_more()`` / ``get_next_tasks()`` first.

    Authoritative state is the running/completed/failed id sets plus the
    blocked set derived from failures. ``TaskNode.status`` mirrors them for
    display and is never read back for decisions.
    """

    def __init__(self, phases: Iterable[Phase], config: Optional[OrchestratorConfig] = None):
        # Each instance builds its own graph so node status caches are never shared.
        self._graph: TaskGraph = build_task_graph(phases)
        self._config: OrchestratorConfig = config or DEFAULT_CONFIG
        self._running: set[str] = set()
        self._completed: set[str] = set()
        self._failed: set[str] = set()
        self._blocked: set[str] = set()

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def running(self) -> frozenset[str]:
        return frozenset(self._running)

    @property
    def completed(self) -> frozenset[str]:
        return frozenset(self._completed)

    @property
    def failed(self) -> frozenset[str]:
        return frozenset(self._failed)

    def get_graph(self) -> TaskGraph:
        return self._graph

    def get_execution_plan(self) -> ExecutionPlan:
        return generate_execution_plan(self._graph)

    def blocked_tasks(self) -> list[str]:
        return [nid for nid in self._graph.nodes if nid in self._blocked]

    # ── readiness ──

    def is_task_ready(self, task_id: str) -> bool:
        if task_id in self._completed or task_id in self._failed or task_id in self._running:
            return False
        if task_id in self._blocked:
            return False
        node = self._graph.nodes.get(task_id)
        if node is None:
            return False
        return all(dep in self._completed for dep in node.dependencies)

    def get_ready_tasks(self) -> list[TaskNode]:
        ready = [n for nid, n in self._graph.nodes.items() if self.is_task_ready(nid)]
        # sort is stable: equal keys keep declaration order
        if self._config.prioritize_critical_path:
            ready.sort(key=lambda n: (not n.critical_path, n.depth))
        else:
            ready.sort(key=lambda n: n.depth)
        return ready

    def can_start_more(self) -> bool:
        return len(self._running) < self._config.max_concurrent

    def get_next_tasks(self) -> list[TaskNode]:
        """Ready tasks that fit under max_concurrent. Does not start them."""
        available = max(0, self._config.max_concurrent - len(self._running))
        return self.get_ready_tasks()[:available]

    # ── lifecycle ──

    def start_task(self, task_id: str) -> bool:
        if not self.is_task_ready(task_id):
            logger.debug("start_task(%s) rejected: not ready", task_id)
            return False
        self._running.add(task_id)
        self._graph.nodes[task_id].status = "running"
        logger.debug("task %s started (%d running)", task_id, len(self._running))
        return True

    def complete_task(self, task_id: str) -> bool:
        """Record success.

        Unknown, already finished and blocked ids are ignored (returns False).
        Blocked is terminal: only load_state or reset clears it.
        """
        node = self._graph.nodes.get(task_id)
        if not self._can_finish(node):
            logger.debug("complete_task(%s) ignored", task_id)
            return False
        self._running.discard(task_id)
        self._completed.add(task_id)
        node.status = "completed"
        self._refresh_dependents(node)
        logger.debug("task %s completed", task_id)
        return True

    def fail_task(self, task_id: str) -> bool:
        """Record failure and block everything downstream of it."""
        node = self._graph.nodes.get(task_id)
        if not self._can_finish(node):
            logger.debug("fail_task(%s) ignored", task_id)
            return False
        self._running.discard(task_id)
        self._failed.add(task_id)
        node.status = "failed"
        blocked = self._block_dependents(node)
        logger.info("task %s failed; %d downstream task(s) blocked", task_id, blocked)
        return True

    # ── progress ──

    def is_complete(self) -> bool:
        return len(self._completed) + len(self._failed) == len(self._graph.nodes)

    def get_progress(self) -> int:
        total = len(self._graph.nodes)
        if total == 0:
            return 100
        return round(len(self._completed) / total * 100)

    def get_status(self) -> OrchestratorStatus:
        total = len(self._graph.nodes)
        completed = len(self._completed)
        failed = len(self._failed)
        waiting = len(self._running | self._blocked)
        return OrchestratorStatus(
            total=total,
            completed=completed,
            running=len(self._running),
            failed=failed,
            pending=total - completed - failed - waiting,
            blocked=len(self._blocked),
            progress=self.get_progress(),
        )

    # ── state ──

    def reset(self) -> None:
        self._running.clear()
        self._completed.clear()
        self._failed.clear()
        self._blocked.clear()
        for node in self._graph.nodes.values():
            node.status = "pending"

    def load_state(self, completed: Iterable[str], failed: Iterable[str]) -> None:
        """Rehydrate from persisted id lists.

        The result matches replaying complete_task/fail_task live: unknown ids
        are dropped, and blocking and ready flags are rebuilt from the sets.
        """
        self.reset()

        for task_id in completed:
            node = self._graph.nodes.get(task_id)
            if node is None:
                logger.warning("load_state: unknown completed task id %s ignored", task_id)
                continue
            self._completed.add(task_id)
            node.status = "completed"

        failed_nodes: list[TaskNode] = []
        for task_id in failed:
            node = self._graph.nodes.get(task_id)
            if node is None:
                logger.warning("load_state: unknown failed task id %s ignored", task_id)
                continue
            if task_id in self._completed:
                logger.warning("load_state: task %s listed as completed and failed; keeping completed", task_id)
                continue
            self._failed.add(task_id)
            node.status = "failed"
            failed_nodes.append(node)

        for node in failed_nodes:
            self._block_dependents(node)

        for task_id in self._completed:
            self._refresh_dependents(self._graph.nodes[task_id])

    def export_state(self) -> tuple[list[str], list[str]]:
        """The (completed, failed) lists to persist, in declaration order."""
        nodes = self._graph.nodes
        return (
            [nid for nid in nodes if nid in self._completed],
            [nid for nid in nodes if nid in self._failed],
        )

    # ── internals ──

    def _can_finish(self, node: Optional[TaskNode]) -> bool:
        if node is None:
            return False
        return not (node.id in self._completed or node.id in self._failed or node.id in self._blocked)

    def _refresh_dependents(self, node: TaskNode) -> None:
        for dep_id in node.dependents:
            dependent = self._graph.nodes[dep_id]
            if dependent.status == "pending" and self.is_task_ready(dep_id):
                dependent.status = "ready"

    def _block_dependents(self, node: TaskNode) -> int:
        to_block = list(node.dependents)
        count = 0
        while to_block:
            nid = to_block.pop()
            if nid in self._blocked or nid in self._completed or nid in self._failed:
                continue
            self._blocked.add(nid)
            dependent = self._graph.nodes[nid]
            dependent.status = "blocked"
            count += 1
            to_block.extend(dependent.dependents)
        return count
