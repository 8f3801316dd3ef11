from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from task_orchestrator.core.model import OrchestratorStatus
from task_orchestrator.core.runtime.orchestrator import Orchestrator


@dataclass(frozen=True)
class SimulationRound:
    started: list[str]
    completed: list[str]
    failed: list[str]


@dataclass(frozen=True)
class SimulationResult:
    rounds: list[SimulationRound]
    status: OrchestratorStatus
    blocked: list[str]
    finished: bool


def simulate(
    orchestrator: Orchestrator,
    *,
    fail_ids: Iterable[str] = (),
    max_rounds: Optional[int] = None,
) -> SimulationResult:
    """Drive the start/complete/fail handshake without doing any work.

    - Each round admits ``get_next_tasks()`` (so max_concurrent is respected),
      starts them, then finishes them: ids in ``fail_ids`` fail, the rest complete.
    - Stops when nothing can be started, or after ``max_rounds``.
    - ``finished`` is ``is_complete()`` at the end; blocked tasks keep it False.
    """

    to_fail = set(fail_ids)
    limit = max_rounds if max_rounds is not None else len(orchestrator.get_graph().nodes) + 1
    rounds: list[SimulationRound] = []

    for _ in range(max(0, limit)):
        batch = [n.id for n in orchestrator.get_next_tasks()]
        started = [tid for tid in batch if orchestrator.start_task(tid)]
        if not started:
            break

        completed: list[str] = []
        failed: list[str] = []
        for tid in started:
            if tid in to_fail:
                orchestrator.fail_task(tid)
                failed.append(tid)
            else:
                orchestrator.complete_task(tid)
                completed.append(tid)

        rounds.append(SimulationRound(started=started, completed=completed, failed=failed))

    return SimulationResult(
        rounds=rounds,
        status=orchestrator.get_status(),
        blocked=orchestrator.blocked_tasks(),
        finished=orchestrator.is_complete(),
    )
