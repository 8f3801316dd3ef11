from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional


TaskStatus = Literal["pending", "ready", "running", "completed", "failed", "blocked"]

DEFAULT_ESTIMATED_MINUTES = 5


@dataclass(frozen=True)
class Task:
    """One unit of work as declared in a phase file.

    ``optional``, ``validation_command`` and ``validation_expected`` are not
    used for scheduling; they are carried through unchanged for executors
    that consume the definitions (e.g. to run a post-task check).
    """

    id: str
    description: str
    estimated_minutes: float
    dependencies: list[str]

    optional: bool = False
    validation_command: Optional[str] = None
    validation_expected: Optional[str] = None


@dataclass(frozen=True)
class Phase:
    id: str
    name: str
    tasks: list[Task]

    description: str = ""


@dataclass
class TaskNode:
    """Per-task graph node.

    ``status`` is a display cache written by the orchestrator only; readiness
    and blocking are decided from the orchestrator's id sets.
    """

    task: Task
    phase_id: str
    dependencies: list[str]
    dependents: list[str] = field(default_factory=list)
    status: TaskStatus = "pending"
    depth: int = 0
    critical_path: bool = False

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def estimated_minutes(self) -> float:
        return self.task.estimated_minutes


@dataclass
class TaskGraph:
    nodes: dict[str, TaskNode]
    phases: list[Phase]
    critical_path_tasks: list[str]
    total_estimated_minutes: float


@dataclass(frozen=True)
class ExecutionPlan:
    levels: list[list[str]]
    critical_path: list[str]
    estimated_duration: float
    parallel_opportunities: int


@dataclass(frozen=True)
class OrchestratorStatus:
    total: int
    completed: int
    running: int
    failed: int
    pending: int
    blocked: int
    progress: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "running": self.running,
            "failed": self.failed,
            "pending": self.pending,
            "blocked": self.blocked,
            "progress": self.progress,
        }
