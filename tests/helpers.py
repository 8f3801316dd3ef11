from __future__ import annotations

from task_orchestrator.core.io.load_phases import load_phases
from task_orchestrator.core.model import Phase, Task
from task_orchestrator.core.validate.validate_phases import validate_phases


def load_example(name: str) -> list[Phase]:
    phases, errors = validate_phases(load_phases(f"examples/{name}"))
    assert errors == [], errors
    assert phases is not None
    return phases


def diamond() -> list[Phase]:
    """A -> {B, C} -> D with durations 5/10/8/5."""
    return [
        Phase(
            id="foundation",
            name="Foundation",
            tasks=[
                Task(id="A", description="Init project", estimated_minutes=5, dependencies=[]),
                Task(id="B", description="Setup auth", estimated_minutes=10, dependencies=["A"]),
                Task(id="C", description="Setup DB", estimated_minutes=8, dependencies=["A"]),
                Task(id="D", description="Connect all", estimated_minutes=5, dependencies=["B", "C"]),
            ],
        )
    ]


def phases_from(spec: dict[str, tuple[float, list[str]]]) -> list[Phase]:
    """One phase from {id: (minutes, deps)}, in dict order."""
    return [
        Phase(
            id="p",
            name="p",
            tasks=[
                Task(id=tid, description=tid, estimated_minutes=minutes, dependencies=list(deps))
                for tid, (minutes, deps) in spec.items()
            ],
        )
    ]
