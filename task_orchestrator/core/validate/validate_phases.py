from __future__ import annotations

import math
from typing import Any, Iterable, Optional, cast

from task_orchestrator.core.errors import TaskValidationError
from task_orchestrator.core.model import DEFAULT_ESTIMATED_MINUTES, Phase, Task


def _is_list_of_str(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _first_key(raw: dict[str, Any], *keys: str) -> tuple[Optional[str], Any]:
    """Return (key, value) for the first key present; task files mix camelCase and snake_case."""
    for k in keys:
        if k in raw:
            return k, raw[k]
    return None, None


def validate_phases(
    doc: dict[str, Any],
) -> tuple[Optional[list[Phase]], list[TaskValidationError]]:
    """Validate and normalize phase/task definitions.

    Returns (phases, errors). Phases is None when errors exist.

    Dangling dependency ids and cycles are *not* errors here: the graph
    algorithms tolerate them and lint reports them.
    """

    file = cast(Optional[str], doc.get("__file__"))
    errors: list[TaskValidationError] = []

    raw_phases = doc.get("phases")
    if not isinstance(raw_phases, list):
        errors.append(
            TaskValidationError(
                code="E_REQUIRED_FIELD",
                message="phases is required and must be an array",
                file=file,
                path="phases",
            )
        )
        return None, _sorted(errors)

    phases: list[Phase] = []
    phase_ids: set[str] = set()
    task_ids: set[str] = set()

    for pi, raw_phase in enumerate(raw_phases):
        phase_path = f"phases[{pi}]"
        if not isinstance(raw_phase, dict):
            errors.append(
                TaskValidationError(
                    code="E_INVALID_TYPE",
                    message="phase must be an object",
                    file=file,
                    path=phase_path,
                )
            )
            continue

        pid = raw_phase.get("id")
        if not isinstance(pid, str) or not pid.strip():
            errors.append(
                TaskValidationError(
                    code="E_REQUIRED_FIELD",
                    message="phase id is required and must be a non-empty string",
                    file=file,
                    path=f"{phase_path}.id",
                )
            )
            continue

        if pid in phase_ids:
            errors.append(
                TaskValidationError(
                    code="E_DUPLICATE_ID",
                    message=f"duplicate phase id: {pid}",
                    file=file,
                    path=f"{phase_path}.id",
                )
            )
            continue
        phase_ids.add(pid)

        name = raw_phase.get("name")
        if name is None:
            name = pid
        elif not isinstance(name, str):
            errors.append(
                TaskValidationError(
                    code="E_INVALID_TYPE",
                    message="phase name must be a string",
                    file=file,
                    path=f"{phase_path}.name",
                )
            )
            continue

        phase_desc = raw_phase.get("description")
        if phase_desc is not None and not isinstance(phase_desc, str):
            errors.append(
                TaskValidationError(
                    code="E_INVALID_TYPE",
                    message="phase description must be a string",
                    file=file,
                    path=f"{phase_path}.description",
                )
            )

        raw_tasks = raw_phase.get("tasks")
        if raw_tasks is None:
            raw_tasks = []
        if not isinstance(raw_tasks, list):
            errors.append(
                TaskValidationError(
                    code="E_INVALID_TYPE",
                    message="tasks must be an array",
                    file=file,
                    path=f"{phase_path}.tasks",
                )
            )
            continue

        tasks: list[Task] = []
        for ti, raw_task in enumerate(raw_tasks):
            task = _validate_task(raw_task, f"{phase_path}.tasks[{ti}]", file, task_ids, errors)
            if task is not None:
                task_ids.add(task.id)
                tasks.append(task)

        phases.append(
            Phase(
                id=pid,
                name=name,
                tasks=tasks,
                description=phase_desc if isinstance(phase_desc, str) else "",
            )
        )

    if errors:
        return None, _sorted(errors)
    return phases, []


def _validate_task(
    raw: Any,
    task_path: str,
    file: Optional[str],
    seen_ids: set[str],
    errors: list[TaskValidationError],
) -> Optional[Task]:
    if not isinstance(raw, dict):
        errors.append(
            TaskValidationError(
                code="E_INVALID_TYPE",
                message="task must be an object",
                file=file,
                path=task_path,
            )
        )
        return None

    tid = raw.get("id")
    if not isinstance(tid, str) or not tid.strip():
        errors.append(
            TaskValidationError(
                code="E_REQUIRED_FIELD",
                message="id is required and must be a non-empty string",
                file=file,
                path=f"{task_path}.id",
            )
        )
        return None

    # Ids are global across phases, not per phase.
    if tid in seen_ids:
        errors.append(
            TaskValidationError(
                code="E_DUPLICATE_ID",
                message=f"duplicate task id: {tid}",
                file=file,
                path=f"{task_path}.id",
            )
        )
        return None

    ok = True

    description = raw.get("description")
    if description is None:
        description = tid
    elif not isinstance(description, str):
        errors.append(
            TaskValidationError(
                code="E_INVALID_TYPE",
                message="description must be a string",
                file=file,
                path=f"{task_path}.description",
            )
        )
        ok = False

    key, minutes = _first_key(raw, "estimatedMinutes", "estimated_minutes", "estimatedDuration")
    if key is None or minutes is None:
        minutes = DEFAULT_ESTIMATED_MINUTES
    elif not _is_number(minutes) or not math.isfinite(minutes) or minutes <= 0:
        errors.append(
            TaskValidationError(
                code="E_INVALID_DURATION",
                message=f"{key} must be a positive, finite number of minutes",
                file=file,
                path=f"{task_path}.{key}",
            )
        )
        ok = False

    deps = raw.get("dependencies")
    if deps is None:
        deps = []
    elif not _is_list_of_str(deps):
        errors.append(
            TaskValidationError(
                code="E_INVALID_TYPE",
                message="dependencies must be an array of strings",
                file=file,
                path=f"{task_path}.dependencies",
            )
        )
        ok = False

    optional = raw.get("optional", False)
    if optional is None:
        optional = False
    elif not isinstance(optional, bool):
        errors.append(
            TaskValidationError(
                code="E_INVALID_TYPE",
                message="optional must be a boolean",
                file=file,
                path=f"{task_path}.optional",
            )
        )
        ok = False

    extras: dict[str, Optional[str]] = {}
    for field_name, keys in (
        ("validation_command", ("validationCommand", "validation_command")),
        ("validation_expected", ("validationExpected", "validation_expected")),
    ):
        k, v = _first_key(raw, *keys)
        if v is not None and not isinstance(v, str):
            errors.append(
                TaskValidationError(
                    code="E_INVALID_TYPE",
                    message=f"{k} must be a string",
                    file=file,
                    path=f"{task_path}.{k}",
                )
            )
            ok = False
        extras[field_name] = v

    if not ok:
        return None

    return Task(
        id=tid,
        description=cast(str, description),
        estimated_minutes=minutes,
        dependencies=list(cast(list[str], deps)),
        optional=cast(bool, optional),
        validation_command=extras["validation_command"],
        validation_expected=extras["validation_expected"],
    )


def _sorted(errors: Iterable[TaskValidationError]) -> list[TaskValidationError]:
    return sorted(errors, key=TaskValidationError.sort_key)
