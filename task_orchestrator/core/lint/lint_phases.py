from __future__ import annotations

from typing import Any, Iterator, Optional

from task_orchestrator.core.errors import TaskValidationError


# Structural lint rules. None of these stop graph building; the graph
# algorithms fall back on their own, lint just makes the problems visible.
# - L_UNKNOWN_DEPENDENCY: dependency id not declared anywhere
# - L_SELF_DEPENDENCY: task lists itself as a dependency
# - L_CYCLE_DETECTED: dependency cycle exists
# - L_EMPTY_PHASE: phase declares no tasks


def lint_phases(doc: dict[str, Any]) -> list[TaskValidationError]:
    """Lint phase definitions.

    Runs *in addition to* validation and works best-effort on partially
    invalid input.
    """

    file = _cast_optional_str(doc.get("__file__"))

    phases = doc.get("phases")
    if not isinstance(phases, list):
        # Let validator handle shape.
        return []

    errors: list[TaskValidationError] = []

    id_to_path: dict[str, str] = {}
    id_to_deps: dict[str, list[str]] = {}

    for pi, raw_phase in enumerate(phases):
        if not isinstance(raw_phase, dict):
            continue
        tasks = raw_phase.get("tasks")
        if tasks is None or tasks == []:
            errors.append(
                TaskValidationError(
                    code="L_EMPTY_PHASE",
                    message=f"phase declares no tasks: {raw_phase.get('id')}",
                    file=file,
                    path=f"phases[{pi}].tasks",
                )
            )
            continue
        if not isinstance(tasks, list):
            continue
        for ti, raw_task in enumerate(tasks):
            if not isinstance(raw_task, dict):
                continue
            tid = raw_task.get("id")
            if not isinstance(tid, str) or tid in id_to_path:
                continue
            id_to_path[tid] = f"phases[{pi}].tasks[{ti}]"
            deps_raw = raw_task.get("dependencies")
            deps: list[str] = []
            if isinstance(deps_raw, list):
                deps = [d for d in deps_raw if isinstance(d, str)]
            id_to_deps[tid] = deps

    for tid, deps in id_to_deps.items():
        for di, dep in enumerate(deps):
            if dep == tid:
                errors.append(
                    TaskValidationError(
                        code="L_SELF_DEPENDENCY",
                        message=f"task depends on itself: {tid}",
                        file=file,
                        path=f"{id_to_path[tid]}.dependencies[{di}]",
                    )
                )
            elif dep not in id_to_deps:
                errors.append(
                    TaskValidationError(
                        code="L_UNKNOWN_DEPENDENCY",
                        message=f"dependencies references unknown id: {dep}",
                        file=file,
                        path=f"{id_to_path[tid]}.dependencies[{di}]",
                    )
                )

    for tid, msg in _detect_cycles(id_to_deps):
        errors.append(
            TaskValidationError(
                code="L_CYCLE_DETECTED",
                message=msg,
                file=file,
                path=f"{id_to_path.get(tid, 'phases')}.dependencies",
            )
        )

    return _sorted(errors)


def _detect_cycles(id_to_deps: dict[str, list[str]]) -> list[tuple[str, str]]:
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {tid: WHITE for tid in id_to_deps.keys()}
    emitted: set[str] = set()
    out: list[tuple[str, str]] = []

    for root in list(state.keys()):
        if state[root] != WHITE:
            continue
        state[root] = GRAY
        path: list[str] = [root]
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(id_to_deps.get(root, [])))]

        while stack:
            u, deps = stack[-1]
            v = next(deps, None)
            if v is None:
                stack.pop()
                path.pop()
                state[u] = BLACK
                continue
            if v == u or v not in state:
                # self edges and unknown ids have their own rules
                continue
            if state[v] == GRAY:
                # cycle: v ... u -> v
                cycle = path[path.index(v) :] + [v]
                key = "->".join(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "dependency cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                state[v] = GRAY
                path.append(v)
                stack.append((v, iter(id_to_deps.get(v, []))))

    return out


def _sorted(errors: list[TaskValidationError]) -> list[TaskValidationError]:
    return sorted(errors, key=TaskValidationError.sort_key)


def _cast_optional_str(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None
