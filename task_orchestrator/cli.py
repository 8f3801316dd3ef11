from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from task_orchestrator.core.errors import TaskDefError, TaskLoadError, TaskValidationError
from task_orchestrator.core.graph.build import build_task_graph
from task_orchestrator.core.graph.plan import generate_execution_plan
from task_orchestrator.core.graph.toposort import topological_sort
from task_orchestrator.core.io.load_phases import load_phases
from task_orchestrator.core.io.state_store import load_state_file, save_state_file
from task_orchestrator.core.lint.lint_phases import lint_phases
from task_orchestrator.core.model import Phase
from task_orchestrator.core.report.format_plan import (
    format_execution_plan,
    format_graph_as_mermaid,
    summarize_graph,
)
from task_orchestrator.core.runtime.config import ConfigError, OrchestratorConfig, load_config
from task_orchestrator.core.runtime.orchestrator import Orchestrator
from task_orchestrator.core.runtime.simulate import simulate
from task_orchestrator.core.validate.validate_phases import validate_phases

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Task orchestrator CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a phase file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate phase/task definitions."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    def _emit_json(ok: bool, *, exit_code: int, errors: list[TaskDefError], summary: Any) -> None:
        payload = {
            "tool": "taskorch",
            "command": "validate",
            "ok": ok,
            "error_count": len(errors),
            "errors": [e.to_dict() for e in errors],
            "summary": summary,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        doc = load_phases(path)
    except TaskLoadError as e:
        if format == "json":
            _emit_json(False, exit_code=1, errors=[e], summary=None)
        _print_errors([e])
        raise typer.Exit(code=1)

    phases, errors = validate_phases(doc)
    if errors or phases is None:
        if format == "json":
            _emit_json(False, exit_code=2, errors=list(errors), summary=None)
        _print_errors(list(errors))
        raise typer.Exit(code=2)

    graph = build_task_graph(phases)
    if format == "text":
        typer.echo(summarize_graph(graph))
        return

    summary = {
        "phase_count": len(graph.phases),
        "task_count": len(graph.nodes),
        "total_estimated_minutes": graph.total_estimated_minutes,
        "critical_path": list(graph.critical_path_tasks),
    }
    _emit_json(True, exit_code=0, errors=[], summary=summary)


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a phase file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Lint phase definitions (cycles, unknown dependencies, empty phases)."""
    _check_format(format, "E_LINT_UNKNOWN_FORMAT")

    def _emit_json(ok: bool, errors: list[TaskDefError], exit_code: int) -> None:
        payload = {
            "tool": "taskorch",
            "command": "lint",
            "ok": ok,
            "error_count": len(errors),
            "errors": [e.to_dict() for e in errors],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        doc = load_phases(path)
    except TaskLoadError as e:
        if format == "json":
            _emit_json(False, [e], 1)
        _print_errors([e])
        raise typer.Exit(code=1)

    lint_errors = lint_phases(doc)
    _, validation_errors = validate_phases(doc)
    errors: list[TaskDefError] = [*lint_errors, *validation_errors]

    if format == "text":
        if errors:
            _print_errors(errors)
            raise typer.Exit(code=2)
        typer.echo("OK: lint passed")
        return

    if errors:
        _emit_json(False, errors, 2)
    _emit_json(True, [], 0)


@app.command("plan")
def plan(path: str = typer.Argument(..., help="Path to a phase file")) -> None:
    """Print the leveled execution plan."""
    graph = build_task_graph(_load_validated(path))
    typer.echo(format_execution_plan(generate_execution_plan(graph)))


@app.command("graph")
def graph_cmd(
    path: str = typer.Argument(..., help="Path to a phase file"),
    out: Optional[str] = typer.Option(None, "--out", help="Write the Mermaid diagram to this file"),
) -> None:
    """Export the dependency graph as a Mermaid flowchart."""
    text = format_graph_as_mermaid(build_task_graph(_load_validated(path)))
    if out is None:
        typer.echo(text)
        return
    p = Path(out)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"OK: wrote {out}")


@app.command("order")
def order(path: str = typer.Argument(..., help="Path to a phase file")) -> None:
    """Print one valid execution order, one task id per line."""
    for tid in topological_sort(build_task_graph(_load_validated(path))):
        typer.echo(tid)


@app.command("status")
def status(
    path: str = typer.Argument(..., help="Path to a phase file"),
    state: Optional[str] = typer.Option(None, "--state", help="State file with completed/failed ids"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Show progress for a persisted state."""
    _check_format(format, "E_STATUS_UNKNOWN_FORMAT")
    orch = _orchestrator(path, state, _resolve_config(None, None))
    st = orch.get_status()

    if format == "json":
        payload = {
            "tool": "taskorch",
            "command": "status",
            "status": st.to_dict(),
            "complete": orch.is_complete(),
            "blocked": orch.blocked_tasks(),
            "ready": [n.id for n in orch.get_ready_tasks()],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    table = Table(title="taskorch status")
    table.add_column("Task")
    table.add_column("Phase")
    table.add_column("Status")
    table.add_column("Depth")
    table.add_column("Critical")
    for node in orch.get_graph().nodes.values():
        table.add_row(
            node.id,
            node.phase_id,
            node.status,
            str(node.depth),
            "yes" if node.critical_path else "",
        )
    console.print(table)
    console.print(
        f"Progress: {st.progress}% (completed={st.completed}, failed={st.failed}, "
        f"blocked={st.blocked}, pending={st.pending})"
    )


@app.command("next")
def next_cmd(
    path: str = typer.Argument(..., help="Path to a phase file"),
    state: Optional[str] = typer.Option(None, "--state", help="State file with completed/failed ids"),
    max_concurrent: Optional[int] = typer.Option(None, "--max-concurrent", min=1),
    config: Optional[str] = typer.Option(None, "--config", help="YAML orchestrator config"),
) -> None:
    """Print the task ids an executor should start next."""
    orch = _orchestrator(path, state, _resolve_config(config, max_concurrent))
    for node in orch.get_next_tasks():
        typer.echo(node.id)


@app.command("complete")
def complete(
    path: str = typer.Argument(..., help="Path to a phase file"),
    task_id: str = typer.Argument(..., help="Task id to mark completed"),
    state: str = typer.Option(..., "--state", help="State file to update"),
) -> None:
    """Record a task as completed and persist the state."""
    orch = _orchestrator(path, state, _resolve_config(None, None))
    _check_unfinished(orch, task_id)
    if not orch.start_task(task_id):
        _fail_with(
            TaskValidationError(
                code="E_TASK_NOT_READY",
                message=f"task is not ready (unfinished dependencies or blocked): {task_id}",
                path="task_id",
            )
        )
    orch.complete_task(task_id)
    save_state_file(state, *orch.export_state())
    typer.echo(f"OK: completed {task_id} (progress {orch.get_progress()}%)")


@app.command("fail")
def fail(
    path: str = typer.Argument(..., help="Path to a phase file"),
    task_id: str = typer.Argument(..., help="Task id to mark failed"),
    state: str = typer.Option(..., "--state", help="State file to update"),
) -> None:
    """Record a task as failed, block its dependents and persist the state."""
    orch = _orchestrator(path, state, _resolve_config(None, None))
    _check_unfinished(orch, task_id)
    if not orch.fail_task(task_id):
        _fail_with(
            TaskValidationError(
                code="E_TASK_BLOCKED",
                message=f"task is blocked by an upstream failure: {task_id}",
                path="task_id",
            )
        )
    save_state_file(state, *orch.export_state())
    blocked = orch.blocked_tasks()
    typer.echo(f"OK: failed {task_id}; blocked: {', '.join(blocked) if blocked else '-'}")


@app.command("simulate")
def simulate_cmd(
    path: str = typer.Argument(..., help="Path to a phase file"),
    fail_ids: list[str] = typer.Option([], "--fail", help="Task id to fail (repeatable)"),
    max_concurrent: Optional[int] = typer.Option(None, "--max-concurrent", min=1),
    config: Optional[str] = typer.Option(None, "--config", help="YAML orchestrator config"),
) -> None:
    """Dry-run the start/complete/fail protocol and print each round."""
    orch = Orchestrator(_load_validated(path), _resolve_config(config, max_concurrent))
    result = simulate(orch, fail_ids=fail_ids)

    for i, r in enumerate(result.rounds, start=1):
        line = f"Round {i}: {', '.join(r.started)}"
        if r.failed:
            line += f" (failed: {', '.join(r.failed)})"
        typer.echo(line)

    st = result.status
    typer.echo(
        f"Done: completed={st.completed} failed={st.failed} blocked={st.blocked} progress={st.progress}%"
    )
    if result.blocked:
        typer.echo(f"Blocked: {', '.join(result.blocked)}")
    if not result.finished:
        raise typer.Exit(code=3)


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        _fail_with(
            TaskValidationError(
                code=code,
                message=f"unknown format: {format} (choose one of: text, json)",
                file=None,
                path="format",
            )
        )


def _load_validated(path: str) -> list[Phase]:
    try:
        doc = load_phases(path)
    except TaskLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    phases, errors = validate_phases(doc)
    if errors or phases is None:
        _print_errors(list(errors))
        raise typer.Exit(code=2)
    return phases


def _resolve_config(config_file: Optional[str], max_concurrent: Optional[int]) -> OrchestratorConfig:
    try:
        cfg = load_config(config_file)
    except FileNotFoundError:
        _print_errors(
            [
                TaskLoadError(
                    code="E_CONFIG_FILE_NOT_FOUND",
                    message=f"config file not found: {config_file}",
                    file=None,
                    path="config",
                )
            ]
        )
        raise typer.Exit(code=1)
    except ConfigError as e:
        _fail_with(TaskValidationError(code="E_CONFIG_INVALID", message=str(e), path="config"))

    if max_concurrent is not None:
        cfg = OrchestratorConfig(
            max_concurrent=max_concurrent,
            prioritize_critical_path=cfg.prioritize_critical_path,
        )
    return cfg


def _orchestrator(path: str, state: Optional[str], config: OrchestratorConfig) -> Orchestrator:
    orch = Orchestrator(_load_validated(path), config)
    if state:
        try:
            completed, failed = load_state_file(state)
        except TaskLoadError as e:
            _print_errors([e])
            raise typer.Exit(code=1)
        orch.load_state(completed, failed)
    return orch


def _check_unfinished(orch: Orchestrator, task_id: str) -> None:
    if task_id not in orch.get_graph().nodes:
        _fail_with(
            TaskValidationError(code="E_UNKNOWN_TASK", message=f"unknown task id: {task_id}", path="task_id")
        )
    if task_id in orch.completed or task_id in orch.failed:
        _fail_with(
            TaskValidationError(
                code="E_TASK_FINISHED", message=f"task already finished: {task_id}", path="task_id"
            )
        )


def _fail_with(err: TaskDefError, exit_code: int = 2) -> None:
    _print_errors([err])
    raise typer.Exit(code=exit_code)


def _print_errors(errors: list[TaskDefError]) -> None:
    errors_sorted = sorted(errors, key=TaskDefError.sort_key)
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="taskorch")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
