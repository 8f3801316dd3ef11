from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

import yaml

from task_orchestrator.core.errors import TaskLoadError
from task_orchestrator.core.io.load_phases import read_document


def load_state_file(path: str) -> tuple[list[str], list[str]]:
    """Read persisted ``(completed, failed)`` id lists.

    A missing file is an empty state. The orchestrator never serializes itself;
    these two lists are the whole persistence boundary and are fed back through
    ``Orchestrator.load_state``.
    """

    p = Path(path)
    if not p.exists():
        return [], []

    data = read_document(p, parse_code="E_STATE_PARSE")
    if data is None:
        return [], []
    if not isinstance(data, dict):
        raise TaskLoadError(
            code="E_STATE_INVALID",
            message="state file must be a mapping with completed/failed lists",
            file=str(p),
        )

    out: list[list[str]] = []
    for key in ("completed", "failed"):
        ids = data.get(key) or []
        if not isinstance(ids, list) or not all(isinstance(x, str) for x in ids):
            raise TaskLoadError(
                code="E_STATE_INVALID",
                message=f"{key} must be a list of task ids",
                file=str(p),
                path=key,
            )
        out.append(list(ids))
    return out[0], out[1]


def save_state_file(path: str, completed: Iterable[str], failed: Iterable[str]) -> None:
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)

    payload = {"completed": list(completed), "failed": list(failed)}
    if p.suffix.lower() == ".json":
        p.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        return
    with open(p, "w", encoding="utf-8") as f:
        yaml.safe_dump(payload, f, sort_keys=False, default_flow_style=False)
