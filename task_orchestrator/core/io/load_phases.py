from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from task_orchestrator.core.errors import TaskLoadError


def read_document(p: Path, *, parse_code: str | None = None) -> Any:
    """Parse a YAML/JSON file by suffix. Raises TaskLoadError on any failure."""

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except Exception as e:  # pragma: no cover
        raise TaskLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            return yaml.safe_load(raw_text)
        if suffix == ".json":
            return json.loads(raw_text)
        raise TaskLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message="supported formats are .yaml/.yml and .json",
            file=str(p),
        )
    except TaskLoadError:
        raise
    except Exception as e:
        code = parse_code or ("E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE")
        raise TaskLoadError(code=code, message=str(e), file=str(p)) from e


def load_phases(path: str) -> dict[str, Any]:
    """Load a YAML/JSON phase definition file.

    Accepts either a mapping with a ``phases`` key or a bare list of phases.
    Returns a dict with keys: schema_version, phases, __file__.
    Does not coerce types; the validator owns shape checking.
    """

    p = Path(path)
    if not p.exists():
        raise TaskLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    data = read_document(p)

    if isinstance(data, list):
        data = {"phases": data}

    if not isinstance(data, dict):
        raise TaskLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object or a list of phases",
            file=str(p),
        )

    return {
        "schema_version": data.get("schema_version"),
        "phases": data.get("phases"),
        "__file__": str(p),
    }
