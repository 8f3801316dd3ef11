from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


@dataclass(frozen=True)
class OrchestratorConfig:
    max_concurrent: int = 3
    prioritize_critical_path: bool = True


DEFAULT_CONFIG = OrchestratorConfig()

ENV_MAX_CONCURRENT = "TASKORCH_MAX_CONCURRENT"
ENV_PRIORITIZE_CRITICAL_PATH = "TASKORCH_PRIORITIZE_CRITICAL_PATH"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    pass


def _check_max_concurrent(v: Any, source: str) -> int:
    if not isinstance(v, int) or isinstance(v, bool) or v < 1:
        raise ConfigError(f"{source}: max_concurrent must be an integer >= 1")
    return v


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load orchestrator settings from a YAML file.

    Format:
      max_concurrent: 2
      prioritize_critical_path: false

    Returns only the keys present in the file.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("config file must be a mapping")

    out: dict[str, Any] = {}
    for k, v in raw.items():
        if k == "max_concurrent":
            out[k] = _check_max_concurrent(v, str(p))
        elif k == "prioritize_critical_path":
            if not isinstance(v, bool):
                raise ConfigError(f"{p}: prioritize_critical_path must be a boolean")
            out[k] = v
        else:
            raise ConfigError(f"{p}: unknown config key: {k}")
    return out


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    out: dict[str, Any] = {}

    raw_max = env.get(ENV_MAX_CONCURRENT)
    if raw_max:
        try:
            value = int(raw_max)
        except ValueError as e:
            raise ConfigError(f"{ENV_MAX_CONCURRENT} must be an integer, got {raw_max!r}") from e
        out["max_concurrent"] = _check_max_concurrent(value, ENV_MAX_CONCURRENT)

    raw_prio = env.get(ENV_PRIORITIZE_CRITICAL_PATH)
    if raw_prio:
        flag = raw_prio.strip().lower()
        if flag in _TRUE:
            out["prioritize_critical_path"] = True
        elif flag in _FALSE:
            out["prioritize_critical_path"] = False
        else:
            raise ConfigError(f"{ENV_PRIORITIZE_CRITICAL_PATH} must be a boolean, got {raw_prio!r}")

    return out


def merged_config(*overrides: Mapping[str, Any]) -> OrchestratorConfig:
    """Return DEFAULT_CONFIG with each override applied in order (later wins)."""
    merged = DEFAULT_CONFIG
    for o in overrides:
        if o:
            merged = replace(merged, **dict(o))
    return merged


def load_config(
    config_file: str | None = None, environ: Optional[Mapping[str, str]] = None
) -> OrchestratorConfig:
    """Defaults < config file < environment."""
    file_values = load_config_file(config_file) if config_file else {}
    return merged_config(file_values, config_from_env(environ))
