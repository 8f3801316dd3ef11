from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

LINT_CODE_PREFIX = "L_"


@dataclass(frozen=True)
class TaskDefError(Exception):
    """Error envelope shared by loaders, validators, linters and the CLI.

    Loaders raise these; validators and linters return lists of them so the
    CLI can print every problem at once. ``path`` points into the document
    (``phases[1].tasks[0].id``) or names a CLI argument (``task_id``).
    """

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    @property
    def location(self) -> str:
        loc = ":".join(p for p in (self.file, self.path) if p)
        return loc or "<input>"

    @property
    def source(self) -> str:
        if isinstance(self, TaskLoadError):
            return "load"
        if self.code.startswith(LINT_CODE_PREFIX):
            return "lint"
        return "validate"

    def sort_key(self) -> tuple[str, str, str]:
        return (self.file or "", self.path or "", self.code)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "file": self.file,
            "path": self.path,
            "severity": "error",
            "source": self.source,
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.code}: {self.message}"


class TaskLoadError(TaskDefError):
    """Raised when a phase, state or config file cannot be read or parsed."""


class TaskValidationError(TaskDefError):
    pass
