from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional


@dataclass(frozen=True)
class PlanError(Exception):
    """Problem with a task snapshot or its configuration, found before analysis.

    The analysis engines never raise these. ``source`` tells CLI consumers
    which stage rejected the input (load, validate or config).
    """

    source: ClassVar[str] = "plan"

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    @property
    def location(self) -> str:
        parts = [p for p in (self.file, self.path) if p]
        return ":".join(parts) if parts else "<tasks>"

    def sort_key(self) -> tuple[str, str, str]:
        return (self.file or "", self.path or "", self.code)

    def to_item(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "file": self.file,
            "path": self.path,
            "source": self.source,
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.code}: {self.message}"


class TaskLoadError(PlanError):
    source = "load"


class TaskValidationError(PlanError):
    source = "validate"


class PlanConfigError(PlanError):
    """Bad CLI option or weights file."""

    source = "config"
