"""Finding models shared across the evaluator and reporting layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .artifact import Artifact


class FindingSeverity(str, Enum):
    """Severity levels supported by the conformance rules."""

    WARNING = "warning"
    ERROR = "error"


SEVERITY_RANK = {
    FindingSeverity.WARNING: 0,
    FindingSeverity.ERROR: 1,
}


@dataclass(frozen=True, slots=True)
class Finding:
    """Outcome of evaluating one rule against one artifact."""

    rule_id: str
    artifact: "Artifact"
    passed: bool
    message: str
    severity: FindingSeverity

    @property
    def failed(self) -> bool:
        return not self.passed
