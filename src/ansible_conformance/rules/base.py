"""Rule definition shared by the registry and the built-in rule set."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional

from ..models import Artifact, ArtifactKind, FindingSeverity, MalformedArtifactError, ProblemKind

RulePredicate = Callable[[Artifact, Mapping[str, Any]], Optional[str]]


@dataclass(frozen=True, slots=True)
class Rule:
    """A checkable convention.

    ``check`` returns ``None`` when the artifact conforms and a failure
    message otherwise. Rules with a ``problem`` kind carry scan problems and
    are matched against artifacts the scanner could not read or parse.
    """

    id: str
    description: str
    target: Optional[ArtifactKind]
    check: RulePredicate
    severity: FindingSeverity
    problem: Optional[ProblemKind] = None

    def applies_to(self, artifact: Artifact) -> bool:
        if artifact.problem is not None:
            return self.problem is artifact.problem.kind
        return self.problem is None and self.target is artifact.kind

    def with_severity(self, severity: FindingSeverity) -> "Rule":
        return replace(self, severity=severity)


__all__ = ["MalformedArtifactError", "Rule", "RulePredicate"]
