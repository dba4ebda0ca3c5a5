"""Artifact models produced by the project scanner."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ArtifactKind(str, Enum):
    """Classification of a scanned filesystem entity."""

    ROLE = "role"
    PLAYBOOK = "playbook"
    TASK = "task"
    VARIABLE_FILE = "variable_file"
    TAG = "tag"
    INVENTORY_FILE = "inventory_file"


class ProblemKind(str, Enum):
    """Reasons an artifact could not be scanned as expected."""

    MALFORMED = "malformed"
    UNREADABLE = "unreadable"


@dataclass(frozen=True, slots=True)
class ArtifactProblem:
    """Scan-time problem attached to an artifact."""

    kind: ProblemKind
    message: str


@dataclass(frozen=True, slots=True)
class Artifact:
    """Immutable snapshot of one classified entity in an Ansible project.

    ``path`` is relative to the scanned root and always uses forward slashes.
    ``content`` holds whatever the scanner extracted for the artifact kind:
    parsed YAML for files, a summary mapping for roles, ``None`` for tags.
    """

    kind: ArtifactKind
    path: str
    name: str
    content: Any = None
    role: Optional[str] = None
    problem: Optional[ArtifactProblem] = None

    @property
    def is_problem(self) -> bool:
        """Return ``True`` when the scanner could not read or parse the artifact."""

        return self.problem is not None

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (self.path, self.kind.value, self.name)


class MalformedArtifactError(ValueError):
    """Raised when an artifact does not have the structure its kind requires."""
