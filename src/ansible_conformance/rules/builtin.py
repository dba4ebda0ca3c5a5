"""Built-in conformance rules for Ansible projects."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, List, Mapping, Optional, Tuple

from ..models import Artifact, ArtifactKind, FindingSeverity, MalformedArtifactError, ProblemKind
from ..normalization import iter_tasks
from .base import Rule

ROLE_NAME_PATTERN = re.compile(r"^[a-z0-9_]+$")
TAG_NAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")
VARIABLE_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")

DEFAULT_SETTINGS: Mapping[str, Any] = {
    "max_tasks_per_role": 40,
    "debug_marker": "debug",
    "directory_suffixes": ("_dir", "_directory"),
}


def is_debug_task_file(task_file: str, marker: str = "debug") -> bool:
    """Return ``True`` when a task file is marked as debug-only by its path.

    ``task_file`` is relative to the role ``tasks/`` directory. A file is
    debug-only when it sits below a ``<marker>/`` directory or its stem is
    ``<marker>``, starts with ``<marker>_`` or ends with ``_<marker>``.
    """

    path = PurePosixPath(task_file)
    marker = marker.lower()
    if marker in (part.lower() for part in path.parts[:-1]):
        return True

    stem = path.stem.lower()
    return stem == marker or stem.startswith(f"{marker}_") or stem.endswith(f"_{marker}")


def _quoted(values: List[str]) -> str:
    return ", ".join(repr(value) for value in values)


def _mapping_content(artifact: Artifact) -> Mapping[Any, Any]:
    if artifact.content is None:
        return {}
    if not isinstance(artifact.content, Mapping):
        raise MalformedArtifactError(
            f"expected a mapping, got {type(artifact.content).__name__}"
        )
    return artifact.content


# Role rules -----------------------------------------------------------------
def check_role_name_lowercase(artifact: Artifact, settings: Mapping[str, Any]) -> Optional[str]:
    if ROLE_NAME_PATTERN.match(artifact.name):
        return None
    return (
        f"Role name {artifact.name!r} must contain only lowercase letters, digits and underscores"
    )


def check_role_name_starts_with_letter(
    artifact: Artifact, settings: Mapping[str, Any]
) -> Optional[str]:
    first = artifact.name[:1]
    if first.isascii() and first.isalpha():
        return None
    return f"Role name {artifact.name!r} must start with a letter"


def check_max_tasks_per_role(artifact: Artifact, settings: Mapping[str, Any]) -> Optional[str]:
    content = _mapping_content(artifact)
    task_files = content.get("task_files") or []
    if not isinstance(task_files, list):
        raise MalformedArtifactError("role task file listing must be a list")

    limit = int(settings["max_tasks_per_role"])
    marker = str(settings["debug_marker"])
    counted = [task_file for task_file in task_files if not is_debug_task_file(task_file, marker)]
    if len(counted) <= limit:
        return None
    return (
        f"Role {artifact.name!r} has {len(counted)} non-debug task files; "
        f"the limit is {limit}"
    )


# Task rules -----------------------------------------------------------------
def check_task_name_starts_uppercase(
    artifact: Artifact, settings: Mapping[str, Any]
) -> Optional[str]:
    offending: List[str] = []
    for task in iter_tasks(artifact.content):
        name = task.get("name")
        if name is None:
            continue
        text = str(name).strip()
        if not text[:1].isupper():
            offending.append(text)

    if not offending:
        return None
    return f"Task names must start with an uppercase letter: {_quoted(offending)}"


# Tag rules ------------------------------------------------------------------
def check_tag_name_lowercase(artifact: Artifact, settings: Mapping[str, Any]) -> Optional[str]:
    if TAG_NAME_PATTERN.match(artifact.name):
        return None
    return f"Tag {artifact.name!r} must contain only lowercase letters, digits, '-' and '_'"


# Variable rules -------------------------------------------------------------
def check_variable_name_lowercase(
    artifact: Artifact, settings: Mapping[str, Any]
) -> Optional[str]:
    offending = [
        str(key)
        for key in _mapping_content(artifact)
        if not isinstance(key, str) or not VARIABLE_NAME_PATTERN.match(key)
    ]
    if not offending:
        return None
    return f"Variable names must be lowercase snake_case: {_quoted(offending)}"


def check_directory_path_trailing_slash(
    artifact: Artifact, settings: Mapping[str, Any]
) -> Optional[str]:
    suffixes: Tuple[str, ...] = tuple(settings["directory_suffixes"])
    offending = [
        key
        for key, value in _mapping_content(artifact).items()
        if isinstance(key, str)
        and key.endswith(suffixes)
        and isinstance(value, str)
        and value
        and not value.endswith("/")
    ]
    if not offending:
        return None
    return f"Directory paths must end with a trailing slash: {_quoted(offending)}"


# Scan problems --------------------------------------------------------------
def report_problem(artifact: Artifact, settings: Mapping[str, Any]) -> Optional[str]:
    if artifact.problem is None:
        return None
    return artifact.problem.message


def builtin_rules() -> List[Rule]:
    """Return the built-in rules in registry order."""

    return [
        Rule(
            id="role-name-lowercase-alphanumeric",
            description="Role names use only lowercase letters, digits and underscores.",
            target=ArtifactKind.ROLE,
            check=check_role_name_lowercase,
            severity=FindingSeverity.ERROR,
        ),
        Rule(
            id="role-name-starts-with-letter",
            description="Role names start with a letter.",
            target=ArtifactKind.ROLE,
            check=check_role_name_starts_with_letter,
            severity=FindingSeverity.ERROR,
        ),
        Rule(
            id="max-40-tasks-per-role",
            description="A role holds at most 40 task files, not counting debug-only ones.",
            target=ArtifactKind.ROLE,
            check=check_max_tasks_per_role,
            severity=FindingSeverity.ERROR,
        ),
        Rule(
            id="task-name-starts-uppercase",
            description="Task names start with an uppercase letter.",
            target=ArtifactKind.TASK,
            check=check_task_name_starts_uppercase,
            severity=FindingSeverity.WARNING,
        ),
        Rule(
            id="tag-name-lowercase",
            description="Tags use only lowercase letters, digits, dashes and underscores.",
            target=ArtifactKind.TAG,
            check=check_tag_name_lowercase,
            severity=FindingSeverity.WARNING,
        ),
        Rule(
            id="variable-name-lowercase",
            description="Variable names are lowercase snake_case.",
            target=ArtifactKind.VARIABLE_FILE,
            check=check_variable_name_lowercase,
            severity=FindingSeverity.ERROR,
        ),
        Rule(
            id="directory-path-trailing-slash",
            description="Variables holding directory paths end with a trailing slash.",
            target=ArtifactKind.VARIABLE_FILE,
            check=check_directory_path_trailing_slash,
            severity=FindingSeverity.WARNING,
        ),
        Rule(
            id="malformed-artifact",
            description="Project files parse with the structure their kind requires.",
            target=None,
            check=report_problem,
            severity=FindingSeverity.ERROR,
            problem=ProblemKind.MALFORMED,
        ),
        Rule(
            id="unreadable-path",
            description="Every path in the project tree can be read.",
            target=None,
            check=report_problem,
            severity=FindingSeverity.WARNING,
            problem=ProblemKind.UNREADABLE,
        ),
    ]
