"""Conversion helpers that turn raw project files into :class:`Artifact` snapshots."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

import yaml

from ..models import Artifact, ArtifactKind, ArtifactProblem, MalformedArtifactError, ProblemKind

YAML_SUFFIXES = frozenset({".yml", ".yaml"})
INVENTORY_FILENAMES = frozenset(
    {
        "hosts",
        "hosts.ini",
        "hosts.yml",
        "hosts.yaml",
        "inventory",
        "inventory.ini",
        "inventory.yml",
        "inventory.yaml",
    }
)
INVENTORY_DIRS = frozenset({"inventory", "inventories"})
INVENTORY_SUFFIXES = frozenset({"", ".ini", ".yml", ".yaml"})
VARS_DIRS = frozenset({"group_vars", "host_vars"})
NON_PLAYBOOK_FILENAMES = frozenset(
    {"requirements.yml", "requirements.yaml", "galaxy.yml", "galaxy.yaml"}
)
ROLE_VARS_DIRS = frozenset({"defaults", "vars"})
BLOCK_KEYS = ("block", "rescue", "always")
PLAY_TASK_KEYS = ("pre_tasks", "tasks", "post_tasks", "handlers")
TASK_DIRS = frozenset({"tasks"})
PLAYBOOK_DIRS = frozenset({"playbooks"})


class AnsibleLoader(yaml.SafeLoader):
    """Safe loader that also accepts the tags Ansible adds to YAML.

    ``!vault`` and ``!unsafe`` values are loaded as their plain contents.
    """


def _construct_plain(loader: AnsibleLoader, node: yaml.Node) -> Any:
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    return loader.construct_scalar(node)


for _tag in ("!vault", "!unsafe"):
    AnsibleLoader.add_constructor(_tag, _construct_plain)


def load_yaml(text: str) -> Any:
    """Parse one YAML document the way Ansible files are written."""

    return yaml.load(text, Loader=AnsibleLoader)


def classify(relative: PurePosixPath, *, is_dir: bool = False) -> ArtifactKind | None:
    """Return the artifact kind for a path relative to the project root.

    ``None`` means the path is not part of the structure the checker knows
    about and is ignored.
    """

    parts = relative.parts
    if not parts:
        return None

    if parts[0] == "roles":
        if len(parts) == 2:
            return ArtifactKind.ROLE if is_dir else None
        if is_dir or len(parts) < 4 or relative.suffix not in YAML_SUFFIXES:
            return None
        if parts[2] == "tasks":
            return ArtifactKind.TASK
        if parts[2] in ROLE_VARS_DIRS:
            return ArtifactKind.VARIABLE_FILE
        return None

    if is_dir:
        return None

    if any(part in VARS_DIRS for part in parts[:-1]):
        if relative.suffix in YAML_SUFFIXES or not relative.suffix:
            return ArtifactKind.VARIABLE_FILE
        return None

    if parts[0] in INVENTORY_DIRS and len(parts) > 1:
        if relative.suffix in INVENTORY_SUFFIXES:
            return ArtifactKind.INVENTORY_FILE
        return None

    if len(parts) == 1 and parts[0] in INVENTORY_FILENAMES:
        return ArtifactKind.INVENTORY_FILE

    if relative.suffix in YAML_SUFFIXES and parts[0] in PLAYBOOK_DIRS | TASK_DIRS:
        # Task files included by plays, e.g. playbooks/tasks/common.yml.
        if any(part in TASK_DIRS for part in parts[:-1]):
            return ArtifactKind.TASK

    if relative.suffix in YAML_SUFFIXES and (len(parts) == 1 or parts[0] in PLAYBOOK_DIRS):
        if relative.name in NON_PLAYBOOK_FILENAMES:
            return None
        return ArtifactKind.PLAYBOOK

    return None


def iter_tasks(tasks: Any) -> Iterator[Mapping[str, Any]]:
    """Yield every task mapping, descending into ``block``/``rescue``/``always``.

    A task nested inside itself through YAML aliases raises
    :class:`MalformedArtifactError`.
    """

    return _iter_tasks(tasks, frozenset())


def _iter_tasks(tasks: Any, ancestors: frozenset[int]) -> Iterator[Mapping[str, Any]]:
    if tasks is None:
        return
    if not isinstance(tasks, list):
        raise MalformedArtifactError(f"expected a list of tasks, got {type(tasks).__name__}")

    for index, task in enumerate(tasks):
        if not isinstance(task, Mapping):
            raise MalformedArtifactError(
                f"task #{index + 1} must be a mapping, got {type(task).__name__}"
            )
        if id(task) in ancestors:
            raise MalformedArtifactError(f"task #{index + 1}: recursive task structure")
        yield task
        for key in BLOCK_KEYS:
            if key in task:
                yield from _iter_tasks(task[key], ancestors | {id(task)})


def iter_play_tasks(plays: Any) -> Iterator[Mapping[str, Any]]:
    """Yield the tasks of every play in a playbook."""

    if plays is None:
        return
    if not isinstance(plays, list):
        raise MalformedArtifactError(f"expected a list of plays, got {type(plays).__name__}")

    for play in plays:
        if not isinstance(play, Mapping):
            raise MalformedArtifactError(f"play must be a mapping, got {type(play).__name__}")
        for key in PLAY_TASK_KEYS:
            yield from iter_tasks(play.get(key))


def tag_names(value: Any) -> List[str]:
    """Return the tag names declared by a ``tags`` value."""

    if value is None:
        return []
    if isinstance(value, str):
        candidates: Iterable[Any] = value.split(",")
    elif isinstance(value, list):
        candidates = value
    else:
        candidates = [value]

    names: List[str] = []
    for candidate in candidates:
        name = str(candidate).strip()
        if name:
            names.append(name)
    return names


def parse_ini_inventory(text: str) -> Dict[str, List[str]]:
    """Parse an INI inventory into ``{group: [host, ...]}``.

    Hosts listed before any group header belong to ``ungrouped``.
    """

    groups: Dict[str, List[str]] = {}
    current = "ungrouped"
    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue

        if line.startswith("["):
            if not line.endswith("]") or len(line) < 3:
                raise MalformedArtifactError(f"line {number}: invalid group header {line!r}")
            current = line[1:-1].strip()
            groups.setdefault(current, [])
            continue

        groups.setdefault(current, []).append(line.split()[0])
    return groups


class ArtifactNormalizer:
    """Normalize raw file contents into :class:`Artifact` instances."""

    def normalize_file(
        self,
        relative: PurePosixPath,
        kind: ArtifactKind,
        text: str,
        *,
        role: Optional[str] = None,
    ) -> List[Artifact]:
        """Return the artifact for a file plus the tag artifacts it declares."""

        path = relative.as_posix()
        try:
            content = self._parse(relative, kind, text)
        except MalformedArtifactError as exc:
            return [self.problem(relative, kind, ProblemKind.MALFORMED, str(exc), role=role)]

        artifacts = [Artifact(kind=kind, path=path, name=relative.name, content=content, role=role)]
        artifacts.extend(
            Artifact(kind=ArtifactKind.TAG, path=path, name=tag, role=role)
            for tag in self._tags(kind, content)
        )
        return artifacts

    # ------------------------------------------------------------------
    def normalize_role(self, name: str, task_files: Sequence[str]) -> Artifact:
        """Return the role artifact; ``task_files`` are relative to the role ``tasks/`` dir."""

        return Artifact(
            kind=ArtifactKind.ROLE,
            path=f"roles/{name}",
            name=name,
            content={"task_files": sorted(task_files)},
            role=name,
        )

    # ------------------------------------------------------------------
    def problem(
        self,
        relative: PurePosixPath,
        kind: ArtifactKind,
        problem: ProblemKind,
        message: str,
        *,
        role: Optional[str] = None,
    ) -> Artifact:
        return Artifact(
            kind=kind,
            path=relative.as_posix(),
            name=relative.name,
            role=role,
            problem=ArtifactProblem(kind=problem, message=message),
        )

    # ------------------------------------------------------------------
    def _parse(self, relative: PurePosixPath, kind: ArtifactKind, text: str) -> Any:
        if kind is ArtifactKind.INVENTORY_FILE and relative.suffix not in YAML_SUFFIXES:
            return parse_ini_inventory(text)

        try:
            content = load_yaml(text)
        except yaml.YAMLError as exc:
            raise MalformedArtifactError(f"invalid YAML: {exc}") from exc

        if kind in (ArtifactKind.TASK, ArtifactKind.PLAYBOOK):
            if content is not None and not isinstance(content, list):
                raise MalformedArtifactError(
                    f"{kind.value} file must contain a YAML list, got {type(content).__name__}"
                )
        elif content is not None and not isinstance(content, Mapping):
            raise MalformedArtifactError(
                f"{kind.value} file must contain a YAML mapping, got {type(content).__name__}"
            )
        return content

    def _tags(self, kind: ArtifactKind, content: Any) -> List[str]:
        tasks: Iterable[Mapping[str, Any]]
        found: set[str] = set()
        try:
            if kind is ArtifactKind.TASK:
                tasks = list(iter_tasks(content))
            elif kind is ArtifactKind.PLAYBOOK:
                tasks = list(iter_play_tasks(content))
                for play in content or []:
                    found.update(tag_names(play.get("tags")))
            else:
                return []
        except MalformedArtifactError:
            # Reported by the rules that walk the same structure.
            return sorted(found)

        for task in tasks:
            found.update(tag_names(task.get("tags")))
        return sorted(found)
