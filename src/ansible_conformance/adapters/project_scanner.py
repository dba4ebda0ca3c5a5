from __future__ import annotations

import errno
import logging
import os
from pathlib import Path, PurePosixPath
from typing import FrozenSet, Iterator, List, Optional, Tuple

from ..models import Artifact, ArtifactKind, ProblemKind
from ..normalization import ArtifactNormalizer, classify
from ..normalization.artifact_normalizer import INVENTORY_DIRS, INVENTORY_FILENAMES, VARS_DIRS

logger = logging.getLogger(__name__)

ROLE_SUBDIRS = ("defaults", "tasks", "vars")
WALKED_DIRS = frozenset({"playbooks", "tasks"} | INVENTORY_DIRS | VARS_DIRS)


class InvalidProjectLayoutError(RuntimeError):
    """Raised when the scan root holds no recognizable Ansible structure."""


# (relative path, error) pairs; ``error`` is set when the path could not be read.
WalkEntry = Tuple[PurePosixPath, Optional[OSError]]
# Resolved paths of the directories above the one being walked.
Ancestors = FrozenSet[str]


class ProjectScanner:
    """Walk an Ansible project tree and produce classified artifacts."""

    def __init__(
        self,
        root: str | os.PathLike[str],
        *,
        normalizer: ArtifactNormalizer | None = None,
    ) -> None:
        self.root = Path(root)
        self.normalizer = normalizer or ArtifactNormalizer()

    def scan(self) -> Iterator[Artifact]:
        """Validate the layout and return a lazy iterator over the project's artifacts.

        Every call walks the tree again.
        """

        self._check_layout()
        return self._walk_project()

    # Layout detection -----------------------------------------------------------
    def _check_layout(self) -> None:
        if not self.root.exists():
            raise InvalidProjectLayoutError(f"Project root not found: {self.root}")
        if not self.root.is_dir():
            raise InvalidProjectLayoutError(f"Project root is not a directory: {self.root}")

        try:
            names = {entry.name: entry.is_dir() for entry in os.scandir(self.root)}
        except OSError as exc:
            raise InvalidProjectLayoutError(f"Project root cannot be read: {self.root}") from exc

        if names.get("roles") or names.get("playbooks"):
            return
        if any(names.get(name) for name in INVENTORY_DIRS):
            return
        if any(name in names and not names[name] for name in INVENTORY_FILENAMES):
            return

        raise InvalidProjectLayoutError(
            f"No roles/, playbooks/ or inventory found in {self.root}"
        )

    # Tree walk ------------------------------------------------------------------
    def _walk_project(self) -> Iterator[Artifact]:
        logger.debug("Scanning Ansible project at %s", self.root)
        ancestors = frozenset({os.path.realpath(self.root)})
        for entry in self._sorted_entries(self.root):
            relative = PurePosixPath(entry.name)
            if entry.is_dir():
                if entry.name == "roles":
                    yield from self._walk_roles(relative, ancestors)
                elif entry.name in WALKED_DIRS:
                    yield from self._walk_files(relative, ancestors)
                continue

            kind = classify(relative)
            if kind is not None:
                yield from self._load_file(relative, kind)

    def _walk_roles(self, roles_dir: PurePosixPath, ancestors: Ancestors) -> Iterator[Artifact]:
        try:
            ancestors = self._descend(roles_dir, ancestors)
            entries = self._sorted_entries(self.root / roles_dir)
        except OSError as exc:
            yield self._unreadable(roles_dir, ArtifactKind.ROLE, exc)
            return

        for entry in entries:
            role_dir = roles_dir / entry.name
            if entry.is_dir():
                yield from self._walk_role(role_dir, ancestors)
            elif entry.is_symlink():
                error = OSError(errno.ENOENT, "Broken symbolic link", str(role_dir))
                yield self._unreadable(role_dir, ArtifactKind.ROLE, error, role=entry.name)

    def _walk_role(self, role_dir: PurePosixPath, ancestors: Ancestors) -> Iterator[Artifact]:
        name = role_dir.name
        try:
            ancestors = self._descend(role_dir, ancestors)
            subdirs = {
                entry.name
                for entry in self._sorted_entries(self.root / role_dir)
                if entry.is_dir()
            }
        except OSError as exc:
            yield self._unreadable(role_dir, ArtifactKind.ROLE, exc, role=name)
            return

        files: List[WalkEntry] = []
        for subdir in ROLE_SUBDIRS:
            if subdir in subdirs:
                files.extend(self._iter_tree(role_dir / subdir, ancestors))

        tasks_dir = role_dir / "tasks"
        task_files = [
            relative.relative_to(tasks_dir).as_posix()
            for relative, error in files
            if error is None and classify(relative) is ArtifactKind.TASK
        ]

        logger.debug("Role %s: %d task files", name, len(task_files))
        yield self.normalizer.normalize_role(name, task_files)

        for relative, error in files:
            if error is not None:
                yield self._unreadable(relative, self._expected_kind(relative), error, role=name)
                continue
            kind = classify(relative)
            if kind is not None:
                yield from self._load_file(relative, kind, role=name)

    def _walk_files(self, directory: PurePosixPath, ancestors: Ancestors) -> Iterator[Artifact]:
        for relative, error in self._iter_tree(directory, ancestors):
            if error is not None:
                yield self._unreadable(relative, self._expected_kind(relative), error)
                continue
            kind = classify(relative)
            if kind is not None:
                yield from self._load_file(relative, kind)

    def _iter_tree(self, directory: PurePosixPath, ancestors: Ancestors) -> Iterator[WalkEntry]:
        try:
            ancestors = self._descend(directory, ancestors)
            entries = self._sorted_entries(self.root / directory)
        except OSError as exc:
            yield directory, exc
            return

        for entry in entries:
            relative = directory / entry.name
            if entry.is_dir():
                yield from self._iter_tree(relative, ancestors)
            else:
                yield relative, None

    def _descend(self, directory: PurePosixPath, ancestors: Ancestors) -> Ancestors:
        # Symlinked directories are followed unless they lead back to a parent.
        real = os.path.realpath(self.root / directory)
        if real in ancestors:
            raise OSError(errno.ELOOP, "Symbolic link loop", str(directory))
        return ancestors | {real}

    def _sorted_entries(self, directory: Path) -> List[os.DirEntry[str]]:
        with os.scandir(directory) as iterator:
            entries = [entry for entry in iterator if not entry.name.startswith(".")]
        return sorted(entries, key=lambda entry: entry.name)

    # Artifact helpers -----------------------------------------------------------
    def _load_file(
        self,
        relative: PurePosixPath,
        kind: ArtifactKind,
        *,
        role: Optional[str] = None,
    ) -> List[Artifact]:
        try:
            text = (self.root / relative).read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            return [
                self.normalizer.problem(
                    relative, kind, ProblemKind.MALFORMED, f"not valid UTF-8: {exc}", role=role
                )
            ]
        except OSError as exc:
            return [self._unreadable(relative, kind, exc, role=role)]

        return self.normalizer.normalize_file(relative, kind, text, role=role)

    def _unreadable(
        self,
        relative: PurePosixPath,
        kind: ArtifactKind,
        error: OSError,
        *,
        role: Optional[str] = None,
    ) -> Artifact:
        logger.warning("Cannot read %s: %s", relative, error.strerror or error)
        message = f"Cannot read {relative.as_posix()}: {error.strerror or error}"
        return self.normalizer.problem(relative, kind, ProblemKind.UNREADABLE, message, role=role)

    def _expected_kind(self, relative: PurePosixPath) -> ArtifactKind:
        # Classify a hypothetical YAML file inside an unreadable directory.
        kind = classify(relative / "main.yml") or classify(relative)
        return kind or ArtifactKind.PLAYBOOK


__all__ = ["InvalidProjectLayoutError", "ProjectScanner"]
