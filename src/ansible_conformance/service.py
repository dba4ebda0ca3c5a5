"""Orchestration layer used by the CLI to run conformance checks."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

from .adapters import InvalidProjectLayoutError, ProjectScanner, RuleEngineAdapter, RuleEvaluator
from .models import Artifact, Finding
from .reporting import Report
from .rules import RuleConfigError, RuleRegistry, default_registry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CheckResult:
    """Result returned by :class:`ConformanceService` runs."""

    findings: list[Finding]
    metadata: Mapping[str, Any]
    artifacts: list[Artifact] = field(default_factory=list)

    def to_report(self) -> Report:
        return Report(findings=self.findings, metadata=self.metadata, artifacts=self.artifacts)


ScannerFactory = Callable[[Path], ProjectScanner]
RuleEngineFactory = Callable[[RuleRegistry], RuleEngineAdapter]


class ConformanceService:
    """High level service running Scan -> Evaluate over an Ansible project."""

    def __init__(
        self,
        *,
        registry: RuleRegistry | None = None,
        scanner_factory: ScannerFactory | None = None,
        rule_engine_factory: RuleEngineFactory | None = None,
    ) -> None:
        self._registry = registry or default_registry()
        self._scanner_factory = scanner_factory or ProjectScanner
        self._rule_engine_factory = rule_engine_factory or RuleEvaluator

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    # ------------------------------------------------------------------
    def check(self, root: Path, *, jobs: int = 1) -> CheckResult:
        """Scan ``root``, evaluate every artifact and return the findings.

        Raises :class:`InvalidProjectLayoutError` when ``root`` is not an
        Ansible project.
        """

        scanner = self._scanner_factory(root)
        artifacts = sorted(scanner.scan(), key=lambda artifact: artifact.sort_key)
        logger.info("Scanned %d artifacts under %s", len(artifacts), root)

        engine = self._rule_engine_factory(self._registry)
        findings = engine.evaluate_all(artifacts, jobs=jobs)

        kinds = Counter(artifact.kind.value for artifact in artifacts)
        metadata: dict[str, Any] = {
            "root": str(root),
            "artifact_count": len(artifacts),
            "artifact_kinds": {kind: kinds[kind] for kind in sorted(kinds)},
            "rule_count": len(self._registry),
        }

        return CheckResult(findings=list(findings), metadata=metadata, artifacts=artifacts)


__all__ = [
    "CheckResult",
    "ConformanceService",
    "InvalidProjectLayoutError",
    "RuleConfigError",
]
