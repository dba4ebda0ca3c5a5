"""Rule engine interfaces and the in-process evaluator."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Sequence, Tuple

from ..models import Artifact, Finding, FindingSeverity, MalformedArtifactError
from ..rules import Rule, RuleRegistry

logger = logging.getLogger(__name__)


class RuleEngineAdapter(ABC):
    """Abstract base class describing the rule engine contract."""

    @abstractmethod
    def evaluate(self, artifact: Artifact) -> List[Finding]:
        """Evaluate one artifact and return its findings."""

    def evaluate_all(self, artifacts: Iterable[Artifact], *, jobs: int = 1) -> List[Finding]:
        """Evaluate every artifact and return the findings in report order."""

        if jobs > 1:
            with ThreadPoolExecutor(max_workers=jobs) as executor:
                batches = list(executor.map(self.evaluate, artifacts))
        else:
            batches = [self.evaluate(artifact) for artifact in artifacts]

        findings = [finding for batch in batches for finding in batch]
        return sort_findings(findings)


def sort_findings(findings: Sequence[Finding]) -> List[Finding]:
    """Order findings by artifact path, kind and name, then rule id."""

    def key(finding: Finding) -> Tuple[str, str, str, str]:
        return (*finding.artifact.sort_key, finding.rule_id)

    return sorted(findings, key=key)


class RuleEvaluator(RuleEngineAdapter):
    """Apply the rules of a :class:`RuleRegistry` to scanned artifacts."""

    def __init__(self, registry: RuleRegistry) -> None:
        self.registry = registry

    # ------------------------------------------------------------------
    def evaluate(self, artifact: Artifact) -> List[Finding]:
        findings: List[Finding] = []
        for rule in self.registry.rules_for(artifact):
            findings.append(self._apply(rule, artifact))
        return findings

    # ------------------------------------------------------------------
    def _apply(self, rule: Rule, artifact: Artifact) -> Finding:
        try:
            failure = rule.check(artifact, self.registry.settings)
        except MalformedArtifactError as exc:
            logger.debug("Rule %s could not evaluate %s: %s", rule.id, artifact.path, exc)
            return Finding(
                rule_id=rule.id,
                artifact=artifact,
                passed=False,
                message=f"Malformed {artifact.kind.value}: {exc}",
                severity=FindingSeverity.ERROR,
            )

        if failure is None:
            return Finding(
                rule_id=rule.id,
                artifact=artifact,
                passed=True,
                message=rule.description,
                severity=rule.severity,
            )

        return Finding(
            rule_id=rule.id,
            artifact=artifact,
            passed=False,
            message=failure,
            severity=rule.severity,
        )


__all__ = ["RuleEngineAdapter", "RuleEvaluator", "sort_findings"]
