from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Sequence

import pytest

from ansible_conformance.adapters import RuleEngineAdapter
from ansible_conformance.models import Artifact, ArtifactKind, Finding, FindingSeverity
from ansible_conformance.rules import RuleRegistry, default_registry
from ansible_conformance.service import (
    CheckResult,
    ConformanceService,
    InvalidProjectLayoutError,
)

ROLE = Artifact(kind=ArtifactKind.ROLE, path="roles/web", name="web", content={"task_files": []})
PLAYBOOK = Artifact(kind=ArtifactKind.PLAYBOOK, path="playbooks/site.yml", name="site.yml", content=[])


class DummyScanner:
    def __init__(self, root: Path) -> None:
        self.root = root

    def scan(self) -> Iterator[Artifact]:
        return iter([ROLE, PLAYBOOK])


@dataclass
class DummyRuleEngine(RuleEngineAdapter):
    findings: Sequence[Finding]
    seen: list[Artifact] = field(default_factory=list)

    def evaluate(self, artifact: Artifact) -> list[Finding]:
        self.seen.append(artifact)
        return [finding for finding in self.findings if finding.artifact == artifact]


def test_conformance_service_runs_pipeline() -> None:
    expected_findings = [
        Finding(
            rule_id="RULE-1",
            artifact=ROLE,
            passed=False,
            message="Example message",
            severity=FindingSeverity.WARNING,
        )
    ]
    engine = DummyRuleEngine(expected_findings)
    registries: list[RuleRegistry] = []

    def engine_factory(registry: RuleRegistry) -> DummyRuleEngine:
        registries.append(registry)
        return engine

    registry = default_registry()
    service = ConformanceService(
        registry=registry,
        scanner_factory=DummyScanner,
        rule_engine_factory=engine_factory,
    )

    result = service.check(Path("/workspace"))

    assert isinstance(result, CheckResult)
    assert result.findings == expected_findings
    assert result.artifacts == [PLAYBOOK, ROLE]
    assert engine.seen == [PLAYBOOK, ROLE]
    assert registries == [registry]
    assert result.metadata == {
        "root": "/workspace",
        "artifact_count": 2,
        "artifact_kinds": {"playbook": 1, "role": 1},
        "rule_count": len(registry),
    }


def test_check_result_builds_report() -> None:
    result = CheckResult(findings=[], metadata={"root": "/workspace"}, artifacts=[ROLE])

    report = result.to_report()

    assert report.metadata == {"root": "/workspace"}
    assert list(report.artifacts) == [ROLE]
    assert report.highest_severity is None


def test_service_checks_real_project(project: Path, write_file) -> None:
    write_file("roles/Web/tasks/main.yml", "- name: install nginx\n  apt: {}\n")
    write_file("playbooks/site.yml", "- hosts: all\n  roles: [Web]\n")

    result = ConformanceService().check(project)
    failed = sorted((finding.rule_id, finding.artifact.path) for finding in result.findings if finding.failed)

    assert failed == [
        ("role-name-lowercase-alphanumeric", "roles/Web"),
        ("task-name-starts-uppercase", "roles/Web/tasks/main.yml"),
    ]
    assert result.metadata["artifact_kinds"] == {"playbook": 1, "role": 1, "task": 1}


def test_service_propagates_layout_errors(project: Path) -> None:
    with pytest.raises(InvalidProjectLayoutError):
        ConformanceService().check(project)


def test_recursive_task_file_does_not_abort_scan(project: Path, write_file) -> None:
    write_file("roles/web/tasks/main.yml", "- &ping\n  name: Ping\n  block:\n    - *ping\n")
    write_file("roles/web/tasks/install.yml", "- name: install nginx\n  apt: {}\n")

    result = ConformanceService().check(project)
    failed = {
        finding.artifact.path: (finding.rule_id, finding.severity, finding.message)
        for finding in result.findings
        if finding.failed
    }

    assert failed["roles/web/tasks/main.yml"] == (
        "task-name-starts-uppercase",
        FindingSeverity.ERROR,
        "Malformed task: task #1: recursive task structure",
    )
    assert failed["roles/web/tasks/install.yml"][0] == "task-name-starts-uppercase"
