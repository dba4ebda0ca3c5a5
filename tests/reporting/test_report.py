"""Tests for report aggregation and rendering."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from ansible_conformance.models import (
    Artifact,
    ArtifactKind,
    ArtifactProblem,
    Finding,
    FindingSeverity,
    ProblemKind,
)
from ansible_conformance.reporting import Report, emit, render, render_json, render_table, render_text

ROLE = Artifact(kind=ArtifactKind.ROLE, path="roles/Web", name="Web", role="Web")
TAG = Artifact(kind=ArtifactKind.TAG, path="site.yml", name="Deploy")
PLAYBOOK = Artifact(kind=ArtifactKind.PLAYBOOK, path="site.yml", name="site.yml", content=[])
BROKEN = Artifact(
    kind=ArtifactKind.VARIABLE_FILE,
    path="group_vars/all.yml",
    name="all.yml",
    problem=ArtifactProblem(kind=ProblemKind.MALFORMED, message="invalid YAML: boom"),
)


def _build_report() -> Report:
    findings = [
        Finding(
            rule_id="malformed-artifact",
            artifact=BROKEN,
            passed=False,
            message="invalid YAML: boom",
            severity=FindingSeverity.ERROR,
        ),
        Finding(
            rule_id="role-name-lowercase-alphanumeric",
            artifact=ROLE,
            passed=False,
            message="Role name 'Web' must contain only lowercase letters, digits and underscores",
            severity=FindingSeverity.ERROR,
        ),
        Finding(
            rule_id="role-name-starts-with-letter",
            artifact=ROLE,
            passed=True,
            message="Role names start with a letter.",
            severity=FindingSeverity.ERROR,
        ),
        Finding(
            rule_id="tag-name-lowercase",
            artifact=TAG,
            passed=False,
            message="Tag 'Deploy' must contain only lowercase letters, digits, '-' and '_'",
            severity=FindingSeverity.WARNING,
        ),
    ]
    return Report(
        findings=findings,
        metadata={"root": "/srv/ansible"},
        artifacts=[BROKEN, ROLE, PLAYBOOK, TAG],
    )


def test_summary_properties() -> None:
    report = _build_report()

    assert len(report.failures) == 3
    assert len(report.passes) == 1
    assert report.highest_severity is FindingSeverity.ERROR
    assert report.counts_by_severity() == {"error": 2, "warning": 1}
    assert report.counts_by_rule() == {
        "malformed-artifact": {"passed": 0, "failed": 1},
        "role-name-lowercase-alphanumeric": {"passed": 0, "failed": 1},
        "role-name-starts-with-letter": {"passed": 1, "failed": 0},
        "tag-name-lowercase": {"passed": 0, "failed": 1},
    }


def test_exceeds_compares_against_threshold() -> None:
    report = _build_report()
    warnings_only = Report(findings=[f for f in report.findings if f.severity is FindingSeverity.WARNING])

    assert report.exceeds(FindingSeverity.ERROR)
    assert report.exceeds(FindingSeverity.WARNING)
    assert not warnings_only.exceeds(FindingSeverity.ERROR)
    assert warnings_only.exceeds(FindingSeverity.WARNING)
    assert not Report(findings=[]).exceeds(FindingSeverity.WARNING)


def test_passing_findings_do_not_raise_severity() -> None:
    report = Report(findings=[f for f in _build_report().findings if f.passed])

    assert report.highest_severity is None
    assert not report.exceeds(FindingSeverity.WARNING)


def test_artifact_statuses() -> None:
    statuses = [(artifact.path, artifact.kind, status) for artifact, status in _build_report().artifact_statuses()]

    assert statuses == [
        ("group_vars/all.yml", ArtifactKind.VARIABLE_FILE, "malformed"),
        ("roles/Web", ArtifactKind.ROLE, "failed"),
        ("site.yml", ArtifactKind.PLAYBOOK, "ok"),
        ("site.yml", ArtifactKind.TAG, "failed"),
    ]


def test_render_json_structure() -> None:
    payload = json.loads(render_json(_build_report()))

    assert payload["metadata"] == {"root": "/srv/ansible"}
    assert payload["summary"]["total_artifacts"] == 4
    assert payload["summary"]["total_checks"] == 4
    assert payload["summary"]["total_failures"] == 3
    assert payload["summary"]["highest_severity"] == "error"
    assert payload["findings"][1] == {
        "rule_id": "role-name-lowercase-alphanumeric",
        "passed": False,
        "severity": "error",
        "message": "Role name 'Web' must contain only lowercase letters, digits and underscores",
        "artifact": {"kind": "role", "path": "roles/Web", "name": "Web", "role": "Web"},
    }
    assert [artifact["status"] for artifact in payload["artifacts"]] == [
        "malformed",
        "failed",
        "ok",
        "failed",
    ]


def test_render_json_is_stable() -> None:
    assert render_json(_build_report()) == render_json(_build_report())


def test_render_text_lists_failures_by_rule() -> None:
    text = render_text(_build_report())

    assert text.splitlines()[0] == "Ansible conformance report for /srv/ansible"
    assert "Artifacts: 4  Checks: 4  Failures: 3" in text
    assert "Error: 2  Warning: 1" in text
    assert "role-name-lowercase-alphanumeric (error, 1)" in text
    assert "  site.yml [tag Deploy]: Tag 'Deploy' must contain" in text
    assert "role-name-starts-with-letter" not in text
    assert "MALFORMED  variable_file  group_vars/all.yml" in text
    assert "OK         playbook       site.yml" in text


def test_render_text_without_failures() -> None:
    report = Report(findings=[], artifacts=[PLAYBOOK])

    text = render_text(report)

    assert "No findings detected." in text
    assert "Failures by rule" not in text


def test_render_table_aligns_columns() -> None:
    lines = render_table([("ID", "Severity"), ("tag-name-lowercase", "warning")])

    assert lines == [
        "ID                  Severity",
        "==================  ========",
        "tag-name-lowercase  warning",
    ]


def test_render_rejects_unknown_format() -> None:
    with pytest.raises(ValueError):
        render(_build_report(), "xml")


def test_emit_to_stream_and_path(tmp_path: Path) -> None:
    report = _build_report()
    stream = io.StringIO()

    emit(report, "json", stream)
    destination = tmp_path / "reports" / "conformance.json"
    emit(report, "json", destination)

    assert stream.getvalue() == render_json(report) + "\n"
    assert destination.read_text(encoding="utf-8") == stream.getvalue()
