"""Report aggregation and rendering for conformance findings."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Dict, List, Mapping, MutableMapping, Sequence, Tuple

from ..models import SEVERITY_RANK, Artifact, ArtifactKind, Finding, FindingSeverity

OUTPUT_FORMATS = ("text", "json")


@dataclass(frozen=True, slots=True)
class Report:
    """Findings of one scan plus the artifacts they were produced for."""

    findings: Sequence[Finding]
    metadata: Mapping[str, Any] = field(default_factory=dict)
    artifacts: Sequence[Artifact] = ()

    @property
    def failures(self) -> List[Finding]:
        return [finding for finding in self.findings if finding.failed]

    @property
    def passes(self) -> List[Finding]:
        return [finding for finding in self.findings if finding.passed]

    @property
    def highest_severity(self) -> FindingSeverity | None:
        failures = self.failures
        if not failures:
            return None
        return max(failures, key=lambda finding: SEVERITY_RANK[finding.severity]).severity

    def exceeds(self, threshold: FindingSeverity) -> bool:
        """Return ``True`` when a failure is at or above ``threshold``."""

        highest = self.highest_severity
        return highest is not None and SEVERITY_RANK[highest] >= SEVERITY_RANK[threshold]

    def by_severity(self) -> Dict[FindingSeverity, List[Finding]]:
        """Partition failures by severity, most severe first."""

        groups: Dict[FindingSeverity, List[Finding]] = {
            severity: []
            for severity in sorted(FindingSeverity, key=SEVERITY_RANK.get, reverse=True)
        }
        for finding in self.failures:
            groups[finding.severity].append(finding)
        return groups

    def counts_by_severity(self) -> dict[str, int]:
        return {severity.value: len(group) for severity, group in self.by_severity().items()}

    def counts_by_rule(self) -> dict[str, dict[str, int]]:
        counts: MutableMapping[str, dict[str, int]] = {}
        for finding in self.findings:
            bucket = counts.setdefault(finding.rule_id, {"passed": 0, "failed": 0})
            bucket["passed" if finding.passed else "failed"] += 1
        return {rule_id: counts[rule_id] for rule_id in sorted(counts)}

    def artifact_statuses(self) -> List[Tuple[Artifact, str]]:
        """Return every artifact with ``ok``, ``failed`` or its scan problem kind."""

        failed = {_artifact_key(finding.artifact) for finding in self.failures}
        statuses: List[Tuple[Artifact, str]] = []
        for artifact in self.artifacts:
            if artifact.problem is not None:
                status = artifact.problem.kind.value
            elif _artifact_key(artifact) in failed:
                status = "failed"
            else:
                status = "ok"
            statuses.append((artifact, status))
        return statuses

    def to_dict(self) -> dict[str, Any]:
        highest = self.highest_severity
        return {
            "metadata": dict(self.metadata),
            "summary": {
                "total_artifacts": len(self.artifacts),
                "total_checks": len(self.findings),
                "total_failures": len(self.failures),
                "highest_severity": highest.value if highest else None,
                "counts": self.counts_by_severity(),
                "rules": self.counts_by_rule(),
            },
            "findings": [_serialize_finding(finding) for finding in self.findings],
            "artifacts": [
                {**_serialize_artifact(artifact), "status": status}
                for artifact, status in self.artifact_statuses()
            ],
        }


def _artifact_key(artifact: Artifact) -> Tuple[str, str, str]:
    return artifact.sort_key


def _serialize_finding(finding: Finding) -> dict[str, Any]:
    return {
        "rule_id": finding.rule_id,
        "passed": finding.passed,
        "severity": finding.severity.value,
        "message": finding.message,
        "artifact": _serialize_artifact(finding.artifact),
    }


def _serialize_artifact(artifact: Artifact) -> dict[str, Any]:
    return {
        "kind": artifact.kind.value,
        "path": artifact.path,
        "name": artifact.name,
        "role": artifact.role,
    }


def render_json(report: Report) -> str:
    """Render the machine-readable form of ``report``."""

    return json.dumps(report.to_dict(), indent=2, sort_keys=True)


def render_table(rows: Sequence[Tuple[str, ...]]) -> List[str]:
    """Render ``rows`` (first row is the header) as aligned text columns."""

    widths = [max(len(str(row[idx])) for row in rows) for idx in range(len(rows[0]))]

    def format_row(values: Tuple[str, ...]) -> str:
        line = "  ".join(value.ljust(width) for value, width in zip(values, widths, strict=True))
        return line.rstrip()

    lines = [format_row(rows[0])]
    lines.append("  ".join("=" * width for width in widths))
    for row in rows[1:]:
        lines.append(format_row(row))
    return lines


def render_text(report: Report) -> str:
    """Render a plain-text summary: counts by severity, failures by rule, artifact status."""

    lines: List[str] = []
    root = report.metadata.get("root")
    if root:
        lines.append(f"Ansible conformance report for {root}")
    lines.append(
        f"Artifacts: {len(report.artifacts)}  "
        f"Checks: {len(report.findings)}  "
        f"Failures: {len(report.failures)}"
    )
    lines.append(
        "  ".join(
            f"{severity.title()}: {count}" for severity, count in report.counts_by_severity().items()
        )
    )
    lines.append("")

    failures = report.failures
    if not failures:
        lines.append("No findings detected.")
    else:
        lines.append("Failures by rule")
        lines.append("----------------")
        grouped: Dict[str, List[Finding]] = {}
        for finding in failures:
            grouped.setdefault(finding.rule_id, []).append(finding)
        for rule_id in sorted(grouped):
            group = grouped[rule_id]
            lines.append(f"{rule_id} ({group[0].severity.value}, {len(group)})")
            for finding in group:
                lines.append(f"  {_location(finding.artifact)}: {finding.message}")

    statuses = report.artifact_statuses()
    if statuses:
        lines.append("")
        rows: List[Tuple[str, ...]] = [("Status", "Kind", "Artifact")]
        rows.extend(
            (status.upper(), artifact.kind.value, _location(artifact))
            for artifact, status in statuses
        )
        lines.extend(render_table(rows))

    return "\n".join(lines)


def _location(artifact: Artifact) -> str:
    if artifact.kind is ArtifactKind.TAG:
        return f"{artifact.path} [tag {artifact.name}]"
    return artifact.path


def render(report: Report, output_format: str) -> str:
    if output_format not in OUTPUT_FORMATS:
        raise ValueError("format must be either 'text' or 'json'")
    if output_format == "json":
        return render_json(report)
    return render_text(report)


def emit(report: Report, output_format: str = "text", sink: IO[str] | Path | None = None) -> None:
    """Render ``report`` and write it to a stream or file path (stdout by default)."""

    output = render(report, output_format)
    if isinstance(sink, Path):
        sink.parent.mkdir(parents=True, exist_ok=True)
        sink.write_text(output + "\n", encoding="utf-8")
        return

    stream = sink if sink is not None else sys.stdout
    stream.write(output + "\n")


__all__ = [
    "OUTPUT_FORMATS",
    "Report",
    "emit",
    "render",
    "render_json",
    "render_table",
    "render_text",
]
