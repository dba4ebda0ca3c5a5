"""Helpers for publishing conformance findings to GitHub Actions surfaces."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Iterable, Mapping, MutableMapping, Sequence

SEVERITY_ORDER = ["error", "warning"]
ANNOTATION_LEVELS = {
    "error": "error",
    "warning": "warning",
}


def _normalize_counts(raw_counts: Mapping[str, int] | None) -> MutableMapping[str, int]:
    counts: MutableMapping[str, int] = {severity: 0 for severity in SEVERITY_ORDER}
    if not raw_counts:
        return counts
    for severity, value in raw_counts.items():
        severity_key = str(severity).lower()
        if severity_key in counts:
            counts[severity_key] = int(value)
    return counts


def _failed_findings(report: Mapping[str, object]) -> list[Mapping[str, object]]:
    findings: Sequence[Mapping[str, object]] = report.get("findings") or []
    return [finding for finding in findings if not finding.get("passed", False)]


def _artifact_location(finding: Mapping[str, object]) -> str:
    artifact = finding.get("artifact") or {}
    path = str(artifact.get("path", "")).strip()
    if artifact.get("kind") == "tag" and artifact.get("name"):
        return f"{path} [tag {artifact['name']}]"
    return path


def format_summary(report: Mapping[str, object]) -> str:
    """Render a Markdown job summary for the provided report."""

    summary: Mapping[str, object] = report.get("summary") or {}
    metadata: Mapping[str, object] = report.get("metadata") or {}
    failures = _failed_findings(report)

    total_failures = int(summary.get("total_failures", len(failures)))
    total_checks = int(summary.get("total_checks", 0))
    highest = summary.get("highest_severity")
    highest_display = str(highest).title() if highest else "None"

    counts = _normalize_counts(summary.get("counts"))

    lines: list[str] = [
        "# Ansible Conformance Report",
        "",
        f"**Checks run:** {total_checks}",
        f"**Failures:** {total_failures}",
        f"**Highest severity:** {highest_display}",
        "",
        "| Severity | Failures |",
        "| --- | ---: |",
    ]

    for severity in SEVERITY_ORDER:
        lines.append(f"| {severity.title()} | {counts[severity]} |")

    if metadata:
        lines.extend(["", "## Metadata", ""])
        for key in sorted(metadata):
            value = metadata[key]
            lines.append(f"- **{key}:** {value}")

    if failures:
        lines.extend(["", "## Failures", ""])
        display_limit = 10
        for finding in failures[:display_limit]:
            severity = str(finding.get("severity", "warning")).lower()
            rule_id = str(finding.get("rule_id", "")).strip()
            message = str(finding.get("message", "")).strip()
            location = _artifact_location(finding)

            bullet = f"- **{severity.title()}**"
            if rule_id:
                bullet += f" `{rule_id}`"
            if message:
                bullet += f" - {message}"
            if location:
                bullet += f" _(Artifact: `{location}`)_"
            lines.append(bullet)

        remaining = len(failures) - display_limit
        if remaining > 0:
            lines.append(f"- ...and {remaining} more failures.")

    lines.append("")
    return "\n".join(lines)


def iter_annotations(report: Mapping[str, object]) -> Iterable[str]:
    """Generate GitHub Actions workflow command annotations for failed findings."""

    root = str((report.get("metadata") or {}).get("root") or "")
    for finding in _failed_findings(report):
        severity = str(finding.get("severity", "warning")).lower()
        level = ANNOTATION_LEVELS.get(severity, "notice")
        rule_id = str(finding.get("rule_id", "")).strip()
        message = str(finding.get("message", "")).strip()
        artifact = finding.get("artifact") or {}
        file_path = str(artifact.get("path", "")).strip()

        title_parts: list[str] = []
        if severity:
            title_parts.append(severity.title())
        if rule_id:
            title_parts.append(rule_id)
        title = " - ".join(title_parts)

        body = message or "Conformance finding reported without message."
        if artifact.get("kind") == "tag" and artifact.get("name"):
            body += f"; Tag: {artifact['name']}"
        body = body.replace("%", "%25").replace("\r", "").replace("\n", "%0A")

        attributes: list[str] = []
        if file_path:
            attributes.append(f"file={_workspace_path(root, file_path)}")
        if title:
            attributes.append(f"title={title}")

        attribute_segment = ""
        if attributes:
            attribute_segment = " " + ",".join(attributes)

        yield f"::{level}{attribute_segment}::{body}"


def _workspace_path(root: str, file_path: str) -> str:
    """Return ``file_path`` relative to ``$GITHUB_WORKSPACE`` when the project lives inside it."""

    workspace = os.getenv("GITHUB_WORKSPACE")
    if not root or not workspace:
        return file_path

    absolute = Path(root) / file_path
    try:
        return absolute.relative_to(Path(workspace)).as_posix()
    except ValueError:
        return file_path


def _load_report(path: Path) -> Mapping[str, object]:
    raw = path.read_text(encoding="utf-8-sig")
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse report JSON from '{path}': {exc.msg}.") from exc

    if not isinstance(data, Mapping):
        raise ValueError("Report JSON must be an object.")
    return data


def _write_summary(report: Mapping[str, object], destination: Path | None) -> None:
    if destination is None:
        return

    content = format_summary(report)
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("a", encoding="utf-8") as handle:
        handle.write(content)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Publish conformance findings as GitHub job summary and annotations."
    )
    parser.add_argument("report", type=Path, help="Path to the conformance report JSON file.")
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional explicit path for the GitHub job summary output.",
    )

    args = parser.parse_args(argv)

    summary_path = args.summary_path
    if summary_path is None:
        summary_env = os.getenv("GITHUB_STEP_SUMMARY")
        if summary_env:
            summary_path = Path(summary_env)

    try:
        report = _load_report(args.report)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}")
        return 2

    _write_summary(report, summary_path)

    for command in iter_annotations(report):
        print(command)

    return 0


def run() -> None:  # pragma: no cover - wrapper for console entry point
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
