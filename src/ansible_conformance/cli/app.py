"""Command-line interface implementation for the conformance checker."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from .. import __version__
from ..adapters import InvalidProjectLayoutError
from ..models import FindingSeverity
from ..reporting import OUTPUT_FORMATS, Report, emit, render_table
from ..rules import RuleConfigError, RuleConfigManager, RuleRegistry, default_registry
from ..service import CheckResult, ConformanceService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="ansible-conformance",
        description="Check Ansible project trees against naming and layout conventions.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    check_parser = subparsers.add_parser(
        "check", help="Scan an Ansible project and report conformance findings."
    )
    check_parser.add_argument(
        "path",
        type=Path,
        help="Root directory of the Ansible project (holding roles/, playbooks/ or an inventory).",
    )
    check_parser.add_argument(
        "--format",
        choices=list(OUTPUT_FORMATS),
        default="text",
        help="Output format for the report.",
    )
    check_parser.add_argument(
        "--severity-threshold",
        choices=[severity.value for severity in FindingSeverity],
        default=FindingSeverity.ERROR.value,
        help="Exit with status 1 when failures at or above this severity are present.",
    )
    check_parser.add_argument(
        "--config",
        dest="configs",
        action="append",
        type=Path,
        default=None,
        help="Rule configuration YAML file; repeat to merge several files in order.",
    )
    check_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the report to this file instead of standard output.",
    )
    check_parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Number of worker threads used to evaluate artifacts.",
    )
    _add_verbosity_flags(check_parser)

    rules_parser = subparsers.add_parser("rules", help="List the available conformance rules.")
    rules_parser.add_argument(
        "--format",
        choices=list(OUTPUT_FORMATS),
        default="text",
        help="Output format for the rule listing.",
    )
    rules_parser.add_argument(
        "--config",
        dest="configs",
        action="append",
        type=Path,
        default=None,
        help="Rule configuration YAML file applied before listing.",
    )
    _add_verbosity_flags(rules_parser)

    return parser


def _add_verbosity_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--verbose",
        action="store_true",
        help="Log scan progress and per-rule details to standard error.",
    )
    group.add_argument(
        "--quiet",
        action="store_true",
        help="Only log errors to standard error.",
    )


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR

    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def load_registry(configs: Sequence[Path] | None) -> RuleRegistry:
    """Return the built-in registry tuned by the given configuration files."""

    config = RuleConfigManager().load(configs)
    return default_registry(config)


def create_service(*, registry: RuleRegistry | None = None) -> ConformanceService:
    """Create a conformance service using the filesystem scanner and local evaluator."""

    return ConformanceService(registry=registry)


def _build_report(result: CheckResult) -> Report:
    return result.to_report()


def _handle_check(args: argparse.Namespace) -> int:
    if args.jobs < 1:
        print("Error: --jobs must be at least 1", file=sys.stderr)
        return EXIT_ERROR

    try:
        registry = load_registry(args.configs)
    except RuleConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    service = create_service(registry=registry)
    root = args.path.resolve()

    try:
        result = service.check(root, jobs=args.jobs)
    except InvalidProjectLayoutError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    report = _build_report(result)
    emit(report, args.format, args.output)
    if args.output is not None:
        logger.info("Report written to %s", args.output)

    threshold = FindingSeverity(args.severity_threshold)
    return EXIT_FINDINGS if report.exceeds(threshold) else EXIT_OK


def _serialize_rules(registry: RuleRegistry) -> list[dict[str, Any]]:
    return [
        {
            "id": rule.id,
            "target": rule.target.value if rule.target else None,
            "severity": rule.severity.value,
            "description": rule.description,
        }
        for rule in registry.list_rules()
    ]


def _handle_rules(args: argparse.Namespace) -> int:
    try:
        registry = load_registry(args.configs)
    except RuleConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    rules = _serialize_rules(registry)
    if args.format == "json":
        print(json.dumps({"rules": rules, "settings": _json_settings(registry)}, indent=2))
        return EXIT_OK

    rows = [("Rule ID", "Target", "Severity", "Description")]
    rows.extend(
        (rule["id"], rule["target"] or "any", rule["severity"], rule["description"])
        for rule in rules
    )
    print("\n".join(render_table(rows)))
    return EXIT_OK


def _json_settings(registry: RuleRegistry) -> dict[str, Any]:
    return {
        key: list(value) if isinstance(value, tuple) else value
        for key, value in sorted(registry.settings.items())
    }


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    configure_logging(verbose=args.verbose, quiet=args.quiet)

    if args.command == "check":
        return _handle_check(args)
    if args.command == "rules":
        return _handle_rules(args)

    parser.print_help()
    return EXIT_OK


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
