"""Adapter layer package for project scanning and rule evaluation."""

from .project_scanner import InvalidProjectLayoutError, ProjectScanner
from .rule_engine import RuleEngineAdapter, RuleEvaluator, sort_findings

__all__ = [
    "InvalidProjectLayoutError",
    "ProjectScanner",
    "RuleEngineAdapter",
    "RuleEvaluator",
    "sort_findings",
]
