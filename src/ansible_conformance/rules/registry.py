"""Immutable registry of the conformance rules applied to a project."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from ..models import Artifact, ArtifactKind
from .base import Rule
from .builtin import DEFAULT_SETTINGS, builtin_rules
from .config_manager import RuleConfig, RuleConfigError


class RuleNotFoundError(LookupError):
    """Raised when a rule identifier is not present in the registry."""


class RuleRegistry:
    """Ordered, read-only collection of rules plus the settings they consult."""

    __slots__ = ("_rules", "_index", "_settings")

    def __init__(
        self,
        rules: Iterable[Rule],
        settings: Optional[Mapping[str, Any]] = None,
    ) -> None:
        ordered = tuple(rules)
        index = {}
        for rule in ordered:
            if rule.id in index:
                raise ValueError(f"Duplicate rule id: {rule.id}")
            index[rule.id] = rule

        merged_settings = dict(DEFAULT_SETTINGS)
        merged_settings.update(settings or {})

        self._rules: Tuple[Rule, ...] = ordered
        self._index: Mapping[str, Rule] = MappingProxyType(index)
        self._settings: Mapping[str, Any] = MappingProxyType(merged_settings)

    # ------------------------------------------------------------------
    def list_rules(self) -> Tuple[Rule, ...]:
        """Return every rule in registry order."""

        return self._rules

    def rule_for(self, rule_id: str) -> Rule:
        """Return the rule registered under ``rule_id``."""

        try:
            return self._index[rule_id]
        except KeyError:
            raise RuleNotFoundError(f"Unknown rule: {rule_id}") from None

    def rules_for(self, artifact: Artifact) -> Tuple[Rule, ...]:
        """Return the rules applicable to ``artifact`` in registry order."""

        return tuple(rule for rule in self._rules if rule.applies_to(artifact))

    def rules_targeting(self, kind: ArtifactKind) -> Tuple[Rule, ...]:
        return tuple(rule for rule in self._rules if rule.target is kind)

    @property
    def settings(self) -> Mapping[str, Any]:
        return self._settings

    # ------------------------------------------------------------------
    def configured(self, config: RuleConfig) -> "RuleRegistry":
        """Return a new registry with ``config`` applied; ``self`` is unchanged."""

        unknown = sorted(
            rule_id
            for rule_id in set(config.disabled) | set(config.severity_overrides)
            if rule_id not in self._index
        )
        if unknown:
            raise RuleConfigError(f"Unknown rule ids in configuration: {', '.join(unknown)}")

        for rule_id in config.disabled:
            if self._index[rule_id].problem is not None:
                raise RuleConfigError(f"Rule {rule_id} reports scan problems and cannot be disabled")

        rules = []
        for rule in self._rules:
            if rule.id in config.disabled:
                continue
            override = config.severity_overrides.get(rule.id)
            rules.append(rule.with_severity(override) if override else rule)

        settings = dict(self._settings)
        settings.update(_validated_settings(config.settings))
        return RuleRegistry(rules, settings)

    # ------------------------------------------------------------------
    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._index


def _validated_settings(settings: Mapping[str, Any]) -> Dict[str, Any]:
    """Check the types of known settings; unknown keys pass through unchanged."""

    validated = dict(settings)
    if "max_tasks_per_role" in validated:
        limit = validated["max_tasks_per_role"]
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise RuleConfigError(
                f"Setting max_tasks_per_role must be a non-negative integer, got {limit!r}"
            )

    if "debug_marker" in validated:
        marker = validated["debug_marker"]
        if not isinstance(marker, str) or not marker.strip():
            raise RuleConfigError(f"Setting debug_marker must be a non-empty string, got {marker!r}")

    if "directory_suffixes" in validated:
        suffixes = validated["directory_suffixes"]
        if not isinstance(suffixes, (list, tuple)) or not all(
            isinstance(suffix, str) and suffix for suffix in suffixes
        ):
            raise RuleConfigError(
                f"Setting directory_suffixes must be a list of non-empty strings, got {suffixes!r}"
            )
        validated["directory_suffixes"] = tuple(suffixes)

    return validated


def default_registry(config: Optional[RuleConfig] = None) -> RuleRegistry:
    """Build the registry of built-in rules, optionally tuned by ``config``."""

    registry = RuleRegistry(builtin_rules())
    if config is None or config.is_empty:
        return registry
    return registry.configured(config)


__all__ = ["RuleNotFoundError", "RuleRegistry", "default_registry"]
