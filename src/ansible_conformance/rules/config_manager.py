"""Utilities for loading and merging rule configuration files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Set

import yaml

from ..models import FindingSeverity


class RuleConfigError(RuntimeError):
    """Raised when rule configuration files cannot be loaded or applied."""


@dataclass(slots=True)
class RuleConfig:
    """Merged configuration describing how the rule registry should be tuned."""

    disabled: Set[str] = field(default_factory=set)
    severity_overrides: Dict[str, FindingSeverity] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.disabled or self.severity_overrides or self.settings)


class RuleConfigManager:
    """Load rule configuration files and merge them in order."""

    def __init__(self, default_configs: Sequence[Path | str] | None = None) -> None:
        self._default_configs: List[Path] = [Path(path) for path in default_configs or []]

    # ------------------------------------------------------------------
    def load(self, configs: Sequence[Path | str] | None = None) -> RuleConfig:
        """Return the configuration produced by merging defaults and ``configs``."""

        config_paths = list(self._default_configs)
        if configs:
            config_paths.extend(Path(path) for path in configs)

        merged = RuleConfig()
        for config_path in config_paths:
            data = self._load_config(config_path)

            disabled = data.get("disabled")
            if isinstance(disabled, list):
                merged.disabled.update(str(rule_id).strip() for rule_id in disabled)

            enabled = data.get("enabled")
            if isinstance(enabled, list):
                merged.disabled.difference_update(str(rule_id).strip() for rule_id in enabled)

            severity = data.get("severity")
            if isinstance(severity, Mapping):
                for rule_id, level in severity.items():
                    if not isinstance(rule_id, str):
                        continue

                    severity_value: FindingSeverity | None
                    if isinstance(level, FindingSeverity):
                        severity_value = level
                    elif isinstance(level, str):
                        try:
                            severity_value = FindingSeverity(level.strip().lower())
                        except ValueError:
                            continue
                    else:
                        continue

                    merged.severity_overrides[rule_id.strip()] = severity_value

            settings = data.get("settings")
            if isinstance(settings, Mapping):
                merged.settings.update(settings)

        return merged

    # ------------------------------------------------------------------
    def _load_config(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise RuleConfigError(f"Rule configuration not found: {path}")

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
            raise RuleConfigError(f"Failed to read rule configuration {path}") from exc

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise RuleConfigError(f"Invalid YAML in rule configuration {path}") from exc

        if not isinstance(data, Mapping):
            raise RuleConfigError(f"Rule configuration must be a mapping: {path}")

        return dict(data)


__all__ = ["RuleConfig", "RuleConfigError", "RuleConfigManager"]
