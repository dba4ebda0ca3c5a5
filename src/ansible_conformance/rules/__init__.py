"""Rule registry, built-in rules and rule configuration loading."""

from .base import MalformedArtifactError, Rule, RulePredicate
from .builtin import DEFAULT_SETTINGS, builtin_rules, is_debug_task_file
from .config_manager import RuleConfig, RuleConfigError, RuleConfigManager
from .registry import RuleNotFoundError, RuleRegistry, default_registry

__all__ = [
    "DEFAULT_SETTINGS",
    "MalformedArtifactError",
    "Rule",
    "RuleConfig",
    "RuleConfigError",
    "RuleConfigManager",
    "RuleNotFoundError",
    "RulePredicate",
    "RuleRegistry",
    "builtin_rules",
    "default_registry",
    "is_debug_task_file",
]
