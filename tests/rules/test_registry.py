from __future__ import annotations

import pytest

from ansible_conformance.models import (
    Artifact,
    ArtifactKind,
    ArtifactProblem,
    FindingSeverity,
    ProblemKind,
)
from ansible_conformance.rules import (
    Rule,
    RuleConfig,
    RuleConfigError,
    RuleNotFoundError,
    RuleRegistry,
    builtin_rules,
    default_registry,
)

EXPECTED_ORDER = [
    "role-name-lowercase-alphanumeric",
    "role-name-starts-with-letter",
    "max-40-tasks-per-role",
    "task-name-starts-uppercase",
    "tag-name-lowercase",
    "variable-name-lowercase",
    "directory-path-trailing-slash",
    "malformed-artifact",
    "unreadable-path",
]


def test_list_rules_preserves_registry_order() -> None:
    registry = default_registry()

    assert [rule.id for rule in registry.list_rules()] == EXPECTED_ORDER
    assert len(registry) == len(EXPECTED_ORDER)
    assert "tag-name-lowercase" in registry


def test_rule_for_returns_rule_or_raises() -> None:
    registry = default_registry()

    rule = registry.rule_for("tag-name-lowercase")
    assert rule.target is ArtifactKind.TAG
    assert rule.severity is FindingSeverity.WARNING

    with pytest.raises(RuleNotFoundError):
        registry.rule_for("no-such-rule")


def test_rules_for_filters_by_artifact_kind() -> None:
    registry = default_registry()
    role = Artifact(kind=ArtifactKind.ROLE, path="roles/web", name="web", content={})

    assert [rule.id for rule in registry.rules_for(role)] == EXPECTED_ORDER[:3]
    assert [rule.id for rule in registry.rules_targeting(ArtifactKind.VARIABLE_FILE)] == [
        "variable-name-lowercase",
        "directory-path-trailing-slash",
    ]
    assert registry.rules_targeting(ArtifactKind.PLAYBOOK) == ()


def test_rules_for_problem_artifact_returns_only_problem_rule() -> None:
    registry = default_registry()
    artifact = Artifact(
        kind=ArtifactKind.ROLE,
        path="roles/web",
        name="web",
        problem=ArtifactProblem(kind=ProblemKind.UNREADABLE, message="denied"),
    )

    assert [rule.id for rule in registry.rules_for(artifact)] == ["unreadable-path"]


def test_configured_returns_new_registry() -> None:
    registry = default_registry()
    config = RuleConfig(
        disabled={"directory-path-trailing-slash"},
        severity_overrides={"tag-name-lowercase": FindingSeverity.ERROR},
        settings={"max_tasks_per_role": 10},
    )

    tuned = registry.configured(config)

    assert tuned is not registry
    assert "directory-path-trailing-slash" not in tuned
    assert tuned.rule_for("tag-name-lowercase").severity is FindingSeverity.ERROR
    assert tuned.settings["max_tasks_per_role"] == 10
    assert tuned.settings["debug_marker"] == "debug"

    assert "directory-path-trailing-slash" in registry
    assert registry.rule_for("tag-name-lowercase").severity is FindingSeverity.WARNING
    assert registry.settings["max_tasks_per_role"] == 40


def test_configured_rejects_unknown_rules() -> None:
    registry = default_registry()

    with pytest.raises(RuleConfigError):
        registry.configured(RuleConfig(disabled={"made-up-rule"}))

    with pytest.raises(RuleConfigError):
        registry.configured(
            RuleConfig(severity_overrides={"made-up-rule": FindingSeverity.ERROR})
        )


def test_problem_rules_cannot_be_disabled() -> None:
    with pytest.raises(RuleConfigError):
        default_registry(RuleConfig(disabled={"unreadable-path"}))


def test_registry_is_read_only() -> None:
    registry = default_registry()

    with pytest.raises(TypeError):
        registry.settings["max_tasks_per_role"] = 1  # type: ignore[index]

    with pytest.raises(AttributeError):
        registry.extra = "value"  # type: ignore[attr-defined]


def test_duplicate_rule_ids_are_rejected() -> None:
    rule = builtin_rules()[0]

    with pytest.raises(ValueError):
        RuleRegistry([rule, rule])


def test_custom_rules_can_be_registered() -> None:
    rule = Rule(
        id="playbook-not-empty",
        description="Playbooks declare at least one play.",
        target=ArtifactKind.PLAYBOOK,
        check=lambda artifact, settings: None if artifact.content else "empty playbook",
        severity=FindingSeverity.WARNING,
    )
    registry = RuleRegistry([rule])
    playbook = Artifact(kind=ArtifactKind.PLAYBOOK, path="site.yml", name="site.yml", content=[])

    assert registry.rules_for(playbook) == (rule,)
    assert rule.check(playbook, registry.settings) == "empty playbook"


@pytest.mark.parametrize(
    "settings",
    [
        {"max_tasks_per_role": "many"},
        {"max_tasks_per_role": -1},
        {"max_tasks_per_role": True},
        {"debug_marker": ""},
        {"debug_marker": ["debug"]},
        {"directory_suffixes": "_dir"},
        {"directory_suffixes": ["_dir", 3]},
    ],
)
def test_configured_rejects_invalid_settings(settings: dict[str, object]) -> None:
    with pytest.raises(RuleConfigError):
        default_registry(RuleConfig(settings=settings))


def test_configured_normalizes_directory_suffixes() -> None:
    registry = default_registry(RuleConfig(settings={"directory_suffixes": ["_path"], "max_tasks_per_role": 0}))

    assert registry.settings["directory_suffixes"] == ("_path",)
    assert registry.settings["max_tasks_per_role"] == 0
