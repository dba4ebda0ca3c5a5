"""Classification and normalization of raw project files."""

from .artifact_normalizer import (
    ArtifactNormalizer,
    classify,
    iter_play_tasks,
    iter_tasks,
    load_yaml,
    parse_ini_inventory,
    tag_names,
)

__all__ = [
    "ArtifactNormalizer",
    "classify",
    "iter_play_tasks",
    "iter_tasks",
    "load_yaml",
    "parse_ini_inventory",
    "tag_names",
]
