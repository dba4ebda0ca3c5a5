"""Data models for scanned Ansible artifacts and conformance findings."""

from .artifact import Artifact, ArtifactKind, ArtifactProblem, MalformedArtifactError, ProblemKind
from .finding import SEVERITY_RANK, Finding, FindingSeverity

__all__ = [
    "Artifact",
    "ArtifactKind",
    "ArtifactProblem",
    "Finding",
    "FindingSeverity",
    "MalformedArtifactError",
    "ProblemKind",
    "SEVERITY_RANK",
]
