"""Minimal smoke tests for the conformance checker package."""


def test_package_importable() -> None:
    """Ensure the top-level package exposes the expected namespace."""
    import ansible_conformance  # noqa: F401  # Imported for side effects
    from ansible_conformance.cli import main  # noqa: F401
