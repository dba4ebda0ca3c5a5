"""Command-line interface package for the conformance checker."""

from .app import (
    EXIT_ERROR,
    EXIT_FINDINGS,
    EXIT_OK,
    build_parser,
    configure_logging,
    create_service,
    load_registry,
    main,
    run,
)

__all__ = [
    "EXIT_ERROR",
    "EXIT_FINDINGS",
    "EXIT_OK",
    "build_parser",
    "configure_logging",
    "create_service",
    "load_registry",
    "main",
    "run",
]
