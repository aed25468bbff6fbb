"""
Core Package - Cocoa Contest Evaluation Engine
cocoa_contest/core/__init__.py

Core infrastructure: exceptions, logging. Dependency getters live in
cocoa_contest.core.dependencies and are imported from there directly.
"""

from cocoa_contest.core.exceptions import (
    CapacityExceeded,
    ContestEngineError,
    DuplicateEntityException,
    DuplicateEvaluation,
    EntityNotFoundException,
    GateDenied,
    InvalidTransition,
    MissingAttribute,
    RepositoryException,
    RoleNotPermitted,
    StaleWrite,
)
from cocoa_contest.core.logging_config import configure_logging

__all__ = [
    # Exceptions
    "CapacityExceeded",
    "ContestEngineError",
    "DuplicateEntityException",
    "DuplicateEvaluation",
    "EntityNotFoundException",
    "GateDenied",
    "InvalidTransition",
    "MissingAttribute",
    "RepositoryException",
    "RoleNotPermitted",
    "StaleWrite",
    # Logging
    "configure_logging",
]
