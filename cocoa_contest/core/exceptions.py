"""
Custom Exceptions - Cocoa Contest Evaluation Engine
cocoa_contest/core/exceptions.py

Repository exceptions plus the typed errors raised by the evaluation core.
"""

from typing import Any, Dict, Iterable, List, Optional


class RepositoryException(Exception):
    """Base exception for repository operations."""

    pass


class EntityNotFoundException(RepositoryException):
    """Entity not found in the store."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class DuplicateEntityException(RepositoryException):
    """Duplicate entity violation."""

    def __init__(self, message: str = "Entity already exists"):
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Evaluation core errors
# ---------------------------------------------------------------------------


class ContestEngineError(Exception):
    """Base class for errors the core hands back to its callers."""

    error_code = "CONTEST_ENGINE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidTransition(ContestEngineError):
    """Event is not legal for the sample's current status."""

    error_code = "INVALID_TRANSITION"

    def __init__(self, event: str, status: str, reason: Optional[str] = None):
        self.event = event
        self.status = status
        message = f"Cannot apply '{event}' to a sample in status '{status}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"event": event, "status": status, "reason": reason})


class CapacityExceeded(ContestEngineError):
    """Assignment would push one or more judges/evaluators past capacity."""

    error_code = "CAPACITY_EXCEEDED"

    def __init__(self, judge_ids: Iterable[str]):
        self.judge_ids: List[str] = sorted(judge_ids)
        super().__init__(
            f"Assignment exceeds capacity for: {', '.join(self.judge_ids)}",
            {"judge_ids": self.judge_ids},
        )


class DuplicateEvaluation(ContestEngineError):
    """A judge or evaluator already submitted an evaluation for this sample."""

    error_code = "DUPLICATE_EVALUATION"

    def __init__(self, author_id: str, sample_id: str):
        self.author_id = author_id
        self.sample_id = sample_id
        super().__init__(
            f"{author_id} already submitted an evaluation for sample {sample_id}",
            {"author_id": author_id, "sample_id": sample_id},
        )


class GateDenied(ContestEngineError):
    """Final-stage payment or evaluation attempted outside the allowed window."""

    error_code = "GATE_DENIED"

    def __init__(self, reason: str, **details: Any):
        self.reason = reason
        super().__init__(f"Final evaluation not permitted: {reason}", {"reason": reason, **details})


class StaleWrite(ContestEngineError):
    """A conditional update lost a race against a concurrent writer."""

    error_code = "STALE_WRITE"

    def __init__(self, entity_type: str, entity_id: str, expected: int, actual: Optional[int]):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} changed concurrently; refresh and retry",
            {"entity_type": entity_type, "entity_id": entity_id,
             "expected_version": expected, "actual_version": actual},
        )


class RoleNotPermitted(ContestEngineError):
    """Actor's role may not perform the requested operation."""

    error_code = "ROLE_NOT_PERMITTED"

    def __init__(self, role: str, operation: str):
        super().__init__(
            f"Role '{role}' may not perform '{operation}'",
            {"role": role, "operation": operation},
        )


class MissingAttribute(ContestEngineError):
    """
    An expected child attribute was absent from aggregator input.

    The aggregator never raises this; it records one instance per missing
    child on its result and scores the child as 0.
    """

    error_code = "MISSING_ATTRIBUTE"

    def __init__(self, group: str, attribute: str):
        self.group = group
        self.attribute = attribute
        super().__init__(
            f"Attribute '{group}.{attribute}' missing; scored as 0",
            {"group": group, "attribute": attribute},
        )
