from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone
from typing import Optional

from cocoa_contest.models.enumerations import Role


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Actor(BaseModel):
    """
    Caller identity as supplied by the identity/roles collaborator.

    The core never authenticates; it only branches on ``role``.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1, description="Identifier of the acting user")
    role: Role = Field(..., description="Role of the acting user")

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.DIRECTOR)


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(default=None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error occurrence timestamp")
