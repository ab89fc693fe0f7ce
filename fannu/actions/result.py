"""
Action outcomes
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError

from ..validation import field_errors as flatten_errors

VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
CONFLICT = "CONFLICT"
INVALID_STATE = "INVALID_STATE"
DATABASE_ERROR = "DATABASE_ERROR"


class ActionError(Exception):
    """Raised inside a session block to roll back and report a failure"""

    def __init__(self, message: str, code: str = INVALID_STATE):
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass
class ActionResult:
    """Outcome of a mutation"""
    success: bool
    error: Optional[str] = None
    code: Optional[str] = None
    data: Any = None
    field_errors: dict[str, list[str]] = field(default_factory=dict)

    # VIP subscribe
    confirmation_id: Optional[str] = None
    already_subscribed: bool = False
    resubscribed: bool = False

    @classmethod
    def ok(cls, data: Any = None, **kwargs) -> "ActionResult":
        return cls(success=True, data=data, **kwargs)

    @classmethod
    def fail(cls, error: str, code: str = DATABASE_ERROR) -> "ActionResult":
        return cls(success=False, error=error, code=code)

    @classmethod
    def invalid(cls, exc: ValidationError) -> "ActionResult":
        return cls(
            success=False,
            error="Invalid input",
            code=VALIDATION_ERROR,
            field_errors=flatten_errors(exc),
        )

    @classmethod
    def from_error(cls, exc: ActionError) -> "ActionResult":
        return cls.fail(exc.message, exc.code)
