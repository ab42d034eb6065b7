"""
Operation Result Envelope

Business operations return a structured result instead of letting domain
errors escape. Each service maps its exception hierarchy onto ErrorCode;
anything unanticipated is logged and reported with a generic message.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class ErrorCode(str, Enum):
    """Failure taxonomy shared by all lifecycle operations"""
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    VALIDATION_FAILURE = "validation_failure"
    UNEXPECTED = "unexpected"


class OperationResult(BaseModel, Generic[T]):
    """Success value or a coded failure"""
    success: bool
    data: Optional[T] = None
    error_code: Optional[ErrorCode] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "OperationResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error_code: ErrorCode, message: str) -> "OperationResult":
        return cls(success=False, error_code=error_code, message=message)


async def run_operation(
    name: str,
    call: Callable[[], Awaitable[Any]],
    domain_error: Type[Exception],
) -> OperationResult:
    """
    Await a service call and wrap its outcome.

    Args:
        name: Operation name used in log lines
        call: Zero-argument coroutine factory performing the work
        domain_error: Base class of the service's expected errors; instances
            must expose ``error_code`` and ``message``
    """
    try:
        return OperationResult.ok(await call())
    except domain_error as e:
        logger.warning(f"{name} rejected: {e.message}")
        return OperationResult.fail(e.error_code, e.message)
    except Exception as e:
        logger.error(f"{name} failed unexpectedly: {e}", exc_info=True)
        return OperationResult.fail(ErrorCode.UNEXPECTED, UNEXPECTED_ERROR_MESSAGE)


__all__ = [
    "ErrorCode",
    "OperationResult",
    "UNEXPECTED_ERROR_MESSAGE",
    "run_operation",
]
