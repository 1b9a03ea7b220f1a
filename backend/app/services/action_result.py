"""
Action result helpers.

Billing and accounting actions never let a domain exception escape; they
answer with an ActionResult instead.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from backend.app.core.exceptions import AppException
from backend.app.schemas.billing import ActionResult

logger = logging.getLogger(__name__)


def failure(exc: AppException) -> ActionResult:
    if exc.status_code >= 500:
        logger.error("Action failed: %s (%s)", exc.message, exc.error_code)
    else:
        logger.warning("Action rejected: %s (%s)", exc.message, exc.error_code)
    return ActionResult(success=False, error=exc.message, error_code=exc.error_code)


async def run_action(
    operation: Callable[[], Awaitable[Any]],
    message: str,
    serialize: Optional[Callable[[Any], Any]] = None,
) -> ActionResult:
    """
    Await an operation and wrap its outcome.

    Args:
        operation: Zero-argument coroutine function doing the work
        message: Success message shown to the operator
        serialize: Turns the operation's return value into result data
    """
    try:
        value = await operation()
    except AppException as exc:
        return failure(exc)

    data = serialize(value) if serialize else None
    return ActionResult(success=True, message=message, data=data)
