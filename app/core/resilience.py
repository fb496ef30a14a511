"""Timeout and failure translation for calls to external collaborators."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from app.core.exceptions import DependencyException

T = TypeVar("T")

logger = structlog.get_logger(__name__)


async def guarded_call(
    awaitable: Awaitable[T],
    *,
    dependency: str,
    timeout: float,
    errors: tuple[type[BaseException], ...] = (),
) -> T:
    """
    Await an external call with an upper time bound.

    Args:
        awaitable: The pending call
        dependency: Name of the collaborator, used in errors and logs
        timeout: Seconds to wait before giving up
        errors: Exception types that mean the collaborator is unreachable

    Returns:
        The call's result

    Raises:
        DependencyException: On timeout or on any of ``errors``
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as e:
        logger.warning("dependency_timeout", dependency=dependency, timeout=timeout)
        raise DependencyException(dependency, f"timed out after {timeout}s") from e
    except errors as e:
        logger.warning("dependency_failed", dependency=dependency, error=str(e))
        raise DependencyException(dependency, str(e) or e.__class__.__name__) from e
