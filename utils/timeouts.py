"""
Race an awaitable against a timer.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, TypeVar, Union

from .error_utils import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """The operation finished in time."""
    value: T


@dataclass(frozen=True)
class TimedOut:
    """The timer fired first."""
    label: str
    seconds: float

    @property
    def message(self) -> str:
        return f"{self.label} timed out after {self.seconds:g}s"

    def to_error(self) -> OperationTimeoutError:
        return OperationTimeoutError(self.label, self.seconds)


TimeoutOutcome = Union[Ok[T], TimedOut]


def _consume_abandoned(task: "asyncio.Future[Any]") -> None:
    # Retrieve the late outcome so asyncio does not report it as unhandled
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Abandoned operation finished with error: {error}")


async def with_timeout(operation: Awaitable[T], seconds: float, label: str) -> TimeoutOutcome:
    """
    Wait for an operation for at most `seconds`.

    The operation is not cancelled on expiry; the caller simply stops waiting
    for it. Exceptions raised by the operation itself propagate unchanged.

    Args:
        operation: Coroutine or future to await
        seconds: Time budget
        label: Human-readable operation name used in the timeout message

    Returns:
        Ok(value) when the operation completed, TimedOut(label, seconds) otherwise
    """
    task = asyncio.ensure_future(operation)
    done, _ = await asyncio.wait({task}, timeout=seconds)

    if task in done:
        return Ok(task.result())

    task.add_done_callback(_consume_abandoned)
    logger.warning(f"{label} timed out after {seconds:g}s, abandoning it")
    return TimedOut(label, seconds)
