"""
Timeout Guard

Bounds a single attempt of an async operation. When the budget expires the
attempt's task is cancelled and ``OperationTimeoutError`` is raised, so a
caller never sees a partial result.

Cancellation is cooperative: work that never reaches an await point cannot
be interrupted.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from flight_search.core.config.constants import Stage
from flight_search.core.exceptions.resilience import OperationTimeoutError
from flight_search.core.logging.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class TimeoutGuard:
    """Run one attempt under a time budget in milliseconds."""

    def __init__(self, timeout_ms: int, name: str = "operation"):
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be greater than 0")
        self.timeout_ms = timeout_ms
        self.name = name

    async def execute(self, work: Callable[[], Awaitable[T]]) -> T:
        try:
            async with asyncio.timeout(self.timeout_ms / 1000) as scope:
                return await work()
        except TimeoutError as exc:
            # A TimeoutError raised by the work itself is not ours to translate
            if not scope.expired():
                raise
            logger.warning(
                "Operation timed out",
                stage=Stage.TIMEOUT.value,
                operation_key=self.name,
                timeout_ms=self.timeout_ms,
            )
            raise OperationTimeoutError(
                f"Operation '{self.name}' timed out after {self.timeout_ms}ms",
                timeout_ms=self.timeout_ms,
                details={"operation_key": self.name},
            ) from exc
