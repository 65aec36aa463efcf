"""Ordered multi-record mutations without a cross-key transaction.

Each step is one store call that checks or overwrites state so it can be
replayed.  Steps run in the order that keeps a crash after any prefix
recoverable; callers skip steps whose effect is already visible.  If the
store drops out after at least one step has landed, the caller gets
PartialWriteFailure naming the finished steps instead of a bare
StoreUnavailable, because re-running is now required, not optional.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TypeVar

from membership.core.exceptions import PartialWriteFailure, StoreUnavailable
from membership.core.metrics import PARTIAL_WRITE_FAILURES

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Saga:
    def __init__(self, operation: str) -> None:
        self.operation = operation
        self.completed: list[str] = []

    async def step(self, name: str, action: Awaitable[T]) -> T:
        try:
            result = await action
        except StoreUnavailable as e:
            raise self.interrupted(name) from e
        self.completed.append(name)
        return result

    def interrupted(self, failed_step: str) -> Exception:
        """Exception to raise when ``failed_step`` could not be written."""
        if not self.completed:
            return StoreUnavailable(f"{self.operation}: {failed_step} not written")
        PARTIAL_WRITE_FAILURES.labels(operation=self.operation).inc()
        logger.error(
            "Partial write: operation=%s failed_step=%s completed=%s",
            self.operation,
            failed_step,
            self.completed,
        )
        return PartialWriteFailure(self.operation, self.completed)
