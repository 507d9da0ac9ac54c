"""Non-reentrant guard for ledger operations.

Asset movers are external code and may call back into the ledger before
they return. State is always written before the transfer, but the guard is
a second, independent layer: while one guarded operation is in flight, any
other guarded operation on the same ledger is rejected outright.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from commodity_escrow.domain.exceptions import EscrowError, ReentrantCallError
from commodity_escrow.logging_config import get_logger, operation_context

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = get_logger(__name__)

F = TypeVar("F", bound="Callable[..., Any]")


class NonReentrantGuard:
    """Exclusivity token held for the duration of one top-level operation."""

    def __init__(self) -> None:
        self._in_flight: str | None = None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if self._in_flight is not None:
            logger.warning(
                "guard.reentrant_call",
                operation=operation,
                in_flight=self._in_flight,
            )
            raise ReentrantCallError(operation)
        self._in_flight = operation
        try:
            yield
        finally:
            self._in_flight = None


def guarded_operation(method: F) -> F:
    """Run a ledger method under the instance's ``_guard`` and log rejections.

    The first positional argument is taken as the caller and bound to the
    log context along with the operation name.

    The decorated object must expose a ``_guard`` attribute holding a
    NonReentrantGuard.
    """

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        operation = method.__name__
        caller = args[0] if args else kwargs.get("caller")
        with operation_context(operation, caller), self._guard.hold(operation):
            try:
                return method(self, *args, **kwargs)
            except EscrowError as exc:
                logger.warning("ledger.rejected", code=exc.code, reason=exc.message)
                raise

    return wrapper  # type: ignore[return-value]
