"""Retrying transaction runner.

Host plan and club lifecycle mutations read a fixed set of rows, validate them and write
all-or-nothing. Rows carry an optimistic ``version`` column, so a concurrent writer makes
the flush fail with ``StaleDataError``. The runner rolls back and executes the whole body
again against fresh reads until it commits or the attempt budget is spent.
"""

from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from clubhost.core.config import settings
from clubhost.core.exceptions import TransactionContentionError
from clubhost.core.logging import ContextualLogger, logger
from clubhost.db.unit_of_work import UnitOfWork

T = TypeVar("T")

RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (StaleDataError, OperationalError)


async def run_transaction(
    db: AsyncSession,
    body: Callable[[UnitOfWork], Awaitable[T]],
    *,
    retry_on: Tuple[Type[BaseException], ...] = (),
    max_attempts: Optional[int] = None,
    log: Optional[ContextualLogger] = None,
) -> T:
    """Execute ``body`` inside a unit of work, re-running it on write conflicts.

    The body must be safe to re-execute: it has to re-read every row it depends on
    instead of reusing state from a previous attempt. Any exception that is not a
    conflict (ownership violations, missing rows) aborts immediately without retry.

    Args:
        db: The session the transaction runs on.
        body: Coroutine function receiving the active ``UnitOfWork``.
        retry_on: Extra exception types to treat as conflicts, e.g. ``IntegrityError``
            for writers guarded by a unique index.
        max_attempts: Attempt budget, defaults to ``TRANSACTION_MAX_ATTEMPTS``.
        log: Logger carrying the caller's context.

    Returns:
        Whatever ``body`` returned on the committed attempt.

    Raises:
        TransactionContentionError: If every attempt hit a conflict.
    """
    log = log or logger
    attempts = max_attempts or settings.TRANSACTION_MAX_ATTEMPTS
    retryable = RETRYABLE_ERRORS + tuple(retry_on)

    def _log_retry(retry_state) -> None:
        log.warning(
            f"Transaction conflict on attempt {retry_state.attempt_number}/{attempts}: "
            f"{retry_state.outcome.exception()!r}; retrying"
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=1),
        retry=retry_if_exception_type(retryable),
        before_sleep=_log_retry,
    )

    try:
        async for attempt in retrying:
            with attempt:
                async with UnitOfWork(db) as uow:
                    result = await body(uow)
    except RetryError as e:
        log.error(f"Transaction abandoned after {attempts} attempts")
        raise TransactionContentionError(attempts) from e.last_attempt.exception()

    return result
