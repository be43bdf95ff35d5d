"""Bounded retry policy for calls that leave the process."""

import logging
from typing import Callable, Optional, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    stop_any,
    wait_exponential,
)

from app.config import settings
from app.errors import ExternalServiceError
from app.logging_config import get_logger
from app.services.deadline import Deadline

logger = get_logger("retry")

T = TypeVar("T")


def is_transient_error(exc: BaseException) -> bool:
    return isinstance(exc, ExternalServiceError) and exc.transient


def _deadline_reached(deadline: Optional[Deadline]):
    def _stop(retry_state) -> bool:
        return deadline is not None and deadline.expired()

    return _stop


def call_with_retry(
    func: Callable[..., T],
    *args,
    deadline: Optional[Deadline] = None,
    max_attempts: Optional[int] = None,
    **kwargs,
) -> T:
    """Run ``func`` retrying transient ``ExternalServiceError`` failures.

    Permanent failures and the last transient failure are re-raised as-is.
    Retrying stops early once ``deadline`` has passed.
    """
    attempts = max_attempts or settings.external_call_max_attempts
    retryer = Retrying(
        stop=stop_any(stop_after_attempt(max(attempts, 1)), _deadline_reached(deadline)),
        wait=wait_exponential(
            multiplier=settings.external_call_backoff_seconds,
            max=settings.external_call_backoff_max_seconds,
        ),
        retry=retry_if_exception(is_transient_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retryer(func, *args, **kwargs)
