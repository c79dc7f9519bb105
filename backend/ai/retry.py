"""Retry utilities and error classification for LLM calls."""
import asyncio
import logging

import anthropic
import httpx
import openai
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_none,
)


logger = logging.getLogger(__name__)

_RETRYABLE_TYPES = (
    asyncio.TimeoutError,
    httpx.TimeoutException,
    httpx.ConnectError,
    openai.RateLimitError,
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.InternalServerError,
    anthropic.RateLimitError,
    anthropic.APITimeoutError,
    anthropic.APIConnectionError,
    anthropic.InternalServerError,
)

_NON_RETRYABLE_TYPES = (
    openai.AuthenticationError,
    openai.BadRequestError,
    openai.PermissionDeniedError,
    anthropic.AuthenticationError,
    anthropic.BadRequestError,
    anthropic.PermissionDeniedError,
)


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an exception is worth retrying by the caller.

    Uses both exception type checking and string matching, since some
    errors arrive wrapped or re-raised as generic exceptions.

    Retryable errors include:
    - Rate limit errors (429)
    - Server errors (5xx)
    - Timeout errors
    - Connection and DNS errors

    Non-retryable errors include:
    - Authentication errors (401/403)
    - Bad request errors (400)
    - Not found errors (404)
    - Insufficient quota errors
    """
    if isinstance(exception, _RETRYABLE_TYPES):
        return True
    if isinstance(exception, _NON_RETRYABLE_TYPES):
        return False

    error_str = str(exception).lower()
    exception_type_str = type(exception).__name__.lower()

    if ("rate" in error_str and "limit" in error_str) or "429" in error_str:
        return True
    if any(code in error_str for code in ["500", "502", "503", "504"]):
        return True
    if "timeout" in error_str or "timed out" in error_str or "timeout" in exception_type_str:
        return True
    if "connection" in error_str or "connect" in exception_type_str:
        return True
    if "temporary failure in name resolution" in error_str:
        return True

    if any(code in error_str for code in ["400", "401", "403", "404"]):
        return False
    if "quota" in error_str and "exceeded" in error_str:
        return False

    # Default: don't retry unknown errors
    return False


def schema_retrying(
    max_retries: int,
    retry_on: type[BaseException] | tuple[type[BaseException], ...],
) -> AsyncRetrying:
    """
    Create an async retry controller for re-prompting on invalid output.

    Only the given exception types trigger another attempt and attempts
    follow each other immediately. Other exceptions propagate at once.

    Args:
        max_retries: Retries allowed after the first attempt
        retry_on: Exception type(s) that trigger a re-prompt

    Returns:
        AsyncRetrying to iterate with ``async for attempt in ...``

    Raises:
        ValueError: If max_retries is negative
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")

    return AsyncRetrying(
        retry=retry_if_exception_type(retry_on),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_none(),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
