from __future__ import annotations

from typing import Callable, Optional

from . import config
from .cancellation import CancellationToken
from .error_codes import RunCancelled
from .logging_utils import _scraper_event
from .results import ExtractionResult
from .utils import log_line

Lookup = Callable[[str], ExtractionResult]


def decide_retry(attempt_index: int, max_attempts: int, result: ExtractionResult) -> bool:
    """Decide whether another lookup attempt should be made.

    ``not_found`` and ``failed`` outcomes are retried alike until the attempt
    cap; a ``found`` outcome never is.
    """

    if result.is_found:
        return False

    if attempt_index >= max_attempts:
        _scraper_event(
            "state",
            phase="retry_decision",
            kind="capped",
            attempt=attempt_index,
            max_attempts=max_attempts,
            status=result.status.value,
            error_code=result.error_code,
            will_retry=False,
        )
        return False

    _scraper_event(
        "state",
        phase="retry_decision",
        kind="retryable",
        attempt=attempt_index,
        max_attempts=max_attempts,
        status=result.status.value,
        error_code=result.error_code,
        will_retry=True,
    )
    return True


def attempt_with_retries(
    lookup: Lookup,
    identifier: str,
    *,
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> ExtractionResult:
    """Run ``lookup`` for ``identifier`` up to ``max_retries`` times.

    Stops at the first ``found`` outcome and waits ``delay`` seconds before each
    retry. Returns the last outcome, annotated with the number of attempts.
    Raises ``RunCancelled`` when an interrupt arrives before a retry.
    """

    max_attempts = max(1, max_retries if max_retries is not None else config.MAX_RETRIES)
    retry_delay = config.RETRY_DELAY_SECONDS if delay is None else delay
    token = cancel_token or CancellationToken()

    attempt = 1
    result = lookup(identifier)
    while decide_retry(attempt, max_attempts, result):
        if token.cancelled:
            raise RunCancelled(f"Interrupted while retrying {identifier}")
        log_line(f"   Retry {attempt}/{max_attempts}")
        if token.wait(retry_delay):
            raise RunCancelled(f"Interrupted while retrying {identifier}")
        attempt += 1
        result = lookup(identifier)

    return result.with_attempts(attempt)


__all__ = ["decide_retry", "attempt_with_retries"]
