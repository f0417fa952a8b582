from __future__ import annotations

"""Error code taxonomy for per-plate lookup failures.

Codes are attached to every non-found lookup outcome and written to the run
telemetry so a run can be explained afterwards.
"""


class ErrorCode:
    NAVIGATION_TIMEOUT = "navigation_timeout"
    ELEMENT_MISSING = "element_missing"
    CHALLENGE_NOT_CLEARED = "challenge_not_cleared"
    NO_RESULTS = "no_results"
    NO_DATA = "no_data"
    SESSION_LOST = "session_lost"
    INTERNAL = "internal_error"


class SessionError(RuntimeError):
    """The browser session could not be created or is no longer usable."""


class LookupStepError(RuntimeError):
    """A single lookup step failed; collapsed into a ``failed`` result."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class RunCancelled(Exception):
    """Raised when an operator interrupt is observed mid-identifier."""


__all__ = ["ErrorCode", "SessionError", "LookupStepError", "RunCancelled"]
