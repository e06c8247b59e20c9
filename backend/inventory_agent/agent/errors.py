"""
Classified failures surfaced by the agent to its callers.

Every error carries a fixed, human-readable ``user_message``; the upstream
exception that caused it is chained via ``__cause__`` and never included in
the message.
"""

from typing import Optional

import openai


class AgentError(Exception):
    """Base class for unrecoverable agent invocation failures."""

    user_message = "I'm sorry, I'm having trouble processing your request right now. Please try again later."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class AgentRateLimitError(AgentError):
    """The language model kept rejecting requests with a rate-limit signal."""

    user_message = (
        "The assistant is receiving too many requests right now. "
        "Please wait a moment and try again."
    )


class AgentAuthenticationError(AgentError):
    """The language model rejected the configured credentials."""

    user_message = (
        "The assistant is not configured correctly (authentication with the "
        "language model failed). Please contact support."
    )


class AgentInvocationError(AgentError):
    """Any other unrecovered failure while reasoning."""


class StepLimitExceededError(AgentError):
    """The model kept requesting tools past the configured step ceiling."""

    def __init__(self, max_steps: int) -> None:
        self.max_steps = max_steps
        super().__init__(
            f"I couldn't finish answering within {max_steps} reasoning steps. "
            "Please try rephrasing your question."
        )


# --- Upstream error classification -------------------------------------------

_RATE_LIMIT_MARKERS = ("too many requests", "rate limit", "resource_exhausted")
_AUTH_MARKERS = ("unauthorized", "invalid api key", "incorrect api key")


def _status_of(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True when ``exc`` signals upstream rate limiting (HTTP 429)."""
    if isinstance(exc, openai.RateLimitError):
        return True
    if _status_of(exc) == 429:
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _RATE_LIMIT_MARKERS)


def is_authentication_error(exc: BaseException) -> bool:
    """Return True when ``exc`` signals rejected credentials (HTTP 401)."""
    if isinstance(exc, openai.AuthenticationError):
        return True
    if _status_of(exc) == 401:
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _AUTH_MARKERS)
