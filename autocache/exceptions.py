"""Custom exceptions for autocache.

All exceptions inherit from AutocacheError, making it easy to catch any
autocache-related error in one place.

Example:
    from autocache import CachePlanner, ValidationError

    try:
        result = planner.plan(request)
    except ValidationError as e:
        print(f"Malformed request: {e}")
"""

from __future__ import annotations

from typing import Any


class AutocacheError(Exception):
    """Base exception for all autocache errors.

    Carries an optional ``details`` dict that is rendered after the message:

        AutocacheError("Bad input", details={"field": "messages"})
        # -> "Bad input (field=messages)"
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigurationError(AutocacheError):
    """Raised when autocache is misconfigured.

    This includes:
    - Unknown strategy names
    - Invalid proxy settings (port, retry limits)

    Example:
        ConfigurationError(
            "Unknown strategy 'turbo'",
            details={"valid_strategies": ["conservative", "moderate", "aggressive"]}
        )
    """

    pass


class ValidationError(AutocacheError):
    """Raised when a request cannot be walked in a well-defined order.

    Only structural problems trigger it (missing ``messages``, a message
    without ``content``, a content block without ``type``). Empty content is
    not an error.

    Example:
        ValidationError(
            "Message is missing required field 'role'",
            details={"message_index": 2}
        )
    """

    pass


class UpstreamError(AutocacheError):
    """Raised by the proxy when the upstream API cannot be reached.

    Example:
        UpstreamError(
            "Upstream request failed",
            details={"url": "https://api.anthropic.com/v1/messages", "attempts": 3}
        )
    """

    pass
