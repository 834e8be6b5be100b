"""Base classes for token estimation.

Defines the TokenCounter protocol and BaseTokenizer class that every
estimator plugged into the planner implements. Estimates only need to be
deterministic and monotonic in text length; they decide eligibility, they
are not billed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenCounter(Protocol):
    """Protocol for token counting implementations.

    Any class implementing this protocol can be handed to the planner,
    which allows swapping in a more accurate backend without touching the
    pipeline.
    """

    def count_text(self, text: str) -> int:
        """Count tokens in a text string.

        Args:
            text: The text to count tokens for.

        Returns:
            Number of tokens in the text.
        """
        ...


class BaseTokenizer(ABC):
    """Abstract base class for token estimators."""

    @abstractmethod
    def count_text(self, text: str) -> int:
        """Count tokens in a text string. Must be implemented by subclasses."""
        pass
