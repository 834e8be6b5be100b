"""Pluggable token estimation for breakpoint planning.

Usage:
    from autocache.tokenizers import CharacterCounter, get_default_counter

    counter = get_default_counter()
    tokens = counter.count_text("Hello, world!")
"""

from .base import BaseTokenizer, TokenCounter
from .estimator import CharacterCounter

_DEFAULT_COUNTER = CharacterCounter()


def get_default_counter() -> CharacterCounter:
    """Return the shared default estimator (stateless, safe to share)."""
    return _DEFAULT_COUNTER


__all__ = [
    "TokenCounter",
    "BaseTokenizer",
    "CharacterCounter",
    "get_default_counter",
]
