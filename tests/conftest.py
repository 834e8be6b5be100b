"""Shared pytest fixtures for autocache tests."""

import pytest

from autocache.cache.base import CacheCandidate, ContentType, RetentionTier

# 57 characters, no stability signals
VOLATILE_SENTENCE = "Lorem ipsum dolor sit amet, consectetur adipiscing elit. "

# 64 characters, matches "you are" and "instructions"
STABLE_SENTENCE = "You are an expert analyst. Follow these instructions carefully. "

SONNET = "claude-3-5-sonnet-20241022"


@pytest.fixture
def volatile_text():
    """Conversational filler; 100 repeats is ~1425 estimated tokens."""

    def _make(repeat: int = 100) -> str:
        return VOLATILE_SENTENCE * repeat

    return _make


@pytest.fixture
def stable_text():
    """Instruction-like text; 100 repeats is 1600 estimated tokens."""

    def _make(repeat: int = 100) -> str:
        return STABLE_SENTENCE * repeat

    return _make


@pytest.fixture
def make_candidate():
    """Factory for candidates with a content type matching the tier."""

    def _make(
        position: str,
        tier: RetentionTier,
        tokens: int,
        message_index: int | None = None,
    ) -> CacheCandidate:
        return CacheCandidate(
            position=position,
            tier=tier,
            token_count=tokens,
            content_type=(
                ContentType.STABLE if tier is RetentionTier.LONG else ContentType.VOLATILE
            ),
            message_index=message_index,
        )

    return _make


@pytest.fixture
def simple_request(stable_text):
    """Request with a large instruction-style system prompt."""
    return {
        "model": SONNET,
        "max_tokens": 1024,
        "system": stable_text(),
        "messages": [{"role": "user", "content": "Hello!"}],
    }


@pytest.fixture
def backward_propagation_request(volatile_text, stable_text):
    """Large volatile prefix followed by a stable user message.

    The system prompt and first user message carry no stability signals; the
    last user message does, which must pull every earlier breakpoint up to 1h.
    """
    return {
        "model": SONNET,
        "max_tokens": 1024,
        "system": volatile_text(),
        "messages": [
            {"role": "user", "content": [{"type": "text", "text": volatile_text()}]},
            {"role": "assistant", "content": "Understood."},
            {"role": "user", "content": [{"type": "text", "text": stable_text()}]},
        ],
    }


@pytest.fixture
def empty_request():
    return {"model": SONNET, "max_tokens": 100, "messages": []}
