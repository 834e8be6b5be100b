"""
Content classification for breakpoint planning.

Tags each segment with a content type and a provisional retention tier, and
decides whether it is large enough to be worth a cache write at all.

Classification is driven by a lexicon of stability signals: phrases that
conventionally introduce durable material (instructions, guidelines,
background context, reference documentation). Any hit marks the segment
STABLE with a one-hour tier; no hit marks it VOLATILE with a five-minute
tier. The lexicon is plain data and can be replaced per planner.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ..config import StrategyProfile
from .base import Classification, ContentType, RetentionTier, SegmentKind

DEFAULT_STABILITY_SIGNALS: tuple[str, ...] = (
    "you are",
    "your role",
    "instructions",
    "guidelines",
    "context:",
    "background information",
    "documentation",
    "reference material",
    "specification",
    "rules:",
    "policies",
    "knowledge base",
    "system prompt",
    "style guide",
)


def compile_signals(signals: Iterable[str]) -> re.Pattern[str] | None:
    """Compile a lexicon into one case-insensitive alternation.

    Phrases match at word boundaries where they start or end with a word
    character, so "rules:" still matches but "you are" does not match
    "bayou area". Returns None for an empty lexicon.
    """
    parts: list[str] = []
    for signal in signals:
        phrase = signal.strip()
        if not phrase:
            continue
        pattern = r"\s+".join(re.escape(word) for word in phrase.split())
        if phrase[0].isalnum() or phrase[0] == "_":
            pattern = r"\b" + pattern
        if phrase[-1].isalnum() or phrase[-1] == "_":
            pattern = pattern + r"\b"
        parts.append(pattern)
    if not parts:
        return None
    return re.compile("|".join(parts), re.IGNORECASE)


class ContentClassifier:
    """Classifies segments against a stability lexicon and strategy thresholds.

    Instances hold only immutable configuration and may be shared between
    threads.

    Example:
        classifier = ContentClassifier(get_profile(CacheStrategy.MODERATE))
        verdict = classifier.classify(text, token_count=1800)
        verdict.tier  # RetentionTier.LONG if text reads like instructions
    """

    def __init__(
        self,
        profile: StrategyProfile,
        stability_signals: Iterable[str] | None = None,
        min_tokens_floor: int = 0,
    ):
        """Initialize the classifier.

        Args:
            profile: Thresholds of the active strategy.
            stability_signals: Lexicon override. Defaults to
                DEFAULT_STABILITY_SIGNALS.
            min_tokens_floor: Model-specific minimum the upstream requires;
                raises the strategy threshold when larger.
        """
        self.profile = profile
        self.stability_signals = tuple(
            DEFAULT_STABILITY_SIGNALS if stability_signals is None else stability_signals
        )
        self.min_tokens_floor = min_tokens_floor
        self._signal_pattern = compile_signals(self.stability_signals)

    @property
    def min_tokens(self) -> int:
        return max(self.profile.min_tokens, self.min_tokens_floor)

    @property
    def volatile_min_tokens(self) -> int:
        return max(self.profile.volatile_min_tokens, self.min_tokens)

    def has_stability_signal(self, text: str) -> bool:
        if self._signal_pattern is None:
            return False
        return self._signal_pattern.search(text) is not None

    def classify(
        self,
        text: str,
        token_count: int,
        kind: SegmentKind = "message",
    ) -> Classification:
        """Classify one segment.

        Args:
            text: Segment text.
            token_count: Estimated tokens of the segment.
            kind: Segment kind; tool definitions are always stable.

        Returns:
            Classification with content type, tier and eligibility.
        """
        if not text or not text.strip():
            return Classification(
                ContentType.VOLATILE, RetentionTier.SHORT, False, "Empty content"
            )

        if kind == "tools":
            content_type = ContentType.STABLE
            reason = "Tool definitions are static"
        elif self.has_stability_signal(text):
            content_type = ContentType.STABLE
            reason = "Matches stability lexicon"
        else:
            content_type = ContentType.VOLATILE
            reason = "No stability signals"

        tier = RetentionTier.LONG if content_type is ContentType.STABLE else RetentionTier.SHORT

        threshold = (
            self.min_tokens if content_type is ContentType.STABLE else self.volatile_min_tokens
        )
        if token_count < threshold:
            return Classification(
                content_type,
                tier,
                False,
                f"Below minimum tokens ({token_count} < {threshold})",
            )

        return Classification(content_type, tier, True, reason)
