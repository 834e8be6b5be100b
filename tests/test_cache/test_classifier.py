"""Tests for ContentClassifier."""

import pytest

from autocache.cache.base import ContentType, RetentionTier
from autocache.cache.classifier import (
    DEFAULT_STABILITY_SIGNALS,
    ContentClassifier,
    compile_signals,
)
from autocache.config import CacheStrategy, get_profile


@pytest.fixture
def classifier():
    """Classifier with moderate thresholds (1024 stable, 2048 volatile)."""
    return ContentClassifier(get_profile(CacheStrategy.MODERATE))


class TestClassify:
    """Test classification and eligibility."""

    @pytest.mark.parametrize("text", ["", "   ", "\n\t  \n"])
    def test_empty_content_ineligible(self, classifier, text):
        """Test that blank text is never eligible, whatever its count."""
        verdict = classifier.classify(text, token_count=50_000)

        assert verdict.eligible is False
        assert verdict.reason == "Empty content"
        assert verdict.tier is RetentionTier.SHORT

    def test_stable_text_gets_long_tier(self, classifier, stable_text):
        """Test that a lexicon hit marks the segment stable and long-lived."""
        verdict = classifier.classify(stable_text(), token_count=1600)

        assert verdict.content_type is ContentType.STABLE
        assert verdict.tier is RetentionTier.LONG
        assert verdict.eligible is True
        assert verdict.reason == "Matches stability lexicon"

    def test_volatile_text_gets_short_tier(self, classifier, volatile_text):
        """Test that text without signals is volatile and short-lived."""
        verdict = classifier.classify(volatile_text(200), token_count=2850)

        assert verdict.content_type is ContentType.VOLATILE
        assert verdict.tier is RetentionTier.SHORT
        assert verdict.eligible is True

    def test_volatile_needs_higher_threshold(self, classifier, volatile_text):
        """Test that volatile text between the two thresholds is ineligible."""
        verdict = classifier.classify(volatile_text(), token_count=1500)

        assert verdict.content_type is ContentType.VOLATILE
        assert verdict.eligible is False
        assert "1500 < 2048" in verdict.reason

    def test_below_min_tokens_ineligible(self, classifier):
        """Test that small stable segments are ineligible."""
        verdict = classifier.classify("You are a helpful assistant.", token_count=7)

        assert verdict.content_type is ContentType.STABLE
        assert verdict.eligible is False
        assert verdict.reason == "Below minimum tokens (7 < 1024)"

    def test_threshold_is_inclusive(self, classifier):
        """Test that a segment exactly at the threshold is eligible."""
        assert classifier.classify("Instructions follow.", token_count=1024).eligible
        assert not classifier.classify("Instructions follow.", token_count=1023).eligible

    def test_tools_always_stable(self, classifier):
        """Test that tool definitions are stable without any signal."""
        verdict = classifier.classify('[{"name": "get_weather"}]', 1500, kind="tools")

        assert verdict.content_type is ContentType.STABLE
        assert verdict.tier is RetentionTier.LONG
        assert verdict.eligible is True

    def test_aggressive_accepts_smaller_volatile(self, volatile_text):
        """Test that the aggressive strategy lowers the volatile threshold."""
        classifier = ContentClassifier(get_profile(CacheStrategy.AGGRESSIVE))
        verdict = classifier.classify(volatile_text(), token_count=1425)

        assert verdict.eligible is True
        assert verdict.tier is RetentionTier.SHORT

    def test_conservative_rejects_mid_size_stable(self, stable_text):
        classifier = ContentClassifier(get_profile(CacheStrategy.CONSERVATIVE))
        assert not classifier.classify(stable_text(), token_count=1600).eligible

    def test_model_floor_raises_threshold(self, stable_text):
        """Test that the model minimum overrides a lower strategy minimum."""
        classifier = ContentClassifier(
            get_profile(CacheStrategy.AGGRESSIVE), min_tokens_floor=2048
        )

        assert classifier.min_tokens == 2048
        assert classifier.volatile_min_tokens == 2048
        assert not classifier.classify(stable_text(), token_count=1600).eligible

    def test_deterministic(self, classifier, stable_text):
        text = stable_text(10)
        assert classifier.classify(text, 1600) == classifier.classify(text, 1600)


class TestStabilitySignals:
    """Test lexicon matching."""

    @pytest.mark.parametrize(
        "text",
        [
            "You are a careful reviewer.",
            "Please read the INSTRUCTIONS below.",
            "Context: the user is on a free plan.",
            "Follow the style guide strictly.",
            "Consult the knowledge\nbase first.",
        ],
    )
    def test_matches(self, classifier, text):
        assert classifier.has_stability_signal(text)

    @pytest.mark.parametrize(
        "text",
        [
            "What's the weather like today?",
            "The bayou area floods every spring.",
            "Here are my notes from yesterday.",
        ],
    )
    def test_no_match(self, classifier, text):
        assert not classifier.has_stability_signal(text)

    def test_default_lexicon_used(self, classifier):
        assert classifier.stability_signals == DEFAULT_STABILITY_SIGNALS

    def test_custom_lexicon(self):
        """Test that a replacement lexicon takes effect."""
        classifier = ContentClassifier(
            get_profile(CacheStrategy.MODERATE), stability_signals=["changelog"]
        )

        assert classifier.has_stability_signal("See the CHANGELOG for details.")
        assert not classifier.has_stability_signal("You are a helpful assistant.")

    def test_empty_lexicon_is_always_volatile(self):
        classifier = ContentClassifier(get_profile(CacheStrategy.MODERATE), stability_signals=[])
        verdict = classifier.classify("You are an assistant. Instructions:", 5000)

        assert verdict.content_type is ContentType.VOLATILE
        assert verdict.eligible is True

    def test_compile_signals_empty(self):
        assert compile_signals([]) is None
        assert compile_signals(["", "   "]) is None

    def test_compile_signals_punctuation_suffix(self):
        """Test that phrases ending in punctuation still match mid-text."""
        pattern = compile_signals(["rules:"])
        assert pattern.search("House rules: no shouting")
        assert not pattern.search("House rules apply")
