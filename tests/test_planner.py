"""Tests for the end-to-end CachePlanner pipeline."""

import copy
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from autocache import CachePlanner, CacheStrategy, ConfigurationError, ValidationError
from autocache.cache.base import RetentionTier
from autocache.pricing import ModelPricing, PricingRegistry
from autocache.tokenizers import BaseTokenizer


class FixedCounter(BaseTokenizer):
    """Counts every non-empty text as the same number of tokens."""

    def __init__(self, tokens: int):
        self.tokens = tokens

    def count_text(self, text: str) -> int:
        return self.tokens if text else 0


def _wire_ttls(request):
    """TTLs of every cache_control in the request, in wire order."""
    blocks = list(request.get("tools") or [])
    if isinstance(request.get("system"), list):
        blocks.extend(request["system"])
    for message in request["messages"]:
        if isinstance(message["content"], list):
            blocks.extend(message["content"])
    return [b["cache_control"].get("ttl", "5m") for b in blocks if "cache_control" in b]


def _ttls(result):
    return [bp.ttl for bp in result.metadata.breakpoints]


def _positions(result):
    return [bp.position for bp in result.metadata.breakpoints]


class TestCachePlanner:
    """Test planner construction and configuration."""

    def test_default_strategy(self):
        planner = CachePlanner()
        assert planner.strategy is CacheStrategy.MODERATE
        assert planner.profile.max_breakpoints == 3

    def test_strategy_by_name(self):
        assert CachePlanner("Aggressive").strategy is CacheStrategy.AGGRESSIVE

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError):
            CachePlanner("turbo")

    def test_api_key_not_in_repr(self):
        planner = CachePlanner(api_key="sk-ant-secret")
        assert "sk-ant-secret" not in repr(planner.config)

    def test_default_logger(self):
        assert CachePlanner().logger.name == "autocache.planner"

    def test_classifier_uses_model_floor(self):
        planner = CachePlanner(CacheStrategy.AGGRESSIVE)
        assert planner.classifier_for("claude-3-haiku-20240307").min_tokens == 2048
        assert planner.classifier_for("claude-3-5-sonnet-20241022").min_tokens == 1024


class TestPlan:
    """Test planning results."""

    def test_backward_propagation(self, backward_propagation_request):
        """Test that a late stable message upgrades every earlier breakpoint."""
        planner = CachePlanner(CacheStrategy.AGGRESSIVE)
        result = planner.plan(backward_propagation_request)

        assert result.metadata.injected is True
        assert len(result.metadata.breakpoints) >= 2
        assert _positions(result) == ["system", "message_0", "message_2"]
        assert _ttls(result) == ["1h", "1h", "1h"]

        annotated = result.request
        assert annotated["system"][0]["cache_control"] == {"type": "ephemeral", "ttl": "1h"}
        assert annotated["messages"][0]["content"][0]["cache_control"]["ttl"] == "1h"
        assert annotated["messages"][2]["content"][0]["cache_control"]["ttl"] == "1h"
        assert annotated["messages"][1]["content"] == "Understood."

    def test_empty_request(self, empty_request):
        """Test that an empty conversation plans nothing."""
        result = CachePlanner().plan(empty_request)

        assert result.metadata.injected is False
        assert result.metadata.breakpoints == []
        assert result.metadata.roi is None
        assert result.request == empty_request

    def test_stable_system_prompt(self, simple_request):
        result = CachePlanner().plan(simple_request)

        assert _positions(result) == ["system"]
        assert _ttls(result) == ["1h"]
        assert result.metadata.strategy == "moderate"
        assert result.metadata.model == simple_request["model"]

    def test_moderate_skips_mid_size_chatter(self, backward_propagation_request):
        """Test that moderate leaves volatile segments under 2048 tokens alone."""
        result = CachePlanner(CacheStrategy.MODERATE).plan(backward_propagation_request)

        assert _positions(result) == ["message_2"]
        assert _ttls(result) == ["1h"]

    def test_short_tail_after_last_long(self, stable_text, volatile_text):
        """Test that breakpoints after the last LONG keep their short tier."""
        request = {
            "model": "claude-sonnet-4-20250514",
            "system": stable_text(),
            "messages": [{"role": "user", "content": volatile_text()}],
        }
        result = CachePlanner(CacheStrategy.AGGRESSIVE).plan(request)

        assert _positions(result) == ["system", "message_0"]
        assert _ttls(result) == ["1h", "5m"]

    def test_request_not_mutated(self, backward_propagation_request):
        snapshot = copy.deepcopy(backward_propagation_request)
        CachePlanner(CacheStrategy.AGGRESSIVE).plan(backward_propagation_request)
        assert backward_propagation_request == snapshot

    def test_breakpoint_limit(self, volatile_text):
        """Test that no more than four breakpoints are ever planned."""
        request = {
            "model": "claude-3-5-sonnet-20241022",
            "messages": [{"role": "user", "content": volatile_text()} for _ in range(8)],
        }
        result = CachePlanner(CacheStrategy.AGGRESSIVE).plan(request)

        assert _positions(result) == ["message_0", "message_1", "message_2", "message_3"]
        assert any("Dropped 4 candidates" in w for w in result.metadata.warnings)

    def test_strategy_limits(self, stable_text):
        request = {
            "model": "claude-3-5-sonnet-20241022",
            "messages": [{"role": "user", "content": stable_text(200)} for _ in range(6)],
        }
        for strategy, expected in [
            (CacheStrategy.CONSERVATIVE, 2),
            (CacheStrategy.MODERATE, 3),
            (CacheStrategy.AGGRESSIVE, 4),
        ]:
            result = CachePlanner(strategy).plan(request)
            assert len(result.metadata.breakpoints) == expected

    def test_existing_breakpoints_use_slots(self, stable_text, volatile_text):
        """Test that caller-placed cache_control reduces available slots."""
        request = {
            "model": "claude-3-5-sonnet-20241022",
            "system": [
                {
                    "type": "text",
                    "text": stable_text(),
                    "cache_control": {"type": "ephemeral"},
                }
            ],
            "messages": [{"role": "user", "content": volatile_text()} for _ in range(5)],
        }
        result = CachePlanner(CacheStrategy.AGGRESSIVE).plan(request)

        assert _positions(result) == ["message_0", "message_1", "message_2"]
        assert result.request["system"][0]["cache_control"] == {"type": "ephemeral"}
        assert any("already has 1" in w for w in result.metadata.warnings)

    def test_existing_breakpoints_exhaust_slots(self, stable_text):
        marker = {"type": "ephemeral"}
        request = {
            "model": "claude-3-5-sonnet-20241022",
            "messages": [
                {
                    "role": "user",
                    "content": [{"type": "text", "text": "x", "cache_control": marker}],
                }
                for _ in range(4)
            ]
            + [{"role": "user", "content": stable_text()}],
        }
        result = CachePlanner(CacheStrategy.AGGRESSIVE).plan(request)
        assert result.metadata.injected is False

    def test_haiku_floor(self, stable_text):
        """Test that haiku models need 2048 tokens before caching."""
        small = {"model": "claude-3-haiku-20240307", "system": stable_text(), "messages": []}
        large = {"model": "claude-3-haiku-20240307", "system": stable_text(150), "messages": []}

        planner = CachePlanner(CacheStrategy.AGGRESSIVE)
        assert planner.plan(small).metadata.injected is False
        assert _positions(planner.plan(large)) == ["system"]

    def test_token_accounting(self, backward_propagation_request):
        metadata = CachePlanner(CacheStrategy.AGGRESSIVE).plan(
            backward_propagation_request
        ).metadata

        assert metadata.total_tokens == 1425 + 1425 + 3 + 1600
        assert metadata.cached_tokens == metadata.total_tokens
        assert metadata.cache_ratio == 1.0

    def test_roi_for_known_model(self, backward_propagation_request):
        metadata = CachePlanner(CacheStrategy.AGGRESSIVE).plan(
            backward_propagation_request
        ).metadata

        assert metadata.roi is not None
        assert metadata.roi.break_even_reads == 2
        assert metadata.roi.net_savings_10_reads_usd > 0

    def test_roi_unknown_model(self, simple_request):
        simple_request["model"] = "some-other-model"
        result = CachePlanner().plan(simple_request)

        assert result.metadata.injected is True
        assert result.metadata.roi is None

    def test_invalid_request(self):
        with pytest.raises(ValidationError):
            CachePlanner().plan({"model": "claude-3-5-sonnet-20241022"})

    def test_custom_token_counter(self):
        planner = CachePlanner(CacheStrategy.MODERATE, token_counter=FixedCounter(5000))
        result = planner.plan({"messages": [{"role": "user", "content": "Hi there"}]})

        assert _positions(result) == ["message_0"]
        assert result.metadata.breakpoints[0].tier is RetentionTier.SHORT

    def test_custom_stability_signals(self, simple_request):
        """Test that an empty lexicon makes every segment volatile."""
        planner = CachePlanner(CacheStrategy.AGGRESSIVE, stability_signals=[])
        assert _ttls(planner.plan(simple_request)) == ["5m"]

    def test_logger_receives_plan(self, simple_request):
        logger = MagicMock(spec=logging.Logger)
        CachePlanner(logger=logger).plan(simple_request)

        logger.info.assert_called_once()
        assert "system:1h:1600" in logger.info.call_args.args

    def test_logger_debug_when_nothing_planned(self, empty_request):
        logger = MagicMock(spec=logging.Logger)
        CachePlanner(logger=logger).plan(empty_request)

        logger.info.assert_not_called()
        logger.debug.assert_called()

    def test_concurrent_plans_are_identical(self, backward_propagation_request):
        """Test that one planner can serve many threads at once."""
        planner = CachePlanner(CacheStrategy.AGGRESSIVE)
        expected = planner.plan(backward_propagation_request).metadata.to_dict()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(
                pool.map(lambda _: planner.plan(backward_propagation_request), range(32))
            )

        assert all(r.metadata.to_dict() == expected for r in results)

    def test_non_string_model_ignored(self, stable_text):
        request = {"model": 42, "system": stable_text(), "messages": []}
        result = CachePlanner().plan(request)

        assert result.metadata.model == ""
        assert result.metadata.roi is None
        assert _positions(result) == ["system"]


class TestExistingMarkerTiers:
    """Test TTL alignment with cache_control the caller already placed."""

    def test_no_long_after_existing_short(self, volatile_text, stable_text):
        """Test that a planned 1h after a caller's default 5m is capped."""
        request = {
            "model": "claude-3-5-sonnet-20241022",
            "system": [
                {
                    "type": "text",
                    "text": volatile_text(),
                    "cache_control": {"type": "ephemeral"},
                }
            ],
            "messages": [{"role": "user", "content": stable_text()}],
        }
        result = CachePlanner(CacheStrategy.AGGRESSIVE).plan(request)

        assert _positions(result) == ["message_0"]
        assert _ttls(result) == ["5m"]
        assert _wire_ttls(result.request) == ["5m", "5m"]

    def test_planned_short_before_existing_long_upgraded(self, volatile_text):
        """Test that a planned 5m before a caller's 1h is raised to 1h."""
        request = {
            "model": "claude-3-5-sonnet-20241022",
            "system": volatile_text(),
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": "See the attached report.",
                            "cache_control": {"type": "ephemeral", "ttl": "1h"},
                        }
                    ],
                }
            ],
        }
        result = CachePlanner(CacheStrategy.AGGRESSIVE).plan(request)

        assert _positions(result) == ["system"]
        assert _wire_ttls(result.request) == ["1h", "1h"]

    def test_caller_markers_kept_verbatim(self, volatile_text, stable_text):
        marker = {"type": "ephemeral"}
        request = {
            "model": "claude-3-5-sonnet-20241022",
            "system": stable_text(),
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": "x", "cache_control": marker}]},
                {"role": "user", "content": volatile_text()},
            ],
        }
        result = CachePlanner(CacheStrategy.AGGRESSIVE).plan(request)

        assert result.request["messages"][0]["content"][0]["cache_control"] == marker
        assert _wire_ttls(result.request) == ["1h", "5m", "5m"]

    def test_inconsistent_caller_markers_warned(self):
        request = {
            "model": "claude-3-5-sonnet-20241022",
            "system": [
                {"type": "text", "text": "a", "cache_control": {"type": "ephemeral"}},
                {"type": "text", "text": "b", "cache_control": {"type": "ephemeral", "ttl": "1h"}},
            ],
            "messages": [],
        }
        result = CachePlanner().plan(request)

        assert any("5m TTL before a 1h TTL" in w for w in result.metadata.warnings)


class TestPricingWarnings:
    """Test that stale pricing is reported alongside ROI."""

    @staticmethod
    def _registry(age_days):
        return PricingRegistry(
            last_updated=date.today() - timedelta(days=age_days),
            prices=[ModelPricing("claude-3-5-sonnet", 3.0, 15.0)],
        )

    def test_stale_pricing_warned(self, simple_request):
        result = CachePlanner(pricing=self._registry(400)).plan(simple_request)

        assert result.metadata.roi is not None
        assert any("400 days old" in w for w in result.metadata.warnings)

    def test_fresh_pricing_silent(self, simple_request):
        result = CachePlanner(pricing=self._registry(0)).plan(simple_request)
        assert not any("days old" in w for w in result.metadata.warnings)
