"""
Cache breakpoint planner.

Runs the full planning pipeline for one request:

    classify -> generate candidates -> select -> normalize tiers
        -> align with existing cache_control -> inject

Usage:
    from autocache import CachePlanner, CacheStrategy

    planner = CachePlanner(CacheStrategy.MODERATE, api_key="sk-ant-...")
    result = planner.plan(request_body)

    result.request     # annotated copy with cache_control blocks
    result.metadata    # PlanMetadata: breakpoints, token accounting, ROI

A planner holds only immutable configuration. Every call works on data local
to that call, so one instance can serve many threads at once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .cache.base import PlanResult
from .cache.candidates import extract_segments, generate_candidates
from .cache.classifier import ContentClassifier
from .cache.injector import (
    build_metadata,
    cached_prefix_tokens,
    find_existing_markers,
    inject_breakpoints,
    validate_request,
)
from .cache.normalizer import align_with_existing, existing_markers_consistent, normalize_tiers
from .cache.selector import select_candidates
from .config import (
    DEFAULT_API_URL,
    CacheStrategy,
    PlannerConfig,
    StrategyProfile,
    get_min_cacheable_tokens,
    parse_strategy,
)
from .pricing import ANTHROPIC_PRICING, PricingRegistry
from .tokenizers import TokenCounter, get_default_counter

_default_logger = logging.getLogger(__name__)


class CachePlanner:
    """Plans and injects cache breakpoints for Messages API requests."""

    def __init__(
        self,
        strategy: CacheStrategy | str = CacheStrategy.MODERATE,
        api_url: str = DEFAULT_API_URL,
        api_key: str = "",
        logger: logging.Logger | None = None,
        token_counter: TokenCounter | None = None,
        stability_signals: Iterable[str] | None = None,
        pricing: PricingRegistry | None = None,
    ):
        """Initialize the planner.

        Args:
            strategy: Strategy enum value or name.
            api_url: Upstream base URL (used by the proxy, not the planner).
            api_key: Upstream credential (never logged).
            logger: Leveled logging collaborator. Defaults to this module's logger.
            token_counter: Token estimator. Defaults to CharacterCounter.
            stability_signals: Lexicon override for the classifier.
            pricing: Pricing registry for ROI estimates.

        Raises:
            ConfigurationError: If ``strategy`` is not a known strategy name.
        """
        self._config = PlannerConfig(
            strategy=parse_strategy(strategy),
            api_url=api_url.rstrip("/"),
            api_key=api_key,
        )
        self._logger = logger or _default_logger
        self._token_counter = token_counter or get_default_counter()
        self._stability_signals = (
            tuple(stability_signals) if stability_signals is not None else None
        )
        self._pricing = pricing or ANTHROPIC_PRICING

    @property
    def config(self) -> PlannerConfig:
        return self._config

    @property
    def strategy(self) -> CacheStrategy:
        return self._config.strategy

    @property
    def profile(self) -> StrategyProfile:
        return self._config.profile

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def classifier_for(self, model: str | None) -> ContentClassifier:
        """Build the classifier for a request's model."""
        return ContentClassifier(
            self.profile,
            stability_signals=self._stability_signals,
            min_tokens_floor=get_min_cacheable_tokens(model),
        )

    def plan(self, request: dict[str, Any]) -> PlanResult:
        """Plan breakpoints for a request and return an annotated copy.

        Args:
            request: Messages API request body. Not modified.

        Returns:
            PlanResult with the annotated request and plan metadata.

        Raises:
            ValidationError: If the request structure cannot be walked.
        """
        validate_request(request)

        model = request.get("model")
        if not isinstance(model, str):
            model = ""
        warnings: list[str] = []

        segments = extract_segments(request, self._token_counter)
        candidates = generate_candidates(segments, self.classifier_for(model))

        existing = find_existing_markers(request)
        slots = max(0, self.profile.effective_max_breakpoints - len(existing))
        if existing:
            warnings.append(f"Request already has {len(existing)} cache_control blocks")
            if not existing_markers_consistent(existing):
                warnings.append("Existing cache_control blocks place a 5m TTL before a 1h TTL")

        selected = select_candidates(candidates, slots)
        if len(selected) < len(candidates):
            warnings.append(
                f"Dropped {len(candidates) - len(selected)} candidates "
                f"(limit {slots} breakpoints)"
            )

        normalized = normalize_tiers(selected)
        upgraded = sum(1 for before, after in zip(selected, normalized) if before.tier != after.tier)
        if upgraded:
            self._logger.debug("Upgraded %d breakpoints to 1h for prefix consistency", upgraded)

        final = align_with_existing(normalized, existing)
        realigned = sum(
            1 for before, after in zip(normalized, final) if before.tier != after.tier
        )
        if realigned:
            self._logger.debug(
                "Adjusted %d breakpoint TTLs around existing cache_control", realigned
            )

        annotated = inject_breakpoints(request, final)

        metadata = build_metadata(
            final,
            strategy=self.strategy.value,
            model=model,
            total_tokens=sum(s.token_count for s in segments),
            cached_tokens=cached_prefix_tokens(segments, final),
            warnings=warnings,
        )
        metadata.roi = self._pricing.estimate_roi(model, metadata.breakpoints)
        if metadata.roi is not None:
            stale = self._pricing.staleness_warning()
            if stale:
                metadata.warnings.append(stale)

        if metadata.injected:
            self._logger.info(
                "Planned %d breakpoints (%s): %s",
                len(metadata.breakpoints),
                self.strategy.value,
                ", ".join(bp.to_header_value() for bp in metadata.breakpoints),
            )
        else:
            self._logger.debug(
                "No breakpoints planned (%d segments, %d candidates)",
                len(segments),
                len(candidates),
            )

        return PlanResult(request=annotated, metadata=metadata)
