"""Pricing registry for prompt-cache cost estimation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta

from ..cache.base import Breakpoint, ROIEstimate, RetentionTier

# Cache pricing multipliers relative to the base input price
CACHE_WRITE_MULTIPLIERS: dict[RetentionTier, float] = {
    RetentionTier.SHORT: 1.25,  # 25% more to write a 5-minute entry
    RetentionTier.LONG: 2.0,  # 100% more to write a 1-hour entry
}
CACHE_READ_MULTIPLIER = 0.10  # 90% less to read


@dataclass(frozen=True)
class ModelPricing:
    """Immutable pricing information for a model family.

    All prices are in USD per 1 million tokens.
    """

    model: str
    input_per_1m: float
    output_per_1m: float
    notes: str | None = None


@dataclass
class PricingRegistry:
    """Registry of model pricing keyed by model-name fragment.

    Lookups match the first registered fragment contained in the model
    name, so more specific fragments must be registered first.
    """

    last_updated: date
    source_url: str | None = None
    prices: list[ModelPricing] = field(default_factory=list)

    # Pricing is considered stale after this many days
    STALENESS_THRESHOLD_DAYS = 90

    def get_price(self, model: str) -> ModelPricing | None:
        """Get pricing for a model name, or None if unknown."""
        name = (model or "").lower()
        for pricing in self.prices:
            if pricing.model in name:
                return pricing
        return None

    def is_stale(self) -> bool:
        age = date.today() - self.last_updated
        return age > timedelta(days=self.STALENESS_THRESHOLD_DAYS)

    def staleness_warning(self) -> str | None:
        """Get a warning message if pricing is stale."""
        if not self.is_stale():
            return None

        age_days = (date.today() - self.last_updated).days
        msg = f"Pricing data is {age_days} days old (last updated: {self.last_updated})."
        if self.source_url:
            msg += f" Please verify at: {self.source_url}"
        return msg

    def estimate_roi(self, model: str, breakpoints: list[Breakpoint]) -> ROIEstimate | None:
        """Estimate the economics of writing and re-reading planned breakpoints.

        Each breakpoint's tokens are written once at its tier's write
        multiplier; a later request that hits the cache reads all of them
        at the read multiplier.

        Args:
            model: Model name from the request.
            breakpoints: Planned breakpoints.

        Returns:
            ROIEstimate, or None for unknown models or an empty plan.
        """
        pricing = self.get_price(model)
        if pricing is None or not breakpoints:
            return None

        per_token = pricing.input_per_1m / 1_000_000
        cached_tokens = sum(bp.tokens for bp in breakpoints)

        base_cost = cached_tokens * per_token
        write_cost = sum(
            bp.tokens * per_token * CACHE_WRITE_MULTIPLIERS[bp.tier] for bp in breakpoints
        )
        read_cost = cached_tokens * per_token * CACHE_READ_MULTIPLIER

        write_premium = write_cost - base_cost
        savings_per_read = base_cost - read_cost

        break_even: int | None = None
        if savings_per_read > 0:
            break_even = max(1, math.ceil(write_premium / savings_per_read))

        return ROIEstimate(
            model=model,
            write_premium_usd=write_premium,
            savings_per_read_usd=savings_per_read,
            break_even_reads=break_even,
            net_savings_10_reads_usd=savings_per_read * 10 - write_premium,
        )


ANTHROPIC_PRICING = PricingRegistry(
    last_updated=date(2026, 9, 1),
    source_url="https://www.anthropic.com/pricing",
    prices=[
        ModelPricing("claude-opus-4-5", 5.0, 25.0),
        ModelPricing("claude-opus-4", 15.0, 75.0),
        ModelPricing("claude-3-opus", 15.0, 75.0),
        ModelPricing("claude-sonnet-4", 3.0, 15.0),
        ModelPricing("claude-3-7-sonnet", 3.0, 15.0),
        ModelPricing("claude-3-5-sonnet", 3.0, 15.0),
        ModelPricing("claude-haiku-4-5", 1.0, 5.0),
        ModelPricing("claude-3-5-haiku", 0.80, 4.0),
        ModelPricing("claude-3-haiku", 0.25, 1.25),
    ],
)
