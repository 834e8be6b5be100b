"""Model pricing and prompt-cache ROI estimation."""

from .registry import (
    ANTHROPIC_PRICING,
    CACHE_READ_MULTIPLIER,
    CACHE_WRITE_MULTIPLIERS,
    ModelPricing,
    PricingRegistry,
)

__all__ = [
    "ANTHROPIC_PRICING",
    "CACHE_READ_MULTIPLIER",
    "CACHE_WRITE_MULTIPLIERS",
    "ModelPricing",
    "PricingRegistry",
]
