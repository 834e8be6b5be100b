"""Configuration models for autocache."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .exceptions import ConfigurationError

# Upstream ceiling on cache_control blocks per request
ANTHROPIC_MAX_BREAKPOINTS = 4

DEFAULT_API_URL = "https://api.anthropic.com"


class CacheStrategy(str, Enum):
    """How eagerly breakpoints are placed."""

    CONSERVATIVE = "conservative"  # Few breakpoints, large stable content only
    MODERATE = "moderate"  # Balanced default
    AGGRESSIVE = "aggressive"  # Cache smaller and volatile content too


@dataclass(frozen=True)
class StrategyProfile:
    """Thresholds a strategy applies to eligibility and selection.

    Both the classifier and the selector read from the same profile so the
    two stages can never disagree about the active strategy.
    """

    strategy: CacheStrategy

    # Nothing below this estimate is ever cached
    min_tokens: int

    # Volatile (short-lived) content must also clear this bar
    volatile_min_tokens: int

    # Cap on emitted breakpoints, further limited by ANTHROPIC_MAX_BREAKPOINTS
    max_breakpoints: int

    @property
    def effective_max_breakpoints(self) -> int:
        return min(self.max_breakpoints, ANTHROPIC_MAX_BREAKPOINTS)


STRATEGY_PROFILES: dict[CacheStrategy, StrategyProfile] = {
    CacheStrategy.CONSERVATIVE: StrategyProfile(
        strategy=CacheStrategy.CONSERVATIVE,
        min_tokens=2048,
        volatile_min_tokens=4096,
        max_breakpoints=2,
    ),
    CacheStrategy.MODERATE: StrategyProfile(
        strategy=CacheStrategy.MODERATE,
        min_tokens=1024,
        volatile_min_tokens=2048,
        max_breakpoints=3,
    ),
    CacheStrategy.AGGRESSIVE: StrategyProfile(
        strategy=CacheStrategy.AGGRESSIVE,
        min_tokens=1024,
        volatile_min_tokens=1024,
        max_breakpoints=4,
    ),
}


# Provider-documented minimum prompt length for a cache entry to be created.
# Matched by substring against the model name, first match wins.
MODEL_MIN_CACHEABLE_TOKENS: list[tuple[str, int]] = [
    ("haiku", 2048),
    ("sonnet", 1024),
    ("opus", 1024),
]
DEFAULT_MIN_CACHEABLE_TOKENS = 1024


def get_profile(strategy: CacheStrategy) -> StrategyProfile:
    """Look up the threshold profile for a strategy."""
    return STRATEGY_PROFILES[strategy]


def get_min_cacheable_tokens(model: str | None) -> int:
    """Return the provider's minimum cacheable prompt size for a model."""
    if not model:
        return DEFAULT_MIN_CACHEABLE_TOKENS
    name = model.lower()
    for family, minimum in MODEL_MIN_CACHEABLE_TOKENS:
        if family in name:
            return minimum
    return DEFAULT_MIN_CACHEABLE_TOKENS


def parse_strategy(value: str | CacheStrategy) -> CacheStrategy:
    """Parse a strategy name (case-insensitive).

    Raises:
        ConfigurationError: If the name is not a known strategy.
    """
    if isinstance(value, CacheStrategy):
        return value
    try:
        return CacheStrategy(value.strip().lower())
    except (ValueError, AttributeError):
        raise ConfigurationError(
            f"Unknown strategy '{value}'",
            details={"valid_strategies": [s.value for s in CacheStrategy]},
        ) from None


@dataclass(frozen=True)
class PlannerConfig:
    """Immutable construction-time configuration of a CachePlanner.

    The credential is excluded from repr so configs can be logged safely.
    """

    strategy: CacheStrategy = CacheStrategy.MODERATE
    api_url: str = DEFAULT_API_URL
    api_key: str = field(default="", repr=False)

    @property
    def profile(self) -> StrategyProfile:
        return get_profile(self.strategy)
