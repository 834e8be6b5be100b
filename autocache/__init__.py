"""
autocache - Prompt-cache breakpoint planning for the Anthropic Messages API.

autocache marks the stable parts of a request with ``cache_control``
breakpoints so that repeated or growing conversations reuse cached prefixes
instead of paying to reprocess them.

Quick Start:

    from autocache import CachePlanner, CacheStrategy

    planner = CachePlanner(CacheStrategy.MODERATE)
    result = planner.plan({
        "model": "claude-sonnet-4-5",
        "max_tokens": 1024,
        "system": long_instructions,
        "messages": [{"role": "user", "content": "Hello!"}],
    })

    for bp in result.metadata.breakpoints:
        print(bp.position, bp.ttl, bp.tokens)

Run as a proxy:

    autocache proxy --strategy aggressive
    ANTHROPIC_BASE_URL=http://localhost:8080 your-app

Error Handling:

    from autocache import AutocacheError, ValidationError

    try:
        result = planner.plan(body)
    except ValidationError as e:
        print(f"Malformed request: {e.details}")
"""

from .cache import (
    Breakpoint,
    CacheCandidate,
    ContentType,
    PlanMetadata,
    PlanResult,
    RetentionTier,
    ROIEstimate,
)
from .config import (
    ANTHROPIC_MAX_BREAKPOINTS,
    STRATEGY_PROFILES,
    CacheStrategy,
    PlannerConfig,
    StrategyProfile,
)
from .exceptions import AutocacheError, ConfigurationError, UpstreamError, ValidationError
from .planner import CachePlanner

__version__ = "0.1.0"

__all__ = [
    # Planner
    "CachePlanner",
    # Configuration
    "ANTHROPIC_MAX_BREAKPOINTS",
    "STRATEGY_PROFILES",
    "CacheStrategy",
    "PlannerConfig",
    "StrategyProfile",
    # Types
    "Breakpoint",
    "CacheCandidate",
    "ContentType",
    "PlanMetadata",
    "PlanResult",
    "RetentionTier",
    "ROIEstimate",
    # Exceptions
    "AutocacheError",
    "ConfigurationError",
    "UpstreamError",
    "ValidationError",
]
