"""
Cache breakpoint planning stages.

Each stage is a pure function over an ordered list and can be used on its
own; CachePlanner (autocache.planner) wires them together.

Usage:
    from autocache.cache import normalize_tiers, select_candidates

    selected = select_candidates(candidates, max_breakpoints=4)
    final = normalize_tiers(selected)
"""

from .base import (
    Breakpoint,
    CacheCandidate,
    Classification,
    ContentType,
    ExistingMarker,
    PlanMetadata,
    PlanResult,
    RetentionTier,
    ROIEstimate,
    Segment,
)
from .candidates import extract_segments, generate_candidates
from .classifier import DEFAULT_STABILITY_SIGNALS, ContentClassifier
from .injector import (
    build_metadata,
    cache_control_for,
    count_existing_breakpoints,
    find_existing_markers,
    inject_breakpoints,
    validate_request,
)
from .normalizer import (
    align_with_existing,
    existing_markers_consistent,
    normalize_tiers,
    satisfies_prefix_consistency,
)
from .selector import select_candidates

__all__ = [
    # Types
    "Breakpoint",
    "CacheCandidate",
    "Classification",
    "ContentType",
    "ExistingMarker",
    "PlanMetadata",
    "PlanResult",
    "RetentionTier",
    "ROIEstimate",
    "Segment",
    # Classification
    "ContentClassifier",
    "DEFAULT_STABILITY_SIGNALS",
    # Pipeline stages
    "extract_segments",
    "generate_candidates",
    "select_candidates",
    "normalize_tiers",
    "satisfies_prefix_consistency",
    "align_with_existing",
    "existing_markers_consistent",
    "validate_request",
    "count_existing_breakpoints",
    "find_existing_markers",
    "inject_breakpoints",
    "cache_control_for",
    "build_metadata",
]
