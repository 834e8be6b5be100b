"""
TTL hierarchy normalization.

The upstream cache treats the span behind an earlier breakpoint as a prefix
of every later breakpoint's span. If an earlier breakpoint expired sooner
than a later one covering the same bytes, the shorter lifetime would cut the
longer one short. So every breakpoint up to the last one-hour breakpoint is
itself raised to one hour; breakpoints after it keep their tier.
"""

from __future__ import annotations

from dataclasses import replace

from .base import CacheCandidate, ExistingMarker, RetentionTier


def last_long_index(candidates: list[CacheCandidate]) -> int:
    """Index of the last LONG candidate, or -1 if there is none."""
    last = -1
    for idx, candidate in enumerate(candidates):
        if candidate.tier is RetentionTier.LONG:
            last = idx
    return last


def normalize_tiers(candidates: list[CacheCandidate]) -> list[CacheCandidate]:
    """Upgrade every tier before the last LONG candidate to LONG.

    Pure and idempotent: the input list is not modified, tiers are only
    ever raised, and applying it to its own output changes nothing.

    Args:
        candidates: Selected candidates in wire order.

    Returns:
        New list of the same length and order.
    """
    last = last_long_index(candidates)
    if last < 0:
        return list(candidates)

    normalized: list[CacheCandidate] = []
    for idx, candidate in enumerate(candidates):
        if idx <= last and candidate.tier is not RetentionTier.LONG:
            candidate = replace(candidate, tier=RetentionTier.LONG)
        normalized.append(candidate)
    return normalized


def satisfies_prefix_consistency(candidates: list[CacheCandidate]) -> bool:
    """Check that no SHORT tier precedes a LONG tier."""
    seen_short = False
    for candidate in candidates:
        if candidate.tier is RetentionTier.SHORT:
            seen_short = True
        elif seen_short:
            return False
    return True


def align_with_existing(
    candidates: list[CacheCandidate],
    existing: list[ExistingMarker],
) -> list[CacheCandidate]:
    """Fit normalized candidates around markers the caller already placed.

    Existing markers keep their tiers. A candidate before the last existing
    one-hour marker is raised to LONG; a candidate after the first existing
    five-minute marker is capped at SHORT. Applied to a normalized list this
    keeps it normalized, and the merged sequence is consistent whenever the
    caller's own markers are.

    Args:
        candidates: Normalized candidates in wire order.
        existing: Caller-placed markers.

    Returns:
        New list of the same length and order.
    """
    if not existing:
        return list(candidates)

    long_orders = [m.wire_order for m in existing if m.tier is RetentionTier.LONG]
    short_orders = [m.wire_order for m in existing if m.tier is RetentionTier.SHORT]
    last_long = max(long_orders) if long_orders else None
    first_short = min(short_orders) if short_orders else None

    aligned: list[CacheCandidate] = []
    for candidate in candidates:
        tier = candidate.tier
        if last_long is not None and candidate.wire_order < last_long:
            tier = RetentionTier.LONG
        # A one-hour entry may never follow a five-minute one
        if first_short is not None and candidate.wire_order > first_short:
            tier = RetentionTier.SHORT
        if tier is not candidate.tier:
            candidate = replace(candidate, tier=tier)
        aligned.append(candidate)
    return aligned


def existing_markers_consistent(existing: list[ExistingMarker]) -> bool:
    """Check that no caller-placed SHORT marker precedes a caller-placed LONG one."""
    seen_short = False
    for marker in sorted(existing, key=lambda m: m.wire_order):
        if marker.tier is RetentionTier.SHORT:
            seen_short = True
        elif seen_short:
            return False
    return True
