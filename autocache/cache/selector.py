"""Breakpoint selection under the upstream breakpoint ceiling."""

from __future__ import annotations

from .base import CacheCandidate


def _ranking_key(indexed: tuple[int, CacheCandidate]) -> tuple[int, int, int]:
    idx, candidate = indexed
    # Long before Short, then bigger segments, then earlier position
    return (-candidate.tier.rank, -candidate.token_count, idx)


def select_candidates(
    candidates: list[CacheCandidate],
    max_breakpoints: int,
) -> list[CacheCandidate]:
    """Trim candidates to at most ``max_breakpoints``, preserving order.

    When trimming is needed, candidates are ranked by tier, then token
    count, then position, and the winners are returned in their original
    order. The result is always a subsequence of the input.

    Args:
        candidates: Ordered candidate list.
        max_breakpoints: Slots available; zero or less selects nothing.

    Returns:
        New ordered list of selected candidates.
    """
    if max_breakpoints <= 0 or not candidates:
        return []
    if len(candidates) <= max_breakpoints:
        return list(candidates)

    ranked = sorted(enumerate(candidates), key=_ranking_key)
    keep = sorted(idx for idx, _ in ranked[:max_breakpoints])
    return [candidates[idx] for idx in keep]
