"""
Segment extraction and candidate generation.

Walks a Messages API request in wire order (tools, system, then each
message's content blocks) and turns every eligible segment into a
CacheCandidate. The resulting list is the canonical ordering that every
later stage preserves.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..tokenizers import TokenCounter
from .base import CacheCandidate, Segment
from .classifier import ContentClassifier

logger = logging.getLogger(__name__)


def _is_text_block(block: Any) -> bool:
    return isinstance(block, dict) and block.get("type") == "text"


def _block_segments(
    blocks: list[Any],
    kind: str,
    token_counter: TokenCounter,
    message_index: int | None = None,
    role: str = "",
) -> list[Segment]:
    """Build one segment per text block, keeping block indices."""
    segments: list[Segment] = []
    single = len(blocks) == 1
    for block_idx, block in enumerate(blocks):
        if not _is_text_block(block):
            continue
        text = block.get("text") or ""
        if not isinstance(text, str):
            continue
        segments.append(
            Segment(
                kind=kind,  # type: ignore[arg-type]
                text=text,
                token_count=token_counter.count_text(text),
                message_index=message_index,
                block_index=block_idx,
                role=role,
                single_block=single,
                preset="cache_control" in block,
            )
        )
    return segments


def extract_segments(request: dict[str, Any], token_counter: TokenCounter) -> list[Segment]:
    """Extract content segments from a request in wire order.

    Tool definitions form a single segment anchored at the last tool.
    Non-text blocks are skipped without disturbing the order of the rest.
    Malformed parts are skipped here; structural validation is the
    injector's job.

    Args:
        request: Messages API request body.
        token_counter: Estimator used for every segment.

    Returns:
        Ordered list of segments.
    """
    segments: list[Segment] = []

    tools = request.get("tools")
    if isinstance(tools, list) and tools:
        text = json.dumps(tools, sort_keys=True, default=str)
        segments.append(
            Segment(
                kind="tools",
                text=text,
                token_count=token_counter.count_text(text),
                preset=any(isinstance(t, dict) and "cache_control" in t for t in tools),
            )
        )

    system = request.get("system")
    if isinstance(system, str) and system:
        segments.append(
            Segment(kind="system", text=system, token_count=token_counter.count_text(system))
        )
    elif isinstance(system, list):
        segments.extend(_block_segments(system, "system", token_counter))

    messages = request.get("messages")
    if not isinstance(messages, list):
        return segments

    for msg_idx, message in enumerate(messages):
        if not isinstance(message, dict):
            continue
        role = message.get("role", "")
        content = message.get("content")

        if isinstance(content, str):
            segments.append(
                Segment(
                    kind="message",
                    text=content,
                    token_count=token_counter.count_text(content),
                    message_index=msg_idx,
                    role=role,
                )
            )
        elif isinstance(content, list):
            segments.extend(
                _block_segments(content, "message", token_counter, msg_idx, role)
            )

    return segments


def generate_candidates(
    segments: list[Segment],
    classifier: ContentClassifier,
) -> list[CacheCandidate]:
    """Produce one candidate per eligible segment, in segment order.

    Ineligible segments and segments that already carry a caller-provided
    cache_control are dropped entirely.
    """
    candidates: list[CacheCandidate] = []

    for segment in segments:
        if segment.preset:
            logger.debug("Skipping %s: cache_control already present", segment.position)
            continue

        verdict = classifier.classify(segment.text, segment.token_count, segment.kind)
        if not verdict.eligible:
            logger.debug("Skipping %s: %s", segment.position, verdict.reason)
            continue

        candidates.append(CacheCandidate.from_segment(segment, verdict))

    return candidates
