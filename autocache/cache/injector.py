"""
Cache control injection and plan metadata.

Attaches ``cache_control`` annotations carrying each breakpoint's retention
tier to the request, and reports what was planned. The injected marker is
the upstream wire format:

    {"type": "ephemeral", "ttl": "1h"}

The caller's request is never mutated; annotations go on a deep copy.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from ..exceptions import ValidationError
from .base import (
    Breakpoint,
    CacheCandidate,
    ExistingMarker,
    PlanMetadata,
    RetentionTier,
    Segment,
)


def cache_control_for(tier: RetentionTier) -> dict[str, str]:
    """Build the cache_control marker for a tier."""
    return {"type": "ephemeral", "ttl": tier.value}


def _validate_blocks(blocks: list[Any], where: str, details: dict[str, Any]) -> None:
    for block_idx, block in enumerate(blocks):
        if not isinstance(block, Mapping):
            raise ValidationError(
                f"{where} content block must be an object",
                details={**details, "block_index": block_idx},
            )
        if "type" not in block:
            raise ValidationError(
                f"{where} content block is missing required field 'type'",
                details={**details, "block_index": block_idx},
            )


def validate_request(request: Any) -> None:
    """Check that a request can be walked in a well-defined order.

    Empty content is fine; missing or mistyped structure is not.

    Raises:
        ValidationError: If a required field is missing or has the wrong shape.
    """
    if not isinstance(request, Mapping):
        raise ValidationError(
            "Request body must be a JSON object",
            details={"type": type(request).__name__},
        )

    if "messages" not in request:
        raise ValidationError("Request is missing required field 'messages'")
    messages = request["messages"]
    if not isinstance(messages, list):
        raise ValidationError(
            "Field 'messages' must be a list",
            details={"type": type(messages).__name__},
        )

    system = request.get("system")
    if system is not None:
        if isinstance(system, list):
            _validate_blocks(system, "System", {})
        elif not isinstance(system, str):
            raise ValidationError(
                "Field 'system' must be a string or a list of content blocks",
                details={"type": type(system).__name__},
            )

    tools = request.get("tools")
    if tools is not None and not isinstance(tools, list):
        raise ValidationError(
            "Field 'tools' must be a list",
            details={"type": type(tools).__name__},
        )

    for msg_idx, message in enumerate(messages):
        details = {"message_index": msg_idx}
        if not isinstance(message, Mapping):
            raise ValidationError("Message must be an object", details=details)
        for required in ("role", "content"):
            if required not in message:
                raise ValidationError(
                    f"Message is missing required field '{required}'", details=details
                )
        content = message["content"]
        if isinstance(content, list):
            _validate_blocks(content, "Message", details)
        elif not isinstance(content, str):
            raise ValidationError(
                "Message content must be a string or a list of content blocks",
                details={**details, "type": type(content).__name__},
            )


def _marker_tier(marker: Any) -> RetentionTier:
    if isinstance(marker, Mapping) and marker.get("ttl") == RetentionTier.LONG.value:
        return RetentionTier.LONG
    return RetentionTier.SHORT


def find_existing_markers(request: Mapping[str, Any]) -> list[ExistingMarker]:
    """Collect cache_control markers the caller already placed, in wire order.

    A marker without ``ttl`` (or with an unknown one) is treated as
    five minutes.
    """
    markers: list[ExistingMarker] = []

    tools = request.get("tools")
    if isinstance(tools, list):
        for tool_idx, tool in enumerate(tools):
            if isinstance(tool, Mapping) and "cache_control" in tool:
                markers.append(
                    ExistingMarker("tools", _marker_tier(tool["cache_control"]), None, tool_idx)
                )

    system = request.get("system")
    if isinstance(system, list):
        for block_idx, block in enumerate(system):
            if isinstance(block, Mapping) and "cache_control" in block:
                markers.append(
                    ExistingMarker("system", _marker_tier(block["cache_control"]), None, block_idx)
                )

    for msg_idx, message in enumerate(request.get("messages") or []):
        if not isinstance(message, Mapping):
            continue
        content = message.get("content")
        if not isinstance(content, list):
            continue
        for block_idx, block in enumerate(content):
            if isinstance(block, Mapping) and "cache_control" in block:
                markers.append(
                    ExistingMarker(
                        "message", _marker_tier(block["cache_control"]), msg_idx, block_idx
                    )
                )

    return markers


def count_existing_breakpoints(request: Mapping[str, Any]) -> int:
    """Count cache_control markers the caller already placed."""
    return len(find_existing_markers(request))


def _annotate_content(
    container: dict[str, Any],
    key: str,
    block_index: int | None,
    marker: dict[str, str],
) -> None:
    content = container.get(key)
    if isinstance(content, str):
        # Promote plain string content to a single text block
        container[key] = [{"type": "text", "text": content, "cache_control": marker}]
    elif isinstance(content, list) and block_index is not None and block_index < len(content):
        block = content[block_index]
        if isinstance(block, dict):
            block["cache_control"] = marker


def inject_breakpoints(
    request: Mapping[str, Any],
    candidates: list[CacheCandidate],
) -> dict[str, Any]:
    """Return a copy of ``request`` with one cache_control per candidate.

    Args:
        request: Validated request body.
        candidates: Final normalized candidates.

    Returns:
        Annotated deep copy of the request.
    """
    annotated = copy.deepcopy(dict(request))

    for candidate in candidates:
        marker = cache_control_for(candidate.tier)

        if candidate.kind == "tools":
            tools = annotated.get("tools")
            if isinstance(tools, list) and tools and isinstance(tools[-1], dict):
                tools[-1]["cache_control"] = marker
        elif candidate.kind == "system":
            _annotate_content(annotated, "system", candidate.block_index, marker)
        else:
            messages = annotated["messages"]
            if candidate.message_index is not None and candidate.message_index < len(messages):
                _annotate_content(
                    messages[candidate.message_index], "content", candidate.block_index, marker
                )

    return annotated


def cached_prefix_tokens(segments: list[Segment], candidates: list[CacheCandidate]) -> int:
    """Tokens covered by the cache, up to and including the last breakpoint."""
    if not candidates:
        return 0
    last_position = candidates[-1].position
    total = 0
    for segment in segments:
        total += segment.token_count
        if segment.position == last_position:
            return total
    return total


def build_metadata(
    candidates: list[CacheCandidate],
    *,
    strategy: str = "",
    model: str = "",
    total_tokens: int = 0,
    cached_tokens: int = 0,
    warnings: list[str] | None = None,
) -> PlanMetadata:
    """Build the plan report for the final candidate list."""
    breakpoints = [Breakpoint(c.position, c.tier, c.token_count) for c in candidates]
    return PlanMetadata(
        injected=len(breakpoints) > 0,
        breakpoints=breakpoints,
        strategy=strategy,
        model=model,
        total_tokens=total_tokens,
        cached_tokens=cached_tokens,
        warnings=list(warnings or []),
    )
