"""
Base types for cache breakpoint planning.

Every planning stage passes these values along as plain ordered lists.
Order is wire order: the upstream prefix cache treats each breakpoint's span
as a prefix of every later one, so no stage may reorder candidates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

SegmentKind = Literal["tools", "system", "message"]

_SECTION_ORDER = {"tools": 0, "system": 1, "message": 2}


def wire_order(
    kind: SegmentKind,
    message_index: int | None = None,
    block_index: int | None = None,
) -> tuple[int, int, int]:
    """Sort key placing a location in request order.

    Tools come first, then system blocks, then each message's blocks. Plain
    string content counts as block 0.
    """
    return (_SECTION_ORDER[kind], message_index or 0, block_index or 0)


class RetentionTier(str, Enum):
    """Cache lifetime of a breakpoint.

    The values are the literals the upstream API accepts in
    ``cache_control.ttl``; no other encoding is valid on the wire.
    """

    SHORT = "5m"
    LONG = "1h"

    @property
    def rank(self) -> int:
        """Ordering used by selection: LONG outranks SHORT."""
        return 1 if self is RetentionTier.LONG else 0


class ContentType(str, Enum):
    """How durable a segment's content looks."""

    STABLE = "stable"  # Instructions, context, guidelines, tool schemas
    VOLATILE = "volatile"  # Ordinary conversational content


@dataclass(frozen=True)
class Segment:
    """One unit of request content, in wire order.

    ``message_index`` is set for message segments. ``block_index`` is None
    when the content was a plain string and the block's index otherwise.
    """

    kind: SegmentKind
    text: str
    token_count: int
    message_index: int | None = None
    block_index: int | None = None
    role: str = ""

    # Content is a plain string or a one-block list
    single_block: bool = True

    # Caller already attached cache_control here
    preset: bool = False

    @property
    def position(self) -> str:
        """Stable identifier used in logs, metadata and response headers."""
        if self.kind == "tools":
            return "tools"
        if self.kind == "system":
            if self.block_index is None or self.single_block:
                return "system"
            return f"system_{self.block_index}"
        if self.block_index is None or self.single_block:
            return f"message_{self.message_index}"
        return f"message_{self.message_index}_block_{self.block_index}"


@dataclass(frozen=True)
class Classification:
    """Classifier verdict for a single segment."""

    content_type: ContentType
    tier: RetentionTier
    eligible: bool
    reason: str = ""


@dataclass(frozen=True)
class CacheCandidate:
    """A segment that passed eligibility screening.

    Location fields mirror the originating Segment so the injector can find
    the block again without re-walking the request.
    """

    position: str
    tier: RetentionTier
    token_count: int
    content_type: ContentType
    eligible: bool = True

    kind: SegmentKind = "message"
    message_index: int | None = None
    block_index: int | None = None
    reason: str = ""

    @property
    def wire_order(self) -> tuple[int, int, int]:
        return wire_order(self.kind, self.message_index, self.block_index)

    @classmethod
    def from_segment(cls, segment: Segment, verdict: Classification) -> CacheCandidate:
        return cls(
            position=segment.position,
            tier=verdict.tier,
            token_count=segment.token_count,
            content_type=verdict.content_type,
            eligible=verdict.eligible,
            kind=segment.kind,
            message_index=segment.message_index,
            block_index=segment.block_index,
            reason=verdict.reason,
        )


@dataclass(frozen=True)
class ExistingMarker:
    """A cache_control marker the caller placed before planning.

    Its tier comes from the marker's ``ttl`` and defaults to SHORT, the
    upstream default. Existing markers are never modified; planned
    breakpoints are aligned around them.
    """

    kind: SegmentKind
    tier: RetentionTier
    message_index: int | None = None
    block_index: int | None = None

    @property
    def wire_order(self) -> tuple[int, int, int]:
        return wire_order(self.kind, self.message_index, self.block_index)


@dataclass(frozen=True)
class Breakpoint:
    """A planned breakpoint as reported to callers."""

    position: str
    tier: RetentionTier
    tokens: int

    @property
    def ttl(self) -> str:
        """Wire literal of the tier."""
        return self.tier.value

    def to_header_value(self) -> str:
        return f"{self.position}:{self.tier.value}:{self.tokens}"

    def to_dict(self) -> dict[str, Any]:
        return {"position": self.position, "ttl": self.tier.value, "tokens": self.tokens}


@dataclass(frozen=True)
class ROIEstimate:
    """Estimated economics of the planned cache writes, in USD."""

    model: str

    # Extra cost of writing the cached prefix instead of sending it normally
    write_premium_usd: float

    # Saved on every later request that reads the cached prefix
    savings_per_read_usd: float

    # Reads needed before the write premium is paid back (None if never)
    break_even_reads: int | None

    # Net result after ten cache reads
    net_savings_10_reads_usd: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "write_premium_usd": round(self.write_premium_usd, 6),
            "savings_per_read_usd": round(self.savings_per_read_usd, 6),
            "break_even_reads": self.break_even_reads,
            "net_savings_10_reads_usd": round(self.net_savings_10_reads_usd, 6),
        }


@dataclass
class PlanMetadata:
    """Report of what was planned for one request."""

    injected: bool = False
    breakpoints: list[Breakpoint] = field(default_factory=list)

    strategy: str = ""
    model: str = ""

    # Token accounting (estimates)
    total_tokens: int = 0
    cached_tokens: int = 0

    roi: ROIEstimate | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def cache_ratio(self) -> float:
        if self.total_tokens <= 0:
            return 0.0
        return self.cached_tokens / self.total_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "injected": self.injected,
            "strategy": self.strategy,
            "model": self.model,
            "breakpoints": [bp.to_dict() for bp in self.breakpoints],
            "total_tokens": self.total_tokens,
            "cached_tokens": self.cached_tokens,
            "cache_ratio": round(self.cache_ratio, 4),
            "roi": self.roi.to_dict() if self.roi else None,
            "warnings": list(self.warnings),
        }


@dataclass
class PlanResult:
    """Result of a planning call."""

    # Annotated copy of the request; the caller's request is never mutated
    request: dict[str, Any]

    metadata: PlanMetadata = field(default_factory=PlanMetadata)
