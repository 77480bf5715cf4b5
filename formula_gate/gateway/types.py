"""Core types and DTOs for the formula gate."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RejectReason(str, Enum):
    """Typed reason attached to every rejected request."""

    INPUT_EMPTY = "input_empty"
    INPUT_TOO_LONG = "input_too_long"
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    GENERATION_INVALID = "generation_invalid"
    PROVIDER_ERROR = "provider_error"


class GateStatus(str, Enum):
    """Terminal state of a request through the gate."""

    SERVED_FRESH = "served_fresh"
    SERVED_CACHED = "served_cached"
    SERVED_STUB = "served_stub"  # development stub, no provider call
    REJECTED = "rejected"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormulaResult:
    """A parsed generation: one formula line and its explanation."""

    formula: str
    explanation: str


@dataclass(frozen=True)
class CacheEntry:
    """Cached result for a normalized key. Replaced, never mutated."""

    key: str
    result: FormulaResult
    created_at: float  # clock() reading at insert time


# ---------------------------------------------------------------------------
# Gate Request / Response
# ---------------------------------------------------------------------------


@dataclass
class GateRequest:
    """A single user-initiated action entering the gate."""

    input: str | None
    client_id: str


@dataclass
class GateResponse:
    """Outcome of one pass through the gate.

    Either `result` is set (status is one of the SERVED_* values) or
    `reason`/`error_message`/`status_code` describe the rejection.
    """

    status: GateStatus
    result: FormulaResult | None = None
    reason: RejectReason | None = None
    error_message: str = ""
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return self.status != GateStatus.REJECTED

    @property
    def cached(self) -> bool:
        return self.status in (GateStatus.SERVED_CACHED, GateStatus.SERVED_STUB)

    def to_dict(self) -> dict:
        """Serialize to the JSON body returned to the client."""
        if not self.ok:
            return {
                "error": self.error_message,
                "reason": self.reason.value if self.reason else None,
            }
        data = {
            "formula": self.result.formula,
            "explanation": self.result.explanation,
            "cached": self.cached,
        }
        if self.status == GateStatus.SERVED_STUB:
            data["dev"] = True
        return data


# ---------------------------------------------------------------------------
# Gate limits
# ---------------------------------------------------------------------------


@dataclass
class GateLimits:
    """Limits and generation directives for a gate instance."""

    max_input_length: int = 300
    cache_ttl_seconds: float = 3600.0  # 1 hour
    cache_max_entries: int = 0  # 0 = unbounded
    rate_limit_window_seconds: float = 60.0
    rate_limit_max_requests: int = 3  # per client per window
    daily_generation_limit: int = 1000
    generation_timeout_seconds: float = 20.0
    dedupe_inflight: bool = False
    stub_generation: bool = False

    @classmethod
    def from_settings(cls, settings) -> GateLimits:
        return cls(
            max_input_length=settings.max_input_length,
            cache_ttl_seconds=settings.cache_ttl_seconds,
            cache_max_entries=settings.cache_max_entries,
            rate_limit_window_seconds=settings.rate_limit_window_seconds,
            rate_limit_max_requests=settings.rate_limit_max_requests,
            daily_generation_limit=settings.daily_generation_limit,
            generation_timeout_seconds=settings.generation_timeout_seconds,
            dedupe_inflight=settings.dedupe_inflight,
            stub_generation=settings.stub_generation,
        )


DEFAULT_LIMITS = GateLimits()
