"""Formula Gate — orchestrator in front of the text-generation provider.

Request protocol:
  1. Validate input (empty / too long)
  2. Check the global daily quota
  3. Check the per-client sliding window
  4. Look up the normalized key in the response cache
  5. On a miss: generate (no store lock held), parse, store, count quota

Every rejection is a GateError converted into a GateResponse at the
boundary of handle(); nothing is retried here.

Usage:
    gate = FormulaGate(generator=OpenAIGenerator(api_key="sk-..."))
    response = await gate.handle(GateRequest(input="sum of column b", client_id="1.2.3.4"))
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from formula_gate.core.metrics import DAILY_QUOTA_USED, GATE_DECISIONS, GENERATION_DURATION
from formula_gate.gateway.errors import (
    GateError,
    GenerationInvalid,
    GenerationTimeout,
    InputEmpty,
    InputTooLong,
    ProviderError,
    QuotaExceeded,
    RateLimited,
)
from formula_gate.gateway.generator import BaseGenerator, build_prompt
from formula_gate.gateway.inflight import InflightRegistry
from formula_gate.gateway.normalizer import normalize_input, parse_generation
from formula_gate.gateway.quota_guard import DailyQuotaGuard
from formula_gate.gateway.rate_limiter import SlidingWindowRateLimiter
from formula_gate.gateway.response_cache import ResponseCache
from formula_gate.gateway.types import (
    DEFAULT_LIMITS,
    FormulaResult,
    GateLimits,
    GateRequest,
    GateResponse,
    GateStatus,
)

logger = logging.getLogger(__name__)

# Canned answer served in stub mode (development, no provider cost)
STUB_RESULT = FormulaResult(
    formula="=SUM(B:B)",
    explanation="B열에 있는 모든 값을 합계로 계산합니다.",
)


@dataclass
class GateStores:
    """The three mutable stores shared by every request in the process."""

    cache: ResponseCache
    rate_limiter: SlidingWindowRateLimiter
    quota: DailyQuotaGuard

    @classmethod
    def from_limits(
        cls,
        limits: GateLimits,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
    ) -> GateStores:
        return cls(
            cache=ResponseCache(
                ttl_seconds=limits.cache_ttl_seconds,
                max_entries=limits.cache_max_entries,
                clock=clock,
            ),
            rate_limiter=SlidingWindowRateLimiter(
                max_requests=limits.rate_limit_max_requests,
                window_seconds=limits.rate_limit_window_seconds,
                clock=clock,
            ),
            quota=DailyQuotaGuard(daily_limit=limits.daily_generation_limit, today=today),
        )


class FormulaGate:
    """Gate orchestrator.

    Integrates:
      - DailyQuotaGuard: global generations-per-day ceiling
      - SlidingWindowRateLimiter: per-client admission
      - ResponseCache: shared TTL cache keyed by normalized input
      - BaseGenerator: the external call
      - InflightRegistry: optional de-duplication of identical misses
    """

    def __init__(
        self,
        generator: BaseGenerator,
        stores: GateStores | None = None,
        limits: GateLimits | None = None,
    ):
        self.generator = generator
        self.limits = limits or DEFAULT_LIMITS
        self.stores = stores or GateStores.from_limits(self.limits)
        self._inflight = InflightRegistry() if self.limits.dedupe_inflight else None

    async def handle(self, request: GateRequest) -> GateResponse:
        """Run one request through the gate. Never raises for gate failures."""
        try:
            response = await self._process(request)
        except GateError as e:
            response = self._reject(e, request)
        except Exception as e:
            logger.exception("Unexpected gate failure for client %s", request.client_id)
            response = self._reject(ProviderError(detail=f"{type(e).__name__}: {e}"), request)

        outcome = response.reason.value if response.reason else response.status.value
        GATE_DECISIONS.labels(outcome=outcome).inc()
        return response

    async def _process(self, request: GateRequest) -> GateResponse:
        text = self._validate(request.input)

        if self.limits.stub_generation:
            return GateResponse(status=GateStatus.SERVED_STUB, result=STUB_RESULT)

        key = normalize_input(text)

        # Quota before rate limit: an exhausted day must not touch client windows
        if not await self.stores.quota.allow():
            raise QuotaExceeded()

        if not await self.stores.rate_limiter.allow(request.client_id):
            raise RateLimited()

        cached = await self.stores.cache.get(key)
        if cached is not None:
            return GateResponse(status=GateStatus.SERVED_CACHED, result=cached)

        if self._inflight is None:
            result = await self._generate_and_store(text, key)
            return GateResponse(status=GateStatus.SERVED_FRESH, result=result)

        future, leader = self._inflight.join(key)
        if not leader:
            result = await asyncio.shield(future)
            return GateResponse(status=GateStatus.SERVED_CACHED, result=result)

        result = None
        error: BaseException | None = ProviderError(detail="Generation abandoned by leader")
        try:
            result = await self._generate_and_store(text, key)
            error = None
        except Exception as e:
            error = e
            raise
        finally:
            self._inflight.settle(key, result=result, error=error)

        return GateResponse(status=GateStatus.SERVED_FRESH, result=result)

    def _validate(self, text: object) -> str:
        if not isinstance(text, str) or not text.strip():
            raise InputEmpty()
        # Length counts code points, so one emoji is one character
        if len(text) > self.limits.max_input_length:
            raise InputTooLong(max_length=self.limits.max_input_length, detail=f"length={len(text)}")
        return text

    async def _generate_and_store(self, text: str, key: str) -> FormulaResult:
        prompt = build_prompt(text)
        start = time.perf_counter()
        try:
            raw = await asyncio.wait_for(
                self.generator.generate(prompt),
                timeout=self.limits.generation_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise GenerationTimeout(
                detail=f"No answer within {self.limits.generation_timeout_seconds}s"
            ) from e
        except GateError:
            raise
        except Exception as e:
            raise ProviderError(detail=f"{type(e).__name__}: {e}") from e
        finally:
            GENERATION_DURATION.observe(time.perf_counter() - start)

        result = parse_generation(raw)

        await self.stores.cache.put(key, result)
        used = await self.stores.quota.record_usage()
        DAILY_QUOTA_USED.set(used)
        return result

    def _reject(self, error: GateError, request: GateRequest) -> GateResponse:
        extra: dict[str, object] = {"client_id": request.client_id, "reason": error.reason.value}
        if isinstance(error, ProviderError) and error.upstream_status:
            extra["upstream_status"] = error.upstream_status

        if isinstance(error, (ProviderError, GenerationInvalid)):
            logger.warning(
                "%s for client %s: %s%s",
                type(error).__name__,
                request.client_id,
                error.detail or error.message,
                f" (upstream status {error.upstream_status})" if "upstream_status" in extra else "",
                extra=extra,
            )
        else:
            logger.info(
                "Rejected request from %s: %s",
                request.client_id,
                error.reason.value,
                extra=extra,
            )

        return GateResponse(
            status=GateStatus.REJECTED,
            reason=error.reason,
            error_message=error.message,
            status_code=error.status_code,
        )

    async def sweep(self) -> dict:
        """Housekeeping: drop expired cache entries and idle client windows."""
        return {
            "cache_expired": await self.stores.cache.sweep(),
            "idle_clients": await self.stores.rate_limiter.purge_idle(),
        }

    def get_status(self) -> dict:
        """Get combined stats of the gate stores."""
        return {
            "cache": self.stores.cache.get_stats(),
            "rate_limiter": self.stores.rate_limiter.get_stats(),
            "quota": self.stores.quota.get_stats(),
            "inflight": len(self._inflight) if self._inflight is not None else None,
            "stub_generation": self.limits.stub_generation,
        }
