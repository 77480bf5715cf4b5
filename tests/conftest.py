import asyncio
from collections.abc import AsyncGenerator
from datetime import date, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from formula_gate.core.config import settings

# Override settings for tests
settings.openai_api_key = "test-key"
settings.stub_generation = False
settings.cache_sweep_interval_seconds = 0
settings.trust_proxy_headers = True

from formula_gate.core.dependencies import get_gate  # noqa: E402
from formula_gate.gateway.gate import FormulaGate, GateStores  # noqa: E402
from formula_gate.gateway.generator import BaseGenerator  # noqa: E402
from formula_gate.gateway.types import GateLimits  # noqa: E402
from formula_gate.main import app  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDay:
    """Manually advanced calendar day."""

    def __init__(self, start: date = date(2026, 10, 19)):
        self.current = start

    def __call__(self) -> date:
        return self.current

    def next_day(self) -> None:
        self.current += timedelta(days=1)


class FakeGenerator(BaseGenerator):
    """Records prompts and returns canned text (optionally slowly or failing)."""

    def __init__(self, text: str = "=SUM(B:B)\n합계를 계산합니다", delay: float = 0.0, error: Exception | None = None):
        self.text = text
        self.delay = delay
        self.error = error
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def day() -> FakeDay:
    return FakeDay()


@pytest.fixture
def limits() -> GateLimits:
    return GateLimits()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def stores(limits: GateLimits, clock: FakeClock, day: FakeDay) -> GateStores:
    return GateStores.from_limits(limits, clock=clock, today=day)


@pytest.fixture
def gate(generator: FakeGenerator, stores: GateStores, limits: GateLimits) -> FormulaGate:
    return FormulaGate(generator=generator, stores=stores, limits=limits)


@pytest.fixture
async def client(gate: FormulaGate) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_gate] = lambda: gate
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
