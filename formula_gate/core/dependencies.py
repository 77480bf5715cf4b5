from fastapi import Request

from formula_gate.core.config import Settings
from formula_gate.gateway.gate import FormulaGate, GateStores
from formula_gate.gateway.generator import OpenAIGenerator
from formula_gate.gateway.types import GateLimits


def build_gate(settings: Settings) -> FormulaGate:
    """Wire the process-wide gate from settings."""
    limits = GateLimits.from_settings(settings)
    generator = OpenAIGenerator(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        api_url=settings.openai_api_url,
        max_tokens=settings.generation_max_tokens,
        temperature=settings.generation_temperature,
        timeout=settings.generation_timeout_seconds,
    )
    return FormulaGate(generator=generator, stores=GateStores.from_limits(limits), limits=limits)


def get_gate(request: Request) -> FormulaGate:
    return request.app.state.gate
