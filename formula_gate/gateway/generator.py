"""Text generators — the external, costly call behind the gate.

A generator turns a fully rendered prompt into raw text. Output length and
sampling temperature are fixed per generator instance, never taken from
user input.

  - BaseGenerator: interface used by the orchestrator
  - OpenAIGenerator: OpenAI-compatible chat completions over httpx
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

import httpx

from formula_gate.gateway.errors import GenerationTimeout, ProviderError

logger = logging.getLogger(__name__)


PROMPT_TEMPLATE = """다음 설명을 엑셀 수식으로 변환하세요.
규칙:
- 출력은 반드시 두 줄
- 1줄: "="로 시작하는 엑셀 수식
- 2줄: 한국어 설명 한 문장
- 추가 텍스트 금지

설명: {description}

형식:
=FORMULA_HERE
한국어 설명"""


def build_prompt(description: str) -> str:
    """Embed the trimmed user description in the fixed instruction template."""
    return PROMPT_TEMPLATE.format(description=description.strip())


class BaseGenerator(ABC):
    """Base class for text generators."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the raw generated text.

        Raises:
            ProviderError: the provider failed or returned no usable text.
            GenerationTimeout: the provider did not answer in time.
        """
        ...


class OpenAIGenerator(BaseGenerator):
    """OpenAI Chat Completions generator."""

    default_model = "gpt-4o-mini"
    api_url = "https://api.openai.com/v1/chat/completions"

    def __init__(
        self,
        api_key: str,
        model: str = "",
        api_url: str = "",
        max_tokens: int = 150,
        temperature: float = 0.3,
        timeout: float = 20.0,
    ):
        self.api_key = api_key
        self.model = model or self.default_model
        self.api_url = api_url or self.api_url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise ProviderError(detail="No API key configured for the text-generation provider")

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        start = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.api_url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                )
            resp.raise_for_status()
            data = resp.json()
            text = data["choices"][0]["message"]["content"] or ""

        except httpx.TimeoutException as e:
            raise GenerationTimeout(detail=f"Timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                detail=f"Provider returned HTTP {e.response.status_code}",
                upstream_status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(detail=f"Transport error: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(detail=f"Malformed provider response: {e}") from e

        usage = data.get("usage", {})
        logger.info(
            "Generated with %s in %dms (%s prompt / %s completion tokens)",
            data.get("model", self.model),
            int((time.monotonic() - start) * 1000),
            usage.get("prompt_tokens", "?"),
            usage.get("completion_tokens", "?"),
        )
        return text
