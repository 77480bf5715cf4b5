"""Tests for the OpenAI-compatible generator (mocked HTTP)."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from formula_gate.gateway.errors import GenerationTimeout, ProviderError
from formula_gate.gateway.generator import OpenAIGenerator


def _make_httpx_response(status_code: int, json_data: dict | None = None, text: str = "") -> httpx.Response:
    """Create a proper httpx.Response with request set (needed for raise_for_status)."""
    request = httpx.Request("POST", "https://example.com")
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, request=request)
    return httpx.Response(status_code, text=text, request=request)


def _mock_openai_response(content="=SUM(B:B)\n합계를 계산합니다", model="gpt-4o-mini"):
    return _make_httpx_response(
        200,
        json_data={
            "choices": [{"message": {"content": content}, "finish_reason": "stop"}],
            "model": model,
            "usage": {"prompt_tokens": 80, "completion_tokens": 20},
        },
    )


def _patched_client(mock_client_cls, post_return=None, post_side_effect=None):
    mock_client = AsyncMock()
    if post_side_effect is not None:
        mock_client.post.side_effect = post_side_effect
    else:
        mock_client.post.return_value = post_return
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    mock_client_cls.return_value = mock_client
    return mock_client


class TestOpenAIGenerator:
    async def test_success(self):
        generator = OpenAIGenerator(api_key="test-key")

        with patch("formula_gate.gateway.generator.httpx.AsyncClient") as mock_client_cls:
            _patched_client(mock_client_cls, post_return=_mock_openai_response())
            text = await generator.generate("prompt")

        assert text == "=SUM(B:B)\n합계를 계산합니다"

    async def test_payload_carries_fixed_directives(self):
        generator = OpenAIGenerator(api_key="test-key", max_tokens=150, temperature=0.3)

        with patch("formula_gate.gateway.generator.httpx.AsyncClient") as mock_client_cls:
            mock_client = _patched_client(mock_client_cls, post_return=_mock_openai_response())
            await generator.generate("the prompt")

        _, kwargs = mock_client.post.call_args
        payload = kwargs["json"]
        assert payload["model"] == "gpt-4o-mini"
        assert payload["max_tokens"] == 150
        assert payload["temperature"] == 0.3
        assert payload["messages"] == [{"role": "user", "content": "the prompt"}]
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"

    async def test_http_error_becomes_provider_error(self):
        generator = OpenAIGenerator(api_key="test-key")

        with patch("formula_gate.gateway.generator.httpx.AsyncClient") as mock_client_cls:
            _patched_client(mock_client_cls, post_return=_make_httpx_response(429, text="rate limited"))
            with pytest.raises(ProviderError) as exc_info:
                await generator.generate("prompt")

        assert exc_info.value.upstream_status == 429
        assert exc_info.value.status_code == 500

    async def test_timeout(self):
        generator = OpenAIGenerator(api_key="test-key", timeout=5.0)

        with patch("formula_gate.gateway.generator.httpx.AsyncClient") as mock_client_cls:
            _patched_client(mock_client_cls, post_side_effect=httpx.TimeoutException("timeout"))
            with pytest.raises(GenerationTimeout):
                await generator.generate("prompt")

    async def test_connect_error(self):
        generator = OpenAIGenerator(api_key="test-key")

        with patch("formula_gate.gateway.generator.httpx.AsyncClient") as mock_client_cls:
            _patched_client(mock_client_cls, post_side_effect=httpx.ConnectError("refused"))
            with pytest.raises(ProviderError):
                await generator.generate("prompt")

    async def test_malformed_body(self):
        generator = OpenAIGenerator(api_key="test-key")

        with patch("formula_gate.gateway.generator.httpx.AsyncClient") as mock_client_cls:
            _patched_client(mock_client_cls, post_return=_make_httpx_response(200, json_data={"choices": []}))
            with pytest.raises(ProviderError):
                await generator.generate("prompt")

    async def test_null_content_returns_empty(self):
        generator = OpenAIGenerator(api_key="test-key")

        with patch("formula_gate.gateway.generator.httpx.AsyncClient") as mock_client_cls:
            _patched_client(mock_client_cls, post_return=_mock_openai_response(content=None))
            assert await generator.generate("prompt") == ""

    async def test_missing_api_key(self):
        generator = OpenAIGenerator(api_key="")
        with pytest.raises(ProviderError):
            await generator.generate("prompt")
