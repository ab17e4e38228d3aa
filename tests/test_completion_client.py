"""Tests for the completion client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from whatbot.llm.client import CompletionClient, CompletionError


def _response(*texts: str) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(text=t) for t in texts]
    return response


def _client_with(create: AsyncMock, **kwargs) -> CompletionClient:
    client = CompletionClient(api_key="sk-test", model="test-model", **kwargs)
    mock_sdk = MagicMock()
    mock_sdk.completions.create = create
    client._client = mock_sdk
    return client


async def test_returns_trimmed_first_choice() -> None:
    create = AsyncMock(return_value=_response("  It is 3 PM.\n", "ignored"))
    client = _client_with(create)

    assert await client.complete("prompt") == "It is 3 PM."


async def test_fixed_sampling_parameters() -> None:
    create = AsyncMock(return_value=_response("ok"))
    client = _client_with(create, max_tokens=256, stop="\nMe (")

    await client.complete("the prompt")

    kwargs = create.call_args.kwargs
    assert kwargs == {
        "model": "test-model",
        "prompt": "the prompt",
        "temperature": 0,
        "max_tokens": 256,
        "top_p": 0.5,
        "frequency_penalty": 0,
        "presence_penalty": 0,
        "stop": ["\nMe ("],
    }


async def test_empty_stop_is_omitted() -> None:
    create = AsyncMock(return_value=_response("ok"))
    client = _client_with(create, stop="")

    await client.complete("p")

    assert "stop" not in create.call_args.kwargs


async def test_api_error_becomes_completion_error() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/completions")
    create = AsyncMock(side_effect=openai.APIConnectionError(request=request))
    client = _client_with(create)

    with pytest.raises(CompletionError):
        await client.complete("p")


async def test_no_choices_is_completion_error() -> None:
    client = _client_with(AsyncMock(return_value=_response()))

    with pytest.raises(CompletionError, match="no choices"):
        await client.complete("p")


async def test_missing_text_is_completion_error() -> None:
    response = MagicMock()
    response.choices = [MagicMock(text=None)]
    client = _client_with(AsyncMock(return_value=response))

    with pytest.raises(CompletionError, match="no text"):
        await client.complete("p")


async def test_concurrency_is_bounded() -> None:
    in_flight = 0
    peak = 0

    async def slow_create(**kwargs):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return _response("ok")

    client = _client_with(AsyncMock(side_effect=slow_create), max_concurrent=2)

    results = await asyncio.gather(*(client.complete(f"p{i}") for i in range(6)))

    assert results == ["ok"] * 6
    assert peak == 2


async def test_client_built_once() -> None:
    client = CompletionClient(api_key="sk-test")
    first = client._get_client()
    assert client._get_client() is first
    await client.close()
    assert client._client is None
