"""Tests for the OpenAI-compatible completion client."""

import asyncio
from unittest.mock import MagicMock, patch

import aiohttp
import pytest

from AI.base_client import backoff_with_jitter, compute_backoff
from AI.error_types import ErrorKind
from AI.messages import (
    CompletionOptions,
    system_message,
    user_message,
    user_message_with_image,
)
from AI.openai_client import OpenAIClient
from conftest import FakeResponse, FakeSessionFactory, completion_body
from utils.config import ProviderConfig

CONFIG = ProviderConfig(
    model="test-model",
    api_key="sk-test",
    base_url="https://api.example.com/v1/",
    max_tokens=256,
    max_retries=3,
    base_delay=1.0,
    max_delay=30.0,
    timeout=10.0,
)

MESSAGES = [system_message("be nice"), user_message("hi")]


def make_client(*outcomes):
    factory = FakeSessionFactory(list(outcomes))
    return OpenAIClient(session_factory=factory), factory


@pytest.fixture
def no_backoff():
    with patch("AI.base_client.backoff_with_jitter", MagicMock(return_value=0)) as backoff:
        yield backoff


def test_compute_backoff_doubles_and_caps():
    assert [compute_backoff(k, 1.0, 30.0) for k in range(7)] == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]


def test_backoff_jitter_is_bounded():
    assert backoff_with_jitter(2, 1.0, 30.0, rng=lambda low, high: low) == 4.0
    assert backoff_with_jitter(2, 1.0, 30.0, rng=lambda low, high: high) == pytest.approx(4.4)
    assert backoff_with_jitter(10, 1.0, 30.0, rng=lambda low, high: high) == pytest.approx(33.0)


@pytest.mark.asyncio
async def test_success_sends_expected_request():
    client, factory = make_client(FakeResponse(200, completion_body("hello there")))
    messages = [system_message("be nice"), user_message_with_image("look", "https://cdn.example.com/cat.png")]

    result = await client.complete(messages, CompletionOptions(temperature=0.5), CONFIG)

    assert result.ok
    assert result.text == "hello there"
    assert len(factory.requests) == 1

    request = factory.requests[0]
    assert request["url"] == "https://api.example.com/v1/chat/completions"
    assert request["headers"]["Authorization"] == "Bearer sk-test"
    assert request["json"] == {
        "model": "test-model",
        "max_tokens": 256,
        "temperature": 0.5,
        "messages": [
            {"role": "system", "content": "be nice"},
            {"role": "user", "content": [
                {"type": "text", "text": "look"},
                {"type": "image_url", "image_url": {"url": "https://cdn.example.com/cat.png"}},
            ]},
        ],
    }
    assert factory.session_kwargs["timeout"].total == 10.0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 403])
async def test_client_errors_are_attempted_once(no_backoff, status):
    client, factory = make_client(FakeResponse(status, {"error": {"message": "rejected"}}))

    result = await client.complete(MESSAGES, CompletionOptions(), CONFIG)

    assert not result.ok
    assert result.error.kind == ErrorKind.HTTP_CLIENT
    assert result.error.status == status
    assert not result.error.retryable
    assert len(factory.requests) == 1
    no_backoff.assert_not_called()


@pytest.mark.asyncio
async def test_server_errors_retry_up_to_ceiling(no_backoff):
    client, factory = make_client(FakeResponse(500, "upstream exploded"))

    result = await client.complete(MESSAGES, CompletionOptions(), CONFIG)

    assert result.error.kind == ErrorKind.HTTP_ERROR
    assert result.error.error_type == "HTTP 500"
    assert len(factory.requests) == 3
    assert [c.args for c in no_backoff.call_args_list] == [(0, 1.0, 30.0), (1, 1.0, 30.0)]


@pytest.mark.asyncio
async def test_retry_then_success(no_backoff):
    client, factory = make_client(
        FakeResponse(503, "busy"),
        FakeResponse(200, completion_body("finally")),
    )

    result = await client.complete(MESSAGES, CompletionOptions(), CONFIG)

    assert result.text == "finally"
    assert len(factory.requests) == 2


@pytest.mark.asyncio
async def test_transport_errors_are_retried(no_backoff):
    client, factory = make_client(aiohttp.ClientConnectionError("connection refused"))

    result = await client.complete(MESSAGES, CompletionOptions(), CONFIG)

    assert result.error.kind == ErrorKind.TRANSPORT
    assert result.error.error_type == "ClientConnectionError"
    assert result.error.to_friendly_string() == "Sorry, I couldn't connect to the AI service :c"
    assert len(factory.requests) == 3


@pytest.mark.asyncio
async def test_timeouts_are_retried(no_backoff):
    client, factory = make_client(asyncio.TimeoutError(), FakeResponse(200, completion_body("ok")))

    result = await client.complete(MESSAGES, CompletionOptions(), CONFIG)

    assert result.text == "ok"
    assert len(factory.requests) == 2


@pytest.mark.asyncio
async def test_retry_ceiling_can_be_overridden(no_backoff):
    client, factory = make_client(FakeResponse(500, "nope"))

    await client.complete(MESSAGES, CompletionOptions(max_retries=1), CONFIG)

    assert len(factory.requests) == 1


@pytest.mark.asyncio
async def test_error_payload_is_api_error(no_backoff):
    client, factory = make_client(FakeResponse(200, {"error": {"message": "model overloaded"}}))

    result = await client.complete(MESSAGES, CompletionOptions(), CONFIG)

    assert result.error.kind == ErrorKind.API_ERROR
    assert result.error.error_message == "model overloaded"
    assert result.error.to_friendly_string() == "Sorry, something went wrong with the AI service :c"
    assert len(factory.requests) == 1


@pytest.mark.asyncio
async def test_zero_choices_is_malformed_response(no_backoff):
    client, factory = make_client(FakeResponse(200, {"choices": []}))

    result = await client.complete(MESSAGES, CompletionOptions(), CONFIG)

    assert result.error.kind == ErrorKind.UNEXPECTED_RESPONSE
    assert result.error.to_friendly_string() == "An unexpected error occurred :c"
    assert len(factory.requests) == 1


@pytest.mark.asyncio
async def test_non_json_success_body_is_invalid_response(no_backoff):
    client, factory = make_client(FakeResponse(200, "<html>gateway</html>"))

    result = await client.complete(MESSAGES, CompletionOptions(), CONFIG)

    assert result.error.kind == ErrorKind.INVALID_RESPONSE
    assert len(factory.requests) == 1


@pytest.mark.asyncio
async def test_missing_api_key_fails_without_request():
    client, factory = make_client(FakeResponse(200, completion_body("unused")))
    config = ProviderConfig(api_key="")

    result = await client.complete(MESSAGES, CompletionOptions(), config)

    assert result.error.kind == ErrorKind.CONFIG
    assert factory.requests == []


@pytest.mark.asyncio
async def test_system_message_must_come_first_and_only_once():
    client, factory = make_client(FakeResponse(200, completion_body("unused")))
    messages = [user_message("hi"), system_message("late")]

    result = await client.complete(messages, CompletionOptions(), CONFIG)

    assert result.error.kind == ErrorKind.INVALID_REQUEST
    assert factory.requests == []
