"""Tests for the provider facade and the provider registry."""

from unittest.mock import AsyncMock

import pytest

from AI.base_client import BaseAIClient
from AI.chat_service import ChatService, get_llm_info
from AI.error_types import CompletionResult, ErrorKind
from AI.messages import CompletionOptions, ImagePart, Role, user_message
from AI.provider_registry import ProviderMetadata, ProviderRegistry, get_registry
from utils.config import ProviderConfig


class TextOnlyClient(BaseAIClient):
    provider_name = "Text Only"

    def __init__(self):
        super().__init__()
        self.calls = []

    async def complete(self, messages, options, config):
        self.calls.append((messages, options))
        return CompletionResult.success("ok")


@pytest.fixture
def registry():
    registry = ProviderRegistry()
    registry.register(
        "textonly",
        TextOnlyClient,
        ProviderMetadata(name="textonly", display_name="Text Only")
    )
    return registry


def test_openai_provider_is_registered_on_import():
    registry = get_registry()

    assert registry.is_registered("openai")
    assert registry.get_metadata("openai").supports_images
    assert registry.get_client("openai") is registry.get_client("OpenAI")


def test_unknown_provider_raises_in_registry(registry):
    with pytest.raises(ValueError):
        registry.get_client("missing")


def test_build_messages_attaches_image_when_supported():
    service = ChatService(ProviderConfig(api_key="k"))

    messages = service.build_messages("sys", "prompt", "https://cdn.example.com/a.png")

    assert [m.role for m in messages] == [Role.SYSTEM, Role.USER]
    assert messages[0].content == "sys"
    assert messages[1].has_images
    assert messages[1].content[1] == ImagePart("https://cdn.example.com/a.png")


def test_build_messages_drops_image_for_text_only_provider(registry):
    service = ChatService(ProviderConfig(provider="textonly", api_key="k"), registry)

    messages = service.build_messages("sys", "prompt", "https://cdn.example.com/a.png")

    assert messages[1] == user_message("prompt")


def test_build_messages_with_unknown_provider_sends_text_only(registry):
    service = ChatService(ProviderConfig(provider="nosuch", api_key="k"), registry)

    messages = service.build_messages("sys", "prompt", "https://cdn.example.com/a.png")

    assert messages[1] == user_message("prompt")
    assert service.supports_images() is False
    assert service.provider_name == "nosuch"


@pytest.mark.asyncio
async def test_chat_merges_default_options(registry):
    config = ProviderConfig(provider="textonly", api_key="k", model="m-1", max_tokens=77, top_p=0.9)
    service = ChatService(config, registry)

    result = await service.chat([], CompletionOptions(max_tokens=5))

    assert result.text == "ok"
    _, options = service.provider.calls[0]
    assert options.model == "m-1"
    assert options.max_tokens == 5
    assert options.top_p == 0.9
    assert options.max_retries == 3


@pytest.mark.asyncio
async def test_chat_with_unknown_provider_is_config_error(registry):
    service = ChatService(ProviderConfig(provider="missing", api_key="k"), registry)

    result = await service.chat([])

    assert result.error.kind == ErrorKind.CONFIG
    assert "missing" in result.error.error_message
    assert "textonly" in result.error.error_message


@pytest.mark.asyncio
async def test_chat_without_api_key_does_not_call_provider(registry):
    service = ChatService(ProviderConfig(provider="textonly"), registry)
    service.provider.complete = AsyncMock()

    result = await service.chat([])

    assert result.error.kind == ErrorKind.CONFIG
    service.provider.complete.assert_not_awaited()


def test_get_llm_info(registry):
    info = get_llm_info(ProviderConfig(provider="textonly", model="m-1", base_url="https://x/v1"), registry)
    assert info == {
        "provider": "Text Only",
        "model": "m-1",
        "base_url": "https://x/v1",
        "supports_images": False,
    }

    missing = get_llm_info(ProviderConfig(provider="nope"), registry)
    assert missing["provider"] == "nope (not registered)"
