"""
Chat Service - Provider Facade

Routes completion requests to the configured provider, fills in default
options from the provider configuration and builds the message list sent
for a conversation.
"""

import logging
from typing import Any, Dict, List, Optional

# Import AI module to trigger provider registration
import AI  # noqa: F401
from AI.error_types import CompletionResult, ErrorKind, LLMError
from AI.messages import (
    ChatMessage,
    CompletionOptions,
    system_message,
    user_message,
    user_message_with_image,
)
from AI.provider_registry import ProviderRegistry, get_registry
from utils.config import ProviderConfig

log = logging.getLogger(__name__)


class ChatService:
    """Entry point for chat completions using the configured provider."""

    def __init__(self, config: ProviderConfig, registry: Optional[ProviderRegistry] = None):
        """
        Initialize the chat service.

        Args:
            config: Provider configuration (read-only)
            registry: Provider registry (defaults to the global registry)
        """
        self.config = config
        self.registry = registry or get_registry()

    @property
    def provider(self):
        """The client registered under the configured provider name."""
        return self.registry.get_client(self.config.provider)

    @property
    def provider_name(self) -> str:
        if not self.registry.is_registered(self.config.provider):
            return self.config.provider
        return self.provider.name

    def supports_images(self) -> bool:
        """False for an unregistered provider; chat() reports that as a config error."""
        if not self.registry.is_registered(self.config.provider):
            return False
        return self.provider.supports_images()

    def validate_config(self) -> Optional[str]:
        """
        Validates the current provider configuration.

        Returns:
            None if valid, otherwise a description of the problem
        """
        if not self.registry.is_registered(self.config.provider):
            available = ", ".join(self.registry.list_providers())
            return f"Unknown LLM provider '{self.config.provider}' (available: {available})"
        return self.provider.validate_config(self.config)

    def default_options(self) -> CompletionOptions:
        return CompletionOptions(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            top_p=self.config.top_p,
            presence_penalty=self.config.presence_penalty,
            frequency_penalty=self.config.frequency_penalty,
            max_retries=self.config.max_retries,
        )

    async def chat(
        self,
        messages: List[ChatMessage],
        options: Optional[CompletionOptions] = None
    ) -> CompletionResult:
        """
        Performs a chat completion using the configured provider.

        Args:
            messages: Ordered messages, system message first
            options: Overrides for model, max tokens and sampling parameters

        Returns:
            CompletionResult with the response text or a classified error
        """
        problem = self.validate_config()
        if problem:
            log.error(f"LLM configuration invalid: {problem}")
            return CompletionResult.failure(LLMError.create(ErrorKind.CONFIG, problem))

        merged = (options or CompletionOptions()).merged_with(self.default_options())
        log.debug(f"LLM chat request via {self.provider_name} (model={merged.model})")

        return await self.provider.complete(messages, merged, self.config)

    def build_messages(
        self,
        system_prompt: str,
        prompt: str,
        image_url: Optional[str] = None
    ) -> List[ChatMessage]:
        """
        Build the [system, user] message list for one conversation turn.

        The image is attached only when the provider accepts image parts.

        Args:
            system_prompt: System prompt text
            prompt: Rendered conversation context
            image_url: Optional image reference for the current message

        Returns:
            List of ChatMessage
        """
        if image_url and self.supports_images():
            user = user_message_with_image(prompt, image_url)
        else:
            if image_url:
                log.debug(f"Provider {self.provider_name} does not accept images, sending text only")
            user = user_message(prompt)

        return [system_message(system_prompt), user]


def get_llm_info(config: ProviderConfig, registry: Optional[ProviderRegistry] = None) -> Dict[str, Any]:
    """
    Returns LLM configuration info for status displays.

    Args:
        config: Provider configuration
        registry: Provider registry (defaults to the global registry)

    Returns:
        Dict with provider, model, base_url and supports_images
    """
    registry = registry or get_registry()

    if registry.is_registered(config.provider):
        metadata = registry.get_metadata(config.provider)
        provider = metadata.display_name
        supports_images = metadata.supports_images
    else:
        provider = f"{config.provider} (not registered)"
        supports_images = False

    return {
        "provider": provider,
        "model": config.model,
        "base_url": config.base_url,
        "supports_images": supports_images,
    }
