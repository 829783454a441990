import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Tuple

import aiohttp

from AI.base_client import BaseAIClient
from AI.error_types import CompletionResult, ErrorKind, LLMError
from AI.messages import ChatMessage, CompletionOptions, has_single_leading_system
from AI.provider_registry import register_provider
from utils.config import ProviderConfig

log = logging.getLogger(__name__)


class OpenAIClient(BaseAIClient):
    """
    OpenAI-compatible chat completions client.

    Works with OpenAI and any API exposing the same /chat/completions
    endpoint (vLLM, LocalAI, aggregator gateways, ...).
    """

    provider_name = "OpenAI-compatible"

    def __init__(self, session_factory: Callable[..., Any] = aiohttp.ClientSession):
        super().__init__()
        self._session_factory = session_factory

    def supports_images(self) -> bool:
        """Image parts are sent as image_url references."""
        return True

    async def complete(
        self,
        messages: List[ChatMessage],
        options: CompletionOptions,
        config: ProviderConfig
    ) -> CompletionResult:
        """Generate a completion, retrying transient failures with backoff."""
        problem = self.validate_config(config)
        if problem:
            log.error(f"LLM provider misconfigured: {problem}")
            return CompletionResult.failure(LLMError.create(ErrorKind.CONFIG, problem))

        if not has_single_leading_system(messages):
            return CompletionResult.failure(LLMError.create(
                ErrorKind.INVALID_REQUEST,
                "Expected exactly one system message in first position"
            ))

        payload = self.build_payload(messages, options, config)
        url = self.build_url(config)
        headers = self.build_headers(config)
        max_retries = options.max_retries or config.max_retries

        async def make_request() -> CompletionResult:
            return await self._attempt(url, payload, headers, config.timeout)

        return await self.retry_with_backoff(
            make_request,
            max_retries=max_retries,
            base_delay=config.base_delay,
            max_delay=config.max_delay
        )

    def build_payload(
        self,
        messages: List[ChatMessage],
        options: CompletionOptions,
        config: ProviderConfig
    ) -> Dict[str, Any]:
        """Build the JSON request body."""
        payload = {
            "model": options.model or config.model,
            "messages": [msg.to_payload() for msg in messages],
            "max_tokens": options.max_tokens or config.max_tokens,
        }
        payload.update(options.sampling_params())
        return payload

    @staticmethod
    def build_url(config: ProviderConfig) -> str:
        return f"{config.base_url.rstrip('/')}/chat/completions"

    @staticmethod
    def build_headers(config: ProviderConfig) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        }

    async def _attempt(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Dict[str, str],
        timeout: float
    ) -> CompletionResult:
        """Perform a single HTTP round trip and classify its outcome."""
        try:
            status, raw_body = await self._post(url, payload, headers, timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return CompletionResult.failure(LLMError.from_exception(e))
        except UnicodeDecodeError as e:
            return CompletionResult.failure(LLMError.create(
                ErrorKind.INVALID_RESPONSE, f"Undecodable response body: {e}"
            ))

        try:
            body = json.loads(raw_body)
        except ValueError:
            body = None

        if not 200 <= status < 300:
            return CompletionResult.failure(
                LLMError.from_status(status, body if body is not None else raw_body)
            )

        return self.parse_response(body if body is not None else raw_body)

    async def _post(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Dict[str, str],
        timeout: float
    ) -> Tuple[int, str]:
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        async with self._session_factory(timeout=client_timeout) as http_session:
            async with http_session.post(url, json=payload, headers=headers) as response:
                return response.status, await response.text()

    @staticmethod
    def parse_response(body: Any) -> CompletionResult:
        """
        Extract the completion text from a 2xx response body.

        A body with zero choices is a malformed response, not an empty success.

        Args:
            body: Decoded JSON body, or the raw text if it did not decode

        Returns:
            CompletionResult
        """
        if not isinstance(body, dict):
            return CompletionResult.failure(LLMError.create(
                ErrorKind.INVALID_RESPONSE, f"Response body is not a JSON object: {body!r:.200}"
            ))

        choices = body.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return CompletionResult.success(content)

        if "error" in body:
            error = body["error"]
            detail = error.get("message", error) if isinstance(error, dict) else error
            return CompletionResult.failure(LLMError.create(ErrorKind.API_ERROR, str(detail)))

        return CompletionResult.failure(LLMError.create(
            ErrorKind.UNEXPECTED_RESPONSE, f"No completion in response: {body!r:.200}"
        ))


register_provider(
    name="openai",
    client_class=OpenAIClient,
    display_name="OpenAI-compatible",
    supports_images=True
)
