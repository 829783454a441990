"""
Base AI Client

This module provides an abstract base class for completion provider clients.
It defines the capability interface every provider implements
(name, config validation, completion, image support) and the shared
retry/backoff policy.

This makes it easy to add new AI providers by implementing the abstract
methods and registering the class with the provider registry.

Classes:
    - BaseAIClient: Abstract base class for AI clients

Functions:
    - compute_backoff(): Backoff delay for a retry attempt, without jitter
    - backoff_with_jitter(): Backoff delay plus uniform jitter
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional

from AI.error_types import CompletionResult
from AI.messages import ChatMessage, CompletionOptions
from utils.config import ProviderConfig

log = logging.getLogger(__name__)

JITTER_RATIO = 0.1


def compute_backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    """
    Exponential backoff delay for a 0-indexed retry attempt.

    Args:
        attempt: Attempt index (0 for the first retry wait)
        base_delay: Base delay in seconds
        max_delay: Upper bound in seconds

    Returns:
        min(max_delay, base_delay * 2 ** attempt)
    """
    return min(max_delay, base_delay * (2 ** attempt))


def backoff_with_jitter(
    attempt: int,
    base_delay: float,
    max_delay: float,
    rng: Callable[[float, float], float] = random.uniform
) -> float:
    """Backoff delay plus a jitter drawn uniformly from [0, 0.1 * delay]."""
    delay = compute_backoff(attempt, base_delay, max_delay)
    return delay + rng(0, delay * JITTER_RATIO)


class BaseAIClient(ABC):
    """
    Abstract base class for completion provider clients.

    Clients are stateless per call: everything a request needs comes in
    through the messages, the options and the ProviderConfig.

    To add a new AI provider:
    1. Create a new class that inherits from BaseAIClient
    2. Set the provider_name class attribute
    3. Implement complete() (and validate_config() if it needs more than
       an API key and a base URL)
    4. Register it with AI.provider_registry.register_provider()
    """

    # Provider name (must be set by subclass)
    provider_name: str = None

    def __init__(self):
        """Initialize the base client."""
        if self.provider_name is None:
            raise NotImplementedError(
                f"{self.__class__.__name__} must define provider_name"
            )

    @property
    def name(self) -> str:
        return self.provider_name

    def supports_images(self) -> bool:
        """Whether the provider accepts image parts in user messages."""
        return False

    def validate_config(self, config: ProviderConfig) -> Optional[str]:
        """
        Check that the provider is usable with the given configuration.

        Args:
            config: Provider configuration

        Returns:
            None if ready to use, otherwise a description of the problem
        """
        if not config.api_key:
            return "LLM API key not configured"
        if not config.base_url:
            return "LLM base URL not configured"
        return None

    @abstractmethod
    async def complete(
        self,
        messages: List[ChatMessage],
        options: CompletionOptions,
        config: ProviderConfig
    ) -> CompletionResult:
        """
        Perform one chat completion, retries included.

        Args:
            messages: Ordered role-tagged messages, system message first
            options: Request options (model, max tokens, sampling)
            config: Provider configuration

        Returns:
            CompletionResult with the text or a classified error
        """

    async def retry_with_backoff(
        self,
        attempt_fn: Callable[[], Awaitable[CompletionResult]],
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0
    ) -> CompletionResult:
        """
        Run an attempt function until it succeeds, fails permanently or
        runs out of attempts.

        Only errors classified as retryable are retried. The backoff wait
        happens in the calling task before the next attempt.

        Args:
            attempt_fn: Async function performing one attempt
            max_retries: Maximum number of attempts
            base_delay: Base delay in seconds (doubles each retry)
            max_delay: Upper bound for a single wait in seconds

        Returns:
            The first successful or non-retryable result, or the last error
        """
        attempts = max(1, max_retries)
        result = None

        for attempt in range(attempts):
            log.debug(f"{self.provider_name} request attempt {attempt + 1}/{attempts}")
            result = await attempt_fn()

            if result.ok:
                return result

            error = result.error
            if not error.retryable:
                log.error(f"{self.provider_name} request failed (not retryable): {error.to_detailed_string()}")
                return result

            if attempt == attempts - 1:
                break

            delay = backoff_with_jitter(attempt, base_delay, max_delay)
            log.warning(
                f"{self.provider_name} request error (attempt {attempt + 1}/{attempts}), "
                f"retrying in {delay:.2f}s: {error.to_detailed_string()}"
            )
            await asyncio.sleep(delay)

        log.error(
            f"{self.provider_name} request failed after {attempts} attempts: "
            f"{result.error.to_detailed_string()}"
        )
        return result
