"""
Provider Registry - AI Provider Registration System

This module provides a centralized registry for all completion providers.
Allows adding new providers without modifying existing code.

Classes:
    - ProviderMetadata: Metadata for a provider
    - ProviderRegistry: Centralized provider registry

Functions:
    - register_provider(): Registers a new provider
    - get_registry(): Gets the global registry instance
"""

from typing import Dict, Any, Type, List
import logging

log = logging.getLogger(__name__)


class ProviderMetadata:
    """
    Metadata for an AI provider.

    Stores display and capability information for a provider.
    """

    def __init__(
        self,
        name: str,
        display_name: str,
        supports_images: bool = False
    ):
        """
        Initializes the provider metadata.

        Args:
            name: Internal provider name (lowercase)
            display_name: Display name
            supports_images: Whether it accepts image parts
        """
        self.name = name.lower()
        self.display_name = display_name
        self.supports_images = supports_images

    def __repr__(self) -> str:
        return f"ProviderMetadata(name='{self.name}', display_name='{self.display_name}')"


class ProviderRegistry:
    """
    Centralized AI provider registry.

    Allows providers to register automatically and provides
    unified access to clients and metadata.

    Example:
        >>> registry = get_registry()
        >>> client = registry.get_client("openai")
        >>> metadata = registry.get_metadata("openai")
        >>> print(metadata.display_name)  # "OpenAI-compatible"
    """

    def __init__(self):
        """Initializes empty registry."""
        self._providers: Dict[str, Dict[str, Any]] = {}
        self._instances: Dict[str, Any] = {}

    def register(
        self,
        name: str,
        client_class: Type,
        metadata: ProviderMetadata
    ) -> None:
        """
        Registers a new provider.

        Args:
            name: Provider name (e.g., "openai")
            client_class: Client class (e.g., OpenAIClient)
            metadata: Provider metadata
        """
        name_lower = name.lower()

        if name_lower in self._providers:
            log.warning(f"Provider '{name}' already registered, overwriting")
            self._instances.pop(name_lower, None)

        self._providers[name_lower] = {
            'client_class': client_class,
            'metadata': metadata
        }

        log.debug(f"Registered provider: {metadata.display_name} ({name_lower})")

    def _require(self, name: str) -> str:
        name_lower = name.lower()
        if name_lower not in self._providers:
            available = ', '.join(self._providers.keys())
            raise ValueError(
                f"Provider '{name}' not registered. "
                f"Available providers: {available}"
            )
        return name_lower

    def get_client(self, name: str):
        """
        Gets a client instance for the provider.

        Uses instance cache (singleton per provider). Clients are stateless
        per call, so one instance can serve every request.

        Args:
            name: Provider name

        Returns:
            Client instance

        Raises:
            ValueError: If the provider is not registered
        """
        name_lower = self._require(name)

        if name_lower not in self._instances:
            client_class = self._providers[name_lower]['client_class']
            self._instances[name_lower] = client_class()
            log.debug(f"Created new instance for provider: {name_lower}")

        return self._instances[name_lower]

    def get_metadata(self, name: str) -> ProviderMetadata:
        """
        Gets the metadata for a provider.

        Raises:
            ValueError: If the provider is not registered
        """
        return self._providers[self._require(name)]['metadata']

    def list_providers(self) -> List[str]:
        """Lists all registered provider names (lowercase)."""
        return list(self._providers.keys())

    def is_registered(self, name: str) -> bool:
        return name.lower() in self._providers


_registry = ProviderRegistry()


def register_provider(
    name: str,
    client_class: Type,
    display_name: str,
    supports_images: bool = False
) -> None:
    """
    Convenience function to register a provider.

    This is the main function that clients should use to register.

    Args:
        name: Provider name (e.g., "openai")
        client_class: Client class
        display_name: Display name (e.g., "OpenAI-compatible")
        supports_images: Whether it accepts image parts
    """
    metadata = ProviderMetadata(
        name=name,
        display_name=display_name,
        supports_images=supports_images
    )

    _registry.register(name, client_class, metadata)


def get_registry() -> ProviderRegistry:
    """Gets the global registry instance."""
    return _registry
