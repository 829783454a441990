"""
Chat Message Types

Role-tagged messages and request options for chat completion providers.
A message's content is either a plain string or an ordered list of typed
parts (text and image references).

Classes:
    - Role: Message role (system, user, assistant)
    - TextPart / ImagePart: Typed content parts
    - ChatMessage: A single role-tagged message
    - CompletionOptions: Per-request options (model, max tokens, sampling)

Functions:
    - system_message(), user_message(), user_message_with_image(), assistant_message()
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_payload(self) -> Dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImagePart:
    """An image referenced by URL; the bytes are never inlined."""
    url: str

    def to_payload(self) -> Dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": self.url}}


ContentPart = Union[TextPart, ImagePart]
Content = Union[str, Sequence[ContentPart]]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: Content

    def to_payload(self) -> Dict[str, Any]:
        """
        Serialize the message for an OpenAI-style request body.

        Returns:
            Dict with lowercase role and either a string or a list of part objects
        """
        if isinstance(self.content, str):
            content: Any = self.content
        else:
            content = [part.to_payload() for part in self.content]

        return {"role": Role(self.role).value, "content": content}

    @property
    def has_images(self) -> bool:
        if isinstance(self.content, str):
            return False
        return any(isinstance(part, ImagePart) for part in self.content)


@dataclass(frozen=True)
class CompletionOptions:
    """
    Options sent alongside the messages.

    Sampling parameters left as None are omitted from the request body.
    ``max_retries`` is not sent; it overrides the provider's retry ceiling.
    """
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    max_retries: Optional[int] = None

    SAMPLING_FIELDS = ("temperature", "top_p", "presence_penalty", "frequency_penalty")

    def merged_with(self, defaults: "CompletionOptions") -> "CompletionOptions":
        """Fill every unset field from ``defaults``."""
        values = {}
        for f in fields(self):
            value = getattr(self, f.name)
            values[f.name] = value if value is not None else getattr(defaults, f.name)
        return CompletionOptions(**values)

    def sampling_params(self) -> Dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in self.SAMPLING_FIELDS
            if getattr(self, name) is not None
        }


def system_message(content: str) -> ChatMessage:
    """Builds a system message."""
    return ChatMessage(Role.SYSTEM, content)


def user_message(content: str) -> ChatMessage:
    """Builds a user message."""
    return ChatMessage(Role.USER, content)


def user_message_with_image(text: str, image_url: str) -> ChatMessage:
    """Builds a user message carrying text followed by one image reference."""
    return ChatMessage(Role.USER, [TextPart(text), ImagePart(image_url)])


def assistant_message(content: str) -> ChatMessage:
    """Builds an assistant message."""
    return ChatMessage(Role.ASSISTANT, content)


def has_single_leading_system(messages: List[ChatMessage]) -> bool:
    """True when exactly one system message exists and it is the first one."""
    system_positions = [i for i, msg in enumerate(messages) if msg.role == Role.SYSTEM]
    return system_positions == [0]
