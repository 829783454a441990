"""
Bot Configuration

Loads the bot configuration from config.yml and overlays CLAUDE_* environment
variables on top of it. The result is an immutable BotConfig object that is
passed explicitly to every component that needs it.

Classes:
    - ProviderConfig: LLM provider settings (model, endpoint, credentials, retry policy)
    - BotConfig: Complete bot configuration

Functions:
    - load_config(): Build a BotConfig from file + environment
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import yaml

log = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yml"

DEFAULT_SYSTEM_PROMPT = """<base_information>
The assistant is Claude, created by Anthropic.

Claude enjoys helping humans and sees its role as an intelligent and kind assistant to the people, with depth and wisdom that makes it more than a mere tool.

Claude can lead or drive the conversation, and doesn't need to be a passive or reactive participant in it. Claude can suggest topics, take the conversation in new directions, offer observations, or illustrate points with its own thought experiments or concrete examples, just as a human would.

Claude is now being connected with a server on Discord.
</base_information>

<personality>
You will attempt to talk like a regular person and write short messages. You do not need to use punctuation or markdown unless for emphasis or important.
You will refer to everyone by they/them and non-gendered nouns, unless you are told otherwise.
You will always refer to people by their nicknames if they have one, not by their username (unless they have no nickname).
Do not always start a message with the name of someone, regardless of whether or not they did.
you can stop a sentence early. don't oversell it.
</personality>
"""

# Environment variable -> (section, key)
ENV_VAR_MAPPINGS = {
    "CLAUDE_DISCORD_TOKEN": ("Discord", "token"),
    "CLAUDE_LLM_API_KEY": ("LLM", "api_key"),
    "CLAUDE_LLM_BASE_URL": ("LLM", "base_url"),
    "CLAUDE_MODEL": ("LLM", "model"),
    "CLAUDE_MAX_TOKENS": ("LLM", "max_tokens"),
    "CLAUDE_MAX_CONTEXT_MESSAGES": ("Bot", "max_context_messages"),
    "CLAUDE_RATE_LIMIT_MS": ("Bot", "rate_limit_ms"),
    "CLAUDE_SYSTEM_PROMPT": ("Bot", "system_prompt"),
}

INTEGER_ENV_VARS = {
    "CLAUDE_MAX_TOKENS",
    "CLAUDE_MAX_CONTEXT_MESSAGES",
    "CLAUDE_RATE_LIMIT_MS",
}


@dataclass(frozen=True)
class ProviderConfig:
    """
    Settings for the completion provider.

    Attributes:
        provider: Registered provider name (e.g. "openai")
        model: Model identifier sent with every request
        api_key: Credential sent as a bearer token
        base_url: Base endpoint; "/chat/completions" is appended
        max_tokens: Maximum output tokens
        temperature: Optional sampling temperature
        top_p: Optional nucleus sampling value
        presence_penalty: Optional presence penalty
        frequency_penalty: Optional frequency penalty
        max_retries: Total number of attempts per completion
        base_delay: Base backoff delay in seconds
        max_delay: Backoff ceiling in seconds
        timeout: HTTP timeout in seconds
    """
    provider: str = "openai"
    model: str = "claude-opus-4-5"
    api_key: str = ""
    base_url: str = "https://aihubmix.com/v1"
    max_tokens: int = 1024
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    timeout: float = 120.0


@dataclass(frozen=True)
class BotConfig:
    """Complete, immutable bot configuration."""
    discord_token: Optional[str] = None
    llm: ProviderConfig = field(default_factory=ProviderConfig)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    assistant_name: str = "Claude"
    max_context_messages: int = 50
    rate_limit_ms: int = 2000
    typing_interval: float = 5.0
    message_delay: float = 0.1
    debug_mode: bool = False
    log_file: Optional[str] = "app.log"
    # Filled in once the gateway connection reports our own identity
    bot_user_id: Optional[int] = None

    def with_bot_user_id(self, user_id: int) -> "BotConfig":
        """Return a copy of this config carrying the bot's own user ID."""
        return dataclasses.replace(self, bot_user_id=user_id)


def read_yaml(file_path: str) -> Dict[str, Any]:
    """
    Reads a YAML file without raising.

    Args:
        file_path: Path to the YAML file

    Returns:
        Dict[str, Any]: Parsed data, or an empty dict if missing/invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError) as e:
        log.error(f"Error reading config file '{file_path}': {e}")
        return {}

    return data if isinstance(data, dict) else {}


def _apply_env_overlay(data: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Overlay CLAUDE_* environment variables onto raw config sections."""
    merged = {section: dict(values or {}) for section, values in data.items()
              if isinstance(values, dict) or values is None}

    for env_var, (section, key) in ENV_VAR_MAPPINGS.items():
        raw = environ.get(env_var)
        if raw is None:
            continue

        value: Any = raw
        if env_var in INTEGER_ENV_VARS:
            try:
                value = int(raw)
            except ValueError:
                log.warning(f"Ignoring {env_var}: expected an integer, got {raw!r}")
                continue

        merged.setdefault(section, {})[key] = value

    return merged


def _pick(section: Dict[str, Any], cls, names) -> Dict[str, Any]:
    """Select the keys of a section that are fields of ``cls`` and not None."""
    valid = {f.name for f in dataclasses.fields(cls)}
    return {
        name: section[name]
        for name in names
        if name in valid and section.get(name) is not None
    }


def load_config(
    file_path: str = DEFAULT_CONFIG_FILE,
    environ: Optional[Mapping[str, str]] = None
) -> BotConfig:
    """
    Builds the bot configuration.

    Environment variables take priority over config.yml, which takes
    priority over the built-in defaults.

    Args:
        file_path: Path to the YAML config file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        BotConfig: Immutable configuration object
    """
    if environ is None:
        environ = os.environ

    data = _apply_env_overlay(read_yaml(file_path), environ)

    discord_section = data.get("Discord", {})
    llm_section = data.get("LLM", {})
    bot_section = data.get("Bot", {})
    options_section = data.get("Options", {})

    provider_config = ProviderConfig(
        **_pick(llm_section, ProviderConfig, llm_section.keys())
    )

    bot_kwargs = _pick(
        bot_section,
        BotConfig,
        ("system_prompt", "assistant_name", "max_context_messages", "rate_limit_ms",
         "typing_interval", "message_delay")
    )
    bot_kwargs.update(_pick(options_section, BotConfig, ("debug_mode", "log_file")))

    return BotConfig(
        discord_token=discord_section.get("token"),
        llm=provider_config,
        **bot_kwargs
    )
