"""
Messaging System - Message Pipeline

This module turns incoming Discord messages into AI replies.

Components:
- MessageIntake: Validates and filters incoming messages
- RateLimiter: Per-user throttling that never blocks other users
- ContextBuilder: Builds and renders the conversation context
- MessagePipeline: Main orchestrator

Usage:
    from messaging import MessagePipeline

    pipeline = MessagePipeline(config, chat_service)
    await pipeline.handle_message(discord_message)
"""

from messaging.context import TRUNCATION_SENTINEL, ContextBuilder
from messaging.intake import MessageIntake
from messaging.pipeline import MessagePipeline, PipelineState
from messaging.rate_limiter import RateDecision, RateLimiter

__all__ = [
    'ContextBuilder',
    'MessageIntake',
    'MessagePipeline',
    'PipelineState',
    'RateDecision',
    'RateLimiter',
    'TRUNCATION_SENTINEL',
]
