"""Adapters that put hosted chat-completion APIs behind one call contract."""

from .base import (
    BaseProviderClient,
    ChatOptions,
    ChatResult,
    ModelType,
    ProviderError,
    StreamHandler,
)
from .claude_client import ClaudeClient
from .config import ProviderSettings
from .deepseek_client import DeepSeekClient
from .factory import ProviderFactory, create_provider_client
from .gemini_client import GeminiClient
from .openai_client import OpenAIClient

ProviderFactory.register(ModelType.OPENAI, OpenAIClient)
ProviderFactory.register(ModelType.DEEPSEEK, DeepSeekClient)
ProviderFactory.register(ModelType.GEMINI, GeminiClient)
ProviderFactory.register(ModelType.CLAUDE, ClaudeClient)

__all__ = [
    "BaseProviderClient",
    "ChatOptions",
    "ChatResult",
    "ClaudeClient",
    "DeepSeekClient",
    "GeminiClient",
    "ModelType",
    "OpenAIClient",
    "ProviderError",
    "ProviderFactory",
    "ProviderSettings",
    "StreamHandler",
    "create_provider_client",
]
