"""Configuration objects for the chat service."""

from __future__ import annotations

from dataclasses import dataclass, field

from llm_providers import ProviderSettings


@dataclass
class ChatConfig:
    """Runtime controls for chat behaviour."""

    provider: ProviderSettings = field(default_factory=ProviderSettings)
    stream_by_default: bool = True
    error_prefix: str = "Error: "
    missing_key_message: str = "The model API key is not configured. Add a valid key in the model settings."
    init_failure_prefix: str = "Failed to initialize conversation: "
