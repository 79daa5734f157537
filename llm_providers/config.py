"""Configuration objects shared by the provider clients."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ProviderSettings:
    """Transport and sampling defaults applied to every provider call."""

    request_timeout: int = 180
    default_temperature: float = 0.7
    claude_max_tokens: int = 4096
    anthropic_version: str = "2023-06-01"
