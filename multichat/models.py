"""Records for model configurations, presets and conversations."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from llm_providers import ModelType


def new_id() -> str:
    return uuid.uuid4().hex


def now_ms() -> int:
    return int(time.time() * 1000)


def mask_api_key(api_key: str) -> str:
    """Keep just enough of a key to recognise it."""
    if not api_key:
        return ""
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:3]}...{api_key[-4:]}"


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    role: MessageRole
    content: str
    id: str = field(default_factory=new_id)
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }


@dataclass
class ModelConfig:
    """Credentials and sampling defaults for one hosted model."""

    name: str
    type: ModelType
    api_key: str
    model: str
    base_url: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    enabled: bool = True
    id: str = field(default_factory=new_id)

    def public_dict(self) -> Dict[str, Any]:
        """Serialisable view with the API key masked."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "api_key": mask_api_key(self.api_key),
            "base_url": self.base_url,
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "enabled": self.enabled,
        }


@dataclass
class Preset:
    """Two scripted prompts sent as the first user turns of a conversation."""

    name: str
    armoring_prompt: str = ""
    system_prompt: str = ""
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "armoring_prompt": self.armoring_prompt,
            "system_prompt": self.system_prompt,
        }


@dataclass
class Conversation:
    title: str
    model_id: str
    preset_id: Optional[str] = None
    messages: List[Message] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)

    def api_messages(self) -> List[Dict[str, str]]:
        """History in the generic ``{role, content}`` shape the providers take."""
        return [{"role": msg.role.value, "content": msg.content} for msg in self.messages]

    def to_dict(self, include_messages: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "model_id": self.model_id,
            "preset_id": self.preset_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "message_count": len(self.messages),
        }
        if include_messages:
            payload["messages"] = [msg.to_dict() for msg in self.messages]
        return payload
