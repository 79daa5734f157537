"""In-memory application state for models, presets and conversations.

Every operation takes the store lock for its whole duration, so each one is
atomic. Reads hand back copies; records only change through store methods.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Dict, Iterable, List, Optional, TypeVar, Union

from llm_providers import ModelType

from .models import Conversation, Message, MessageRole, ModelConfig, Preset, now_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONVERSATION_FIELDS = frozenset({"title", "model_id", "preset_id"})
_MODEL_FIELDS = frozenset(
    {"name", "type", "api_key", "base_url", "model", "temperature", "max_tokens", "enabled"}
)
_PRESET_FIELDS = frozenset({"name", "armoring_prompt", "system_prompt"})


class RecordNotFoundError(LookupError):
    """Raised when an id does not match any stored record."""


class AppStore:
    """Holds every record for the lifetime of the process."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._conversations: Dict[str, Conversation] = {}
        self._models: Dict[str, ModelConfig] = {}
        self._presets: Dict[str, Preset] = {}

    # ----- conversations -----

    def create_conversation(self, title: str, model_id: str, preset_id: Optional[str] = None) -> Conversation:
        conversation = Conversation(title=title, model_id=model_id, preset_id=preset_id)
        with self._lock:
            self._conversations[conversation.id] = conversation
            logger.info("Created conversation %s (model=%s, preset=%s)", conversation.id, model_id, preset_id)
            return copy.deepcopy(conversation)

    def get_conversation(self, conversation_id: str) -> Conversation:
        with self._lock:
            return copy.deepcopy(self._require(self._conversations, conversation_id, "conversation"))

    def list_conversations(self) -> List[Conversation]:
        """Return conversations, most recently updated first."""
        with self._lock:
            ordered = sorted(self._conversations.values(), key=lambda conv: conv.updated_at, reverse=True)
            return copy.deepcopy(ordered)

    def update_conversation(self, conversation_id: str, **changes: object) -> Conversation:
        with self._lock:
            conversation = self._require(self._conversations, conversation_id, "conversation")
            self._apply(conversation, changes, _CONVERSATION_FIELDS)
            conversation.updated_at = now_ms()
            return copy.deepcopy(conversation)

    def delete_conversation(self, conversation_id: str) -> None:
        with self._lock:
            self._require(self._conversations, conversation_id, "conversation")
            del self._conversations[conversation_id]
            logger.info("Deleted conversation %s", conversation_id)

    def delete_conversations(self, conversation_ids: Iterable[str]) -> int:
        """Delete every listed conversation that exists; return how many went."""
        with self._lock:
            removed = 0
            for conversation_id in set(conversation_ids):
                if self._conversations.pop(conversation_id, None) is not None:
                    removed += 1
            logger.info("Deleted %d conversation(s) in batch", removed)
            return removed

    # ----- messages -----

    def add_message(self, conversation_id: str, role: Union[MessageRole, str], content: str) -> Message:
        message = Message(role=MessageRole(role), content=content)
        with self._lock:
            conversation = self._require(self._conversations, conversation_id, "conversation")
            conversation.messages.append(message)
            conversation.updated_at = now_ms()
            return copy.deepcopy(message)

    def update_last_message(self, conversation_id: str, content: str) -> Message:
        """Rewrite the content of the newest message, as a stream grows it."""
        with self._lock:
            conversation = self._require(self._conversations, conversation_id, "conversation")
            if not conversation.messages:
                raise ValueError(f"Conversation '{conversation_id}' has no messages")
            message = conversation.messages[-1]
            message.content = content
            conversation.updated_at = now_ms()
            return copy.deepcopy(message)

    # ----- model configurations -----

    def add_model(self, model: ModelConfig) -> ModelConfig:
        with self._lock:
            self._models[model.id] = copy.deepcopy(model)
            logger.info("Added model config %s (%s/%s)", model.id, model.type.value, model.model)
            return copy.deepcopy(model)

    def get_model(self, model_id: str) -> ModelConfig:
        with self._lock:
            return copy.deepcopy(self._require(self._models, model_id, "model"))

    def list_models(self) -> List[ModelConfig]:
        with self._lock:
            return copy.deepcopy(list(self._models.values()))

    def update_model(self, model_id: str, **changes: object) -> ModelConfig:
        with self._lock:
            model = self._require(self._models, model_id, "model")
            if "type" in changes:
                changes["type"] = ModelType(changes["type"])
            self._apply(model, changes, _MODEL_FIELDS)
            return copy.deepcopy(model)

    def delete_model(self, model_id: str) -> None:
        with self._lock:
            self._require(self._models, model_id, "model")
            del self._models[model_id]
            logger.info("Deleted model config %s", model_id)

    # ----- presets -----

    def add_preset(self, preset: Preset) -> Preset:
        with self._lock:
            self._presets[preset.id] = copy.deepcopy(preset)
            return copy.deepcopy(preset)

    def get_preset(self, preset_id: str) -> Preset:
        with self._lock:
            return copy.deepcopy(self._require(self._presets, preset_id, "preset"))

    def list_presets(self) -> List[Preset]:
        with self._lock:
            return copy.deepcopy(list(self._presets.values()))

    def update_preset(self, preset_id: str, **changes: object) -> Preset:
        with self._lock:
            preset = self._require(self._presets, preset_id, "preset")
            self._apply(preset, changes, _PRESET_FIELDS)
            return copy.deepcopy(preset)

    def delete_preset(self, preset_id: str) -> None:
        """Delete a preset and detach it from conversations that used it."""
        with self._lock:
            self._require(self._presets, preset_id, "preset")
            del self._presets[preset_id]
            for conversation in self._conversations.values():
                if conversation.preset_id == preset_id:
                    conversation.preset_id = None
            logger.info("Deleted preset %s", preset_id)

    # ----- helpers -----

    @staticmethod
    def _require(records: Dict[str, T], record_id: str, kind: str) -> T:
        record = records.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"No {kind} found for id '{record_id}'")
        return record

    @staticmethod
    def _apply(record: object, changes: Dict[str, object], allowed: frozenset) -> None:
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            setattr(record, name, value)
