"""High level orchestration for preset seeding and chat turns."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

import requests

from llm_providers import (
    BaseProviderClient,
    ChatOptions,
    ProviderError,
    ProviderSettings,
    StreamHandler,
    create_provider_client,
)
from llm_providers.base import payload_error_message

from .config import ChatConfig
from .models import Message, MessageRole, ModelConfig
from .store import AppStore
from .validation import get_model_error_help

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ModelConfig, ProviderSettings], BaseProviderClient]

_STATUS_MESSAGES = {
    400: "Invalid request parameters, the model configuration may be wrong",
    401: "API key is invalid or has expired, please update it",
    404: "Model not found or wrong API endpoint, check the model name and API settings",
    429: "API rate limit reached, please try again later",
}

# Expected provider failures, described with status-aware text.
_TURN_ERRORS = (ValueError, ProviderError, requests.RequestException)


def describe_failure(exc: BaseException) -> str:
    """Turn a failed provider call into status-aware text for the user."""
    status_code = getattr(exc, "status_code", None)
    if not status_code:
        return str(exc) or "unknown error"

    if status_code in _STATUS_MESSAGES:
        detail = _STATUS_MESSAGES[status_code]
    elif status_code >= 500:
        detail = "Server error, please try again later"
    else:
        detail = f"Request failed ({status_code})"

    vendor_message = payload_error_message(getattr(exc, "payload", None))
    return f"{detail}: {vendor_message}" if vendor_message else detail


def explain_model_error(model: ModelConfig, text: str) -> str:
    """Append configuration help when the provider says the model does not exist."""
    lowered = text.lower()
    if "model" not in lowered or "not exist" not in lowered:
        return text
    help_text = get_model_error_help(model.type, "model_not_exist")
    if not help_text:
        return f"{text}\nCheck that the model name \"{model.model}\" is correct in the model settings."
    return f"{text}\n{help_text.rstrip()}"


def _preview(text: str, limit: int = 50) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


class ChatService:
    """Core chat engine used by both the API and direct Python consumers."""

    def __init__(
        self,
        store: AppStore,
        config: Optional[ChatConfig] = None,
        *,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.store = store
        self.config = config or ChatConfig()
        self.client_factory = client_factory or create_provider_client

    def initialize_with_preset(self, conversation_id: str, preset_id: Optional[str] = None) -> None:
        """Send the preset's armoring and system prompts as the first user turns.

        Each prompt waits for its reply before the next one is sent. Blank
        prompts are skipped; a conversation without a preset is left alone.
        """
        conversation = self.store.get_conversation(conversation_id)
        preset_id = preset_id or conversation.preset_id
        if not preset_id:
            return

        preset = self.store.get_preset(preset_id)
        model = self.store.get_model(conversation.model_id)
        try:
            if preset.armoring_prompt.strip():
                logger.info(
                    "Sending armoring prompt for conversation %s: %s",
                    conversation_id,
                    _preview(preset.armoring_prompt),
                )
                self.store.add_message(conversation_id, MessageRole.USER, preset.armoring_prompt)
                if not model.api_key.strip():
                    self._add_error(conversation_id, self.config.missing_key_message)
                    return
                self._send_and_wait(conversation_id, model)

            if preset.system_prompt.strip():
                logger.info(
                    "Sending system prompt for conversation %s: %s",
                    conversation_id,
                    _preview(preset.system_prompt),
                )
                self.store.add_message(conversation_id, MessageRole.USER, preset.system_prompt)
                self._send_and_wait(conversation_id, model)
        except Exception as exc:
            logger.exception("Preset initialisation failed for conversation %s", conversation_id)
            self.store.add_message(
                conversation_id,
                MessageRole.ASSISTANT,
                f"{self.config.init_failure_prefix}{exc or 'unknown error'}",
            )
            return
        logger.info("Conversation %s seeded with preset %s", conversation_id, preset.name)

    def send_message(self, conversation_id: str, content: str) -> Message:
        """Append a user turn, send the whole history and append the reply."""
        model = self._prepare_turn(conversation_id, content)
        if model is None:
            return self._add_error(conversation_id, self.config.missing_key_message)

        self.store.add_message(conversation_id, MessageRole.USER, content)
        return self._send_and_wait(conversation_id, model)

    def stream_message(
        self,
        conversation_id: str,
        content: str,
        on_stream: Optional[StreamHandler] = None,
    ) -> Iterable[str]:
        """Stream the assistant reply while growing the last stored message.

        ``on_stream`` receives the cumulative text with ``False`` after every
        delta and once with ``True`` when the reply is complete.
        """
        model = self._prepare_turn(conversation_id, content)
        if model is None:
            error_message = self._add_error(conversation_id, self.config.missing_key_message)

            def error_generator() -> Iterable[str]:
                if on_stream:
                    on_stream(error_message.content, True)
                yield error_message.content

            return error_generator()

        self.store.add_message(conversation_id, MessageRole.USER, content)
        history = self.store.get_conversation(conversation_id).api_messages()
        self.store.add_message(conversation_id, MessageRole.ASSISTANT, "")
        logger.info(
            "Streaming chat for conversation %s to %s/%s (%d message(s))",
            conversation_id,
            model.type.value,
            model.model,
            len(history),
        )

        def generator() -> Iterable[str]:
            reply = ""
            try:
                client = self.client_factory(model, self.config.provider)
                for token in client.iter_stream(ChatOptions(messages=history)):
                    reply += token
                    self.store.update_last_message(conversation_id, reply)
                    if on_stream:
                        on_stream(reply, False)
                    yield token
            except Exception as exc:
                if isinstance(exc, _TURN_ERRORS):
                    logger.error("Streaming failed for conversation %s: %s", conversation_id, exc)
                    text = explain_model_error(model, describe_failure(exc))
                else:
                    logger.exception("Streaming failed unexpectedly for conversation %s", conversation_id)
                    text = str(exc) or "unknown error"
                reply = f"{self.config.error_prefix}{text}"
                self.store.update_last_message(conversation_id, reply)
                if on_stream:
                    on_stream(reply, True)
                yield reply
                return

            logger.info("Stream for conversation %s complete (%d chars)", conversation_id, len(reply))
            if on_stream:
                on_stream(reply, True)

        return generator()

    def _prepare_turn(self, conversation_id: str, content: str) -> Optional[ModelConfig]:
        """Validate a new turn; return ``None`` when the model has no API key."""
        if not content or not content.strip():
            raise ValueError("message is required")
        conversation = self.store.get_conversation(conversation_id)
        model = self.store.get_model(conversation.model_id)
        if not model.api_key.strip():
            return None
        return model

    def _send_and_wait(self, conversation_id: str, model: ModelConfig) -> Message:
        history = self.store.get_conversation(conversation_id).api_messages()
        logger.info(
            "Sending chat request for conversation %s to %s/%s (%d message(s))",
            conversation_id,
            model.type.value,
            model.model,
            len(history),
        )
        try:
            client = self.client_factory(model, self.config.provider)
            result = client.send_message(ChatOptions(messages=history))
        except _TURN_ERRORS as exc:
            logger.error("Chat request failed for conversation %s: %s", conversation_id, exc)
            return self._add_error(conversation_id, explain_model_error(model, describe_failure(exc)))
        except Exception as exc:
            logger.exception("Chat request failed unexpectedly for conversation %s", conversation_id)
            return self._add_error(conversation_id, str(exc) or "unknown error")

        if result.error:
            logger.error("Provider returned an error for conversation %s: %s", conversation_id, result.error)
            return self._add_error(conversation_id, explain_model_error(model, result.error))

        logger.info("Received reply for conversation %s (%d chars)", conversation_id, len(result.content))
        return self.store.add_message(conversation_id, MessageRole.ASSISTANT, result.content)

    def _add_error(self, conversation_id: str, text: str) -> Message:
        return self.store.add_message(
            conversation_id, MessageRole.ASSISTANT, f"{self.config.error_prefix}{text}"
        )
