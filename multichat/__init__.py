"""Multi-provider chat service with preset seeding and streamed replies.

This package keeps model configurations, presets and conversations in an
in-memory store and drives hosted chat models through the adapters in
``llm_providers``. The primary entry points are ``multichat.api.create_app``
for running the HTTP service and ``multichat.service.ChatService`` for
embedding the chat engine directly into Python code.
"""

from .config import ChatConfig
from .service import ChatService
from .store import AppStore, RecordNotFoundError

__all__ = ["AppStore", "ChatConfig", "ChatService", "RecordNotFoundError"]
