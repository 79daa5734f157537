"""Client for OpenAI-compatible chat-completions endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from .base import BaseProviderClient, ChatOptions, ChatResult


class OpenAIClient(BaseProviderClient):
    """OpenAI ``/chat/completions`` with bearer authentication."""

    display_name = "OpenAI"
    default_base_url = "https://api.openai.com/v1"
    supported_roles = ("system", "user", "assistant")

    def _endpoint(self, *, stream: bool) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _build_payload(
        self, messages: List[Dict[str, str]], options: ChatOptions, *, stream: bool
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.resolve_temperature(options),
        }
        max_tokens = self.resolve_max_tokens(options)
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if stream:
            payload["stream"] = True
        return payload

    def _parse_response(self, data: Dict[str, Any]) -> ChatResult:
        choices = data.get("choices") or []
        if not choices:
            return ChatResult(error=f"{self.display_name} returned an empty response")
        message = choices[0].get("message") or {}
        return ChatResult(content=message.get("content") or "")

    def _extract_stream_delta(self, payload: Dict[str, Any]) -> str:
        choices = payload.get("choices") or []
        if not choices:
            return ""
        delta = choices[0].get("delta") or {}
        return str(delta.get("content") or "")
