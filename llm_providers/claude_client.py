"""Client for the Anthropic Messages API."""

from __future__ import annotations

from typing import Any, Dict, List

from .base import BaseProviderClient, ChatOptions, ChatResult, ProviderError, payload_error_message


class ClaudeClient(BaseProviderClient):
    """Claude accepts only ``user`` and ``assistant`` turns and always needs a token cap."""

    display_name = "Claude"
    default_base_url = "https://api.anthropic.com/v1"
    supported_roles = ("user", "assistant")

    def _endpoint(self, *, stream: bool) -> str:
        return f"{self.base_url}/messages"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.settings.anthropic_version,
        }

    def _build_payload(
        self, messages: List[Dict[str, str]], options: ChatOptions, *, stream: bool
    ) -> Dict[str, Any]:
        max_tokens = self.resolve_max_tokens(options)
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens if max_tokens is not None else self.settings.claude_max_tokens,
            "temperature": self.resolve_temperature(options),
        }
        if stream:
            payload["stream"] = True
        return payload

    def _parse_response(self, data: Dict[str, Any]) -> ChatResult:
        blocks = data.get("content") or []
        text = "".join(
            str(block.get("text") or "") for block in blocks if block.get("type", "text") == "text"
        )
        if not text:
            return ChatResult(error="Claude returned an invalid response")
        return ChatResult(content=text)

    def _extract_stream_delta(self, payload: Dict[str, Any]) -> str:
        event_type = payload.get("type")
        if event_type == "error":
            detail = payload_error_message(payload) or "unknown error"
            raise ProviderError(f"Claude API error: {detail}", payload=payload)
        if event_type == "content_block_delta":
            return str((payload.get("delta") or {}).get("text") or "")
        return ""

    def _is_stream_end(self, payload: Dict[str, Any]) -> bool:
        return payload.get("type") == "message_stop"
