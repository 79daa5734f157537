"""Client for the Google Gemini ``generateContent`` API."""

from __future__ import annotations

from typing import Any, Dict, List

from .base import BaseProviderClient, ChatOptions, ChatResult, ProviderError, payload_error_message

CONTINUE_PROMPT = "Continue"
ANSWER_PROMPT = "Please answer the above question."
SYSTEM_PREFIX = "[System instruction] "


def collapse_messages(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
    """Rewrite a generic conversation into turns Gemini accepts.

    Gemini only knows ``user`` and ``model`` and expects them to alternate,
    ending on a user turn. Requests of one or two messages are the priming
    calls made while seeding a conversation, and only the latest prompt is
    sent for those.
    """
    if len(messages) <= 2:
        for wanted in ("user", "system"):
            picked = [m for m in messages if (m.get("role") or "").lower() == wanted]
            if picked:
                return [{"role": "user", "content": picked[-1].get("content", "")}]
        if messages:
            return [{"role": "user", "content": messages[-1].get("content", "")}]
        return []

    result: List[Dict[str, str]] = []
    current_role = ""

    system_text = "\n\n".join(
        m.get("content", "") for m in messages if (m.get("role") or "").lower() == "system"
    )
    if system_text:
        result.append({"role": "user", "content": f"{SYSTEM_PREFIX}{system_text}"})
        current_role = "user"

    for msg in messages:
        role = (msg.get("role") or "").lower()
        if role == "system":
            continue
        turn_role = "model" if role == "assistant" else "user"
        if result and current_role == turn_role:
            result.append({"role": "model" if turn_role == "user" else "user", "content": CONTINUE_PROMPT})
        result.append({"role": turn_role, "content": msg.get("content", "")})
        current_role = turn_role

    if result and result[-1]["role"] != "user":
        result.append({"role": "user", "content": ANSWER_PROMPT})
    return result


class GeminiClient(BaseProviderClient):
    """Gemini via the public Generative Language REST API."""

    display_name = "Gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"
    supported_roles = ("user", "model")

    def prepare_messages(self, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        return collapse_messages(messages)

    def _endpoint(self, *, stream: bool) -> str:
        if stream:
            return f"{self.base_url}/models/{self.model}:streamGenerateContent?alt=sse"
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

    def _build_payload(
        self, messages: List[Dict[str, str]], options: ChatOptions, *, stream: bool
    ) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {"temperature": self.resolve_temperature(options)}
        max_tokens = self.resolve_max_tokens(options)
        if max_tokens is not None:
            generation_config["maxOutputTokens"] = max_tokens
        return {
            "contents": [{"role": m["role"], "parts": [{"text": m["content"]}]} for m in messages],
            "generationConfig": generation_config,
        }

    def _parse_response(self, data: Dict[str, Any]) -> ChatResult:
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            return ChatResult(error=f"Gemini content blocked: {block_reason}")
        text = self._candidate_text(data)
        if not text:
            return ChatResult(error="Gemini returned an invalid response")
        return ChatResult(content=text)

    def _extract_stream_delta(self, payload: Dict[str, Any]) -> str:
        if "error" in payload:
            raise ProviderError(f"Gemini API error: {payload_error_message(payload)}", payload=payload)
        block_reason = (payload.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise ProviderError(f"Gemini content blocked: {block_reason}")
        return self._candidate_text(payload)

    @staticmethod
    def _candidate_text(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(str(part.get("text") or "") for part in parts)
