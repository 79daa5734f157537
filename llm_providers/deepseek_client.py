"""Client for the DeepSeek chat API."""

from __future__ import annotations

from typing import Dict, List

from .openai_client import OpenAIClient

ANSWER_PROMPT = "Please answer the above question."


class DeepSeekClient(OpenAIClient):
    """DeepSeek speaks the OpenAI wire format but wants a user turn last."""

    display_name = "DeepSeek"
    default_base_url = "https://api.deepseek.com/v1"

    def prepare_messages(self, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        prepared = super().prepare_messages(messages)
        if prepared and prepared[-1]["role"] != "user":
            prepared.append({"role": "user", "content": ANSWER_PROMPT})
        return prepared
