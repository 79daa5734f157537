"""Shared contract for the hosted chat-completion provider clients.

Every vendor client maps the generic ``{messages, temperature, max_tokens}``
request onto its own wire schema and maps the reply, or the token stream,
back into plain text. Non-streaming calls never raise for transport or HTTP
failures; they return a :class:`ChatResult` carrying a user-facing error
string instead. Streaming calls raise :class:`ProviderError`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import requests

from .config import ProviderSettings
from .sse import iter_event_data

logger = logging.getLogger(__name__)

StreamHandler = Callable[[str, bool], None]

_STATUS_HINTS = {
    401: "API key is invalid or has expired",
    404: "model does not exist or the API endpoint is wrong",
    429: "rate limit reached, please try again later",
}

# Raised when a 200 body does not have the documented shape.
_SHAPE_ERRORS = (TypeError, AttributeError, KeyError, IndexError)


class ModelType(str, Enum):
    """Supported provider families."""

    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    GEMINI = "gemini"
    CLAUDE = "claude"


@dataclass
class ChatOptions:
    """Generic chat request handed to a provider client."""

    messages: List[Dict[str, str]]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class ChatResult:
    """Full response text, or an error string when the call failed."""

    content: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProviderError(RuntimeError):
    """Raised when a provider call fails at the HTTP or payload level."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


def payload_error_message(payload: Any) -> Optional[str]:
    """Pull the vendor's own error text out of a decoded error body."""
    if isinstance(payload, list) and payload and isinstance(payload[0], dict):
        payload = payload[0]
    if not isinstance(payload, dict):
        return None

    error = payload.get("error")
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    message = payload.get("message")
    if isinstance(message, str) and message:
        return message
    return None


class BaseProviderClient(ABC):
    """Base class for a single vendor's chat-completion endpoint."""

    display_name = "Provider"
    default_base_url = ""
    supported_roles: Sequence[str] = ("system", "user", "assistant")

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        settings: Optional[ProviderSettings] = None,
    ) -> None:
        self.api_key = api_key or ""
        self.model = model or ""
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.settings = settings or ProviderSettings()

    @classmethod
    def from_model_config(cls, config: Any, settings: Optional[ProviderSettings] = None) -> "BaseProviderClient":
        """Build a client from any object exposing the model-config fields."""
        return cls(
            config.api_key,
            config.model,
            base_url=config.base_url or None,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            settings=settings,
        )

    # ----- public API -----

    def send_message(self, options: ChatOptions) -> ChatResult:
        """Return the complete reply, mapping failures into ``ChatResult.error``."""
        try:
            self._check_ready()
            messages = self.prepare_messages(options.messages)
            logger.info("%s request (%s): %d message(s)", self.display_name, self.model, len(messages))
            response = self._post(
                self._endpoint(stream=False),
                self._build_payload(messages, options, stream=False),
            )
            try:
                data = response.json()
            except ValueError as exc:
                raise ProviderError(f"{self.display_name} returned a non-JSON response") from exc
            try:
                return self._parse_response(data)
            except _SHAPE_ERRORS as exc:
                raise ProviderError(f"{self.display_name} returned an invalid response") from exc
        except (ProviderError, requests.RequestException) as exc:
            logger.error("%s API call failed: %s", self.display_name, exc)
            return ChatResult(error=self.describe_error(exc))

    def iter_stream(self, options: ChatOptions) -> Iterator[str]:
        """Yield incremental text deltas from the provider's streaming endpoint."""
        self._check_ready()
        messages = self.prepare_messages(options.messages)
        logger.info(
            "%s streaming request (%s): %d message(s)", self.display_name, self.model, len(messages)
        )
        response = self._post(
            self._endpoint(stream=True),
            self._build_payload(messages, options, stream=True),
            stream=True,
        )
        try:
            for payload in iter_event_data(response.iter_lines()):
                try:
                    delta = self._extract_stream_delta(payload)
                except _SHAPE_ERRORS as exc:
                    raise ProviderError(f"{self.display_name} returned an invalid stream event") from exc
                if delta:
                    yield delta
                if self._is_stream_end(payload):
                    break
        finally:
            response.close()

    def send_message_stream(self, options: ChatOptions, on_stream: StreamHandler) -> str:
        """Drive :meth:`iter_stream`, reporting cumulative text to ``on_stream``.

        The handler receives ``(text, False)`` for every delta and
        ``(text, True)`` exactly once at the end. On failure it receives
        ``("", True)`` and the exception propagates.
        """
        full_content = ""
        try:
            for delta in self.iter_stream(options):
                full_content += delta
                on_stream(full_content, False)
        except Exception as exc:
            logger.error("%s streaming call failed: %s", self.display_name, exc)
            on_stream("", True)
            raise
        on_stream(full_content, True)
        return full_content

    def describe_error(self, exc: BaseException) -> str:
        """Turn a failure into the text shown to the user."""
        status_code: Optional[int] = None
        if isinstance(exc, ProviderError):
            detail = payload_error_message(exc.payload)
            if detail:
                return detail
            status_code = exc.status_code
        elif isinstance(exc, requests.RequestException) and exc.response is not None:
            status_code = exc.response.status_code

        hint = _STATUS_HINTS.get(status_code) if status_code else None
        if hint:
            return f"{self.display_name} {hint} (HTTP {status_code})"
        if isinstance(exc, ProviderError):
            return str(exc)
        return f"{self.display_name} {exc or 'unknown error'}"

    # ----- request shaping -----

    @staticmethod
    def normalize_role(role: str, supported_roles: Sequence[str]) -> str:
        """Lower-case ``role`` and fall back to ``user`` when unsupported."""
        normalized = (role or "").lower()
        return normalized if normalized in supported_roles else "user"

    def prepare_messages(self, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        return [
            {
                "role": self.normalize_role(msg.get("role", "user"), self.supported_roles),
                "content": msg.get("content", ""),
            }
            for msg in messages
        ]

    def resolve_temperature(self, options: ChatOptions) -> float:
        if options.temperature is not None:
            return options.temperature
        if self.temperature is not None:
            return self.temperature
        return self.settings.default_temperature

    def resolve_max_tokens(self, options: ChatOptions) -> Optional[int]:
        if options.max_tokens is not None:
            return options.max_tokens
        return self.max_tokens

    def _check_ready(self) -> None:
        if not self.api_key.strip():
            raise ProviderError(f"{self.display_name} API key is not configured")
        if not self.model.strip():
            raise ProviderError(f"No {self.display_name} model name specified")

    def _post(self, url: str, payload: Dict[str, Any], *, stream: bool = False) -> requests.Response:
        response = requests.post(
            url,
            json=payload,
            headers=self._headers(),
            stream=stream,
            timeout=self.settings.request_timeout,
        )
        if response.status_code >= 400:
            self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: requests.Response) -> None:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        finally:
            response.close()

        if isinstance(payload, list) and payload and isinstance(payload[0], dict):
            payload = payload[0]
        if not isinstance(payload, dict):
            payload = {}
        detail = payload_error_message(payload) or f"HTTP error, status {response.status_code}"
        raise ProviderError(
            f"{self.display_name} API error: {detail}",
            status_code=response.status_code,
            payload=payload,
        )

    def _is_stream_end(self, payload: Dict[str, Any]) -> bool:
        return False

    @abstractmethod
    def _endpoint(self, *, stream: bool) -> str:
        """Return the request URL."""

    @abstractmethod
    def _headers(self) -> Dict[str, str]:
        """Return authentication and content headers."""

    @abstractmethod
    def _build_payload(
        self, messages: List[Dict[str, str]], options: ChatOptions, *, stream: bool
    ) -> Dict[str, Any]:
        """Map prepared messages onto the vendor's request body."""

    @abstractmethod
    def _parse_response(self, data: Dict[str, Any]) -> ChatResult:
        """Map a non-streaming response body onto a :class:`ChatResult`."""

    @abstractmethod
    def _extract_stream_delta(self, payload: Dict[str, Any]) -> str:
        """Return the text carried by one streamed event, or ``""``."""
