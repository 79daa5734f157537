"""Shared fixtures: a scripted stand-in for ``requests.post``."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Union

import pytest


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        lines: Optional[Iterable[Union[str, bytes]]] = None,
    ) -> None:
        self.status_code = status_code
        self._json = json_data
        self._lines = list(lines or [])
        self.closed = False

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def iter_lines(self):
        for line in self._lines:
            yield line if isinstance(line, bytes) else line.encode("utf-8")

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    """Records outgoing calls and replays queued responses in order."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.responses: List[Any] = []

    def respond(self, status_code: int = 200, json_data: Any = None, lines: Optional[Iterable[str]] = None) -> FakeResponse:
        response = FakeResponse(status_code, json_data, lines)
        self.responses.append(response)
        return response

    def fail_with(self, exc: BaseException) -> None:
        self.responses.append(exc)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def last_call(self) -> Dict[str, Any]:
        return self.calls[-1]


def sse(*payloads: Dict[str, Any], done: bool = False) -> List[str]:
    lines = []
    for payload in payloads:
        lines.append(f"data: {json.dumps(payload)}")
        lines.append("")
    if done:
        lines.append("data: [DONE]")
    return lines


@pytest.fixture
def http(monkeypatch: pytest.MonkeyPatch) -> FakeTransport:
    transport = FakeTransport()
    monkeypatch.setattr("llm_providers.base.requests.post", transport.post)
    return transport


@pytest.fixture
def sse_lines():
    return sse
