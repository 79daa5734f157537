"""Tests for preset seeding and chat turn orchestration."""

from __future__ import annotations

from typing import Dict, List

import pytest

from llm_providers import ChatOptions, ChatResult, ModelType, ProviderError
from multichat.models import MessageRole, ModelConfig, Preset
from multichat.service import ChatService, describe_failure, explain_model_error
from multichat.store import AppStore, RecordNotFoundError


class _FakeClient:
    def __init__(self, replies=None, stream_tokens=None, stream_error=None) -> None:
        self.replies = list(replies or [])
        self.stream_tokens = list(stream_tokens or [])
        self.stream_error = stream_error
        self.histories: List[List[Dict[str, str]]] = []

    def send_message(self, options: ChatOptions) -> ChatResult:
        self.histories.append(list(options.messages))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def iter_stream(self, options: ChatOptions):
        self.histories.append(list(options.messages))
        for token in self.stream_tokens:
            yield token
        if self.stream_error is not None:
            raise self.stream_error


def _setup(client: _FakeClient, *, api_key: str = "key", preset: Preset = None):
    store = AppStore()
    model = store.add_model(ModelConfig(name="m", type=ModelType.OPENAI, api_key=api_key, model="gpt-4o"))
    preset_id = store.add_preset(preset).id if preset else None
    conversation = store.create_conversation("chat", model.id, preset_id)
    service = ChatService(store, client_factory=lambda model_config, settings: client)
    return store, service, conversation.id


def _contents(store: AppStore, conversation_id: str):
    return [(m.role.value, m.content) for m in store.get_conversation(conversation_id).messages]


def test_preset_sends_armoring_then_system_and_waits_for_each() -> None:
    client = _FakeClient(replies=[ChatResult("armored"), ChatResult("ready")])
    store, service, cid = _setup(client, preset=Preset(name="p", armoring_prompt="A", system_prompt="S"))

    service.initialize_with_preset(cid)

    assert _contents(store, cid) == [
        ("user", "A"),
        ("assistant", "armored"),
        ("user", "S"),
        ("assistant", "ready"),
    ]
    assert [len(history) for history in client.histories] == [1, 3]


def test_blank_preset_fields_are_skipped() -> None:
    client = _FakeClient(replies=[ChatResult("ready")])
    store, service, cid = _setup(client, preset=Preset(name="p", armoring_prompt="   ", system_prompt="S"))

    service.initialize_with_preset(cid)

    assert _contents(store, cid) == [("user", "S"), ("assistant", "ready")]


def test_conversation_without_preset_is_untouched() -> None:
    client = _FakeClient()
    store, service, cid = _setup(client)

    service.initialize_with_preset(cid)

    assert _contents(store, cid) == []
    assert client.histories == []


def test_missing_api_key_stops_seeding_after_armoring_message() -> None:
    client = _FakeClient()
    store, service, cid = _setup(client, api_key=" ", preset=Preset(name="p", armoring_prompt="A", system_prompt="S"))

    service.initialize_with_preset(cid)

    messages = _contents(store, cid)
    assert messages[0] == ("user", "A")
    assert messages[1][0] == "assistant"
    assert messages[1][1].startswith("Error: The model API key is not configured")
    assert len(messages) == 2
    assert client.histories == []


def test_provider_error_is_embedded_and_seeding_continues() -> None:
    client = _FakeClient(replies=[ChatResult(error="OpenAI rate limit reached"), ChatResult("ready")])
    store, service, cid = _setup(client, preset=Preset(name="p", armoring_prompt="A", system_prompt="S"))

    service.initialize_with_preset(cid)

    assert _contents(store, cid) == [
        ("user", "A"),
        ("assistant", "Error: OpenAI rate limit reached"),
        ("user", "S"),
        ("assistant", "ready"),
    ]


def test_client_crash_during_seeding_is_embedded_and_seeding_continues() -> None:
    client = _FakeClient(replies=[RuntimeError("boom"), ChatResult("ready")])
    store, service, cid = _setup(client, preset=Preset(name="p", armoring_prompt="A", system_prompt="S"))

    service.initialize_with_preset(cid)

    assert _contents(store, cid) == [
        ("user", "A"),
        ("assistant", "Error: boom"),
        ("user", "S"),
        ("assistant", "ready"),
    ]


def test_unexpected_failure_during_seeding_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    store, service, cid = _setup(_FakeClient(), preset=Preset(name="p", armoring_prompt="A", system_prompt="S"))

    def _explode(conversation_id, model):
        raise RuntimeError("boom")

    monkeypatch.setattr(service, "_send_and_wait", _explode)

    service.initialize_with_preset(cid)

    assert _contents(store, cid) == [
        ("user", "A"),
        ("assistant", "Failed to initialize conversation: boom"),
    ]


def test_send_message_appends_user_turn_and_reply() -> None:
    client = _FakeClient(replies=[ChatResult("pong")])
    store, service, cid = _setup(client)

    reply = service.send_message(cid, "ping")

    assert reply.role is MessageRole.ASSISTANT
    assert reply.content == "pong"
    assert _contents(store, cid) == [("user", "ping"), ("assistant", "pong")]
    assert client.histories == [[{"role": "user", "content": "ping"}]]


def test_send_message_without_api_key_skips_user_turn() -> None:
    store, service, cid = _setup(_FakeClient(), api_key="")

    reply = service.send_message(cid, "ping")

    assert reply.content.startswith("Error: ")
    assert _contents(store, cid) == [("assistant", reply.content)]


def test_send_message_maps_factory_failure_to_error_message() -> None:
    store = AppStore()
    model = store.add_model(ModelConfig(name="m", type=ModelType.OPENAI, api_key="k", model="gpt-4o"))
    cid = store.create_conversation("chat", model.id).id

    def _factory(model_config, settings):
        raise ValueError("Unsupported model type: openai")

    reply = ChatService(store, client_factory=_factory).send_message(cid, "ping")

    assert reply.content == "Error: Unsupported model type: openai"


def test_send_message_validates_input() -> None:
    store, service, cid = _setup(_FakeClient())

    with pytest.raises(ValueError, match="message is required"):
        service.send_message(cid, "   ")
    with pytest.raises(RecordNotFoundError):
        service.send_message("missing", "hi")


def test_stream_message_grows_last_message_and_reports_progress() -> None:
    client = _FakeClient(stream_tokens=["Hel", "lo"])
    store, service, cid = _setup(client)
    updates = []

    tokens = list(service.stream_message(cid, "hi", lambda text, done: updates.append((text, done))))

    assert tokens == ["Hel", "lo"]
    assert updates == [("Hel", False), ("Hello", False), ("Hello", True)]
    assert _contents(store, cid) == [("user", "hi"), ("assistant", "Hello")]
    assert client.histories == [[{"role": "user", "content": "hi"}]]


def test_stream_message_failure_replaces_reply_with_error() -> None:
    error = ProviderError("OpenAI API error: HTTP error, status 429", status_code=429)
    client = _FakeClient(stream_tokens=["par"], stream_error=error)
    store, service, cid = _setup(client)
    updates = []

    tokens = list(service.stream_message(cid, "hi", lambda text, done: updates.append((text, done))))

    expected = "Error: API rate limit reached, please try again later"
    assert tokens == ["par", expected]
    assert updates[-1] == (expected, True)
    assert _contents(store, cid)[-1] == ("assistant", expected)


def test_stream_message_without_api_key_yields_error_once() -> None:
    store, service, cid = _setup(_FakeClient(), api_key="")

    tokens = list(service.stream_message(cid, "hi"))

    assert len(tokens) == 1
    assert tokens[0].startswith("Error: ")
    assert _contents(store, cid) == [("assistant", tokens[0])]


def test_malformed_provider_body_becomes_error_reply(http) -> None:
    http.respond(json_data={"choices": [None]})
    store = AppStore()
    model = store.add_model(ModelConfig(name="m", type=ModelType.OPENAI, api_key="k", model="gpt-4o"))
    cid = store.create_conversation("chat", model.id).id

    reply = ChatService(store).send_message(cid, "ping")

    assert reply.content == "Error: OpenAI returned an invalid response"
    assert _contents(store, cid) == [("user", "ping"), ("assistant", reply.content)]


def test_send_message_maps_unexpected_client_failure_to_error_message() -> None:
    store, service, cid = _setup(_FakeClient(replies=[KeyError("choices")]))

    reply = service.send_message(cid, "ping")

    assert reply.content == "Error: 'choices'"
    assert _contents(store, cid) == [("user", "ping"), ("assistant", "Error: 'choices'")]


def test_stream_message_unexpected_failure_replaces_reply_with_error() -> None:
    client = _FakeClient(stream_tokens=["par"], stream_error=RuntimeError("socket closed"))
    store, service, cid = _setup(client)
    updates = []

    tokens = list(service.stream_message(cid, "hi", lambda text, done: updates.append((text, done))))

    assert tokens == ["par", "Error: socket closed"]
    assert updates[-1] == ("Error: socket closed", True)
    assert _contents(store, cid)[-1] == ("assistant", "Error: socket closed")


def test_missing_model_error_gets_configuration_help() -> None:
    client = _FakeClient(replies=[ChatResult(error="The model `gpt-9` does not exist")])
    store, service, cid = _setup(client)

    reply = service.send_message(cid, "ping")

    assert reply.content.startswith("Error: The model `gpt-9` does not exist\n")
    assert "OpenAI reported that the model does not exist" in reply.content


def test_explain_model_error_leaves_other_errors_alone() -> None:
    model = ModelConfig(name="m", type=ModelType.CLAUDE, api_key="k", model="claude-x")

    assert explain_model_error(model, "rate limited") == "rate limited"
    assert explain_model_error(model, "Model does not exist") == (
        'Model does not exist\nCheck that the model name "claude-x" is correct in the model settings.'
    )


@pytest.mark.parametrize(
    ("status_code", "payload", "expected"),
    [
        (400, None, "Invalid request parameters, the model configuration may be wrong"),
        (
            400,
            {"error": {"message": "bad temperature"}},
            "Invalid request parameters, the model configuration may be wrong: bad temperature",
        ),
        (503, {"message": "overloaded"}, "Server error, please try again later: overloaded"),
        (500, None, "Server error, please try again later"),
        (418, None, "Request failed (418)"),
    ],
)
def test_describe_failure_is_status_aware(status_code, payload, expected) -> None:
    exc = ProviderError("OpenAI API error", status_code=status_code, payload=payload)

    assert describe_failure(exc) == expected


def test_describe_failure_without_status_uses_exception_text() -> None:
    assert describe_failure(ValueError("Unsupported model type: x")) == "Unsupported model type: x"
