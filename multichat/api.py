"""FastAPI entry point for the chat service."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field, validator

from llm_providers import ModelType

from .config import ChatConfig
from .models import ModelConfig, Preset
from .service import ChatService, ClientFactory
from .store import AppStore, RecordNotFoundError
from .utils import setup_logging
from .validation import get_common_models_for_type, get_model_type_name, validate_model_config

logger = logging.getLogger(__name__)


def _not_blank(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("field must not be empty")
    return value


# ---------- Request Models ----------
class ModelCreateRequest(BaseModel):
    name: str = Field(..., description="Display name for this configuration.")
    type: ModelType
    api_key: str = Field(..., description="Provider API key.")
    model: str = Field(..., description="Provider model identifier, e.g. gpt-4o.")
    base_url: Optional[str] = Field(None, description="Override for the provider's default base URL.")
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, gt=0)
    enabled: bool = True

    @validator("name")
    def name_not_empty(cls, value: str) -> str:
        return _not_blank(value)


class ModelUpdateRequest(BaseModel):
    name: Optional[str] = None
    type: Optional[ModelType] = None
    api_key: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, gt=0)
    enabled: Optional[bool] = None

    @validator("name")
    def name_not_empty(cls, value: Optional[str]) -> Optional[str]:
        return _not_blank(value)


class PresetCreateRequest(BaseModel):
    name: str
    armoring_prompt: str = Field("", description="First scripted user turn.")
    system_prompt: str = Field("", description="Second scripted user turn.")

    @validator("name")
    def name_not_empty(cls, value: str) -> str:
        return _not_blank(value)


class PresetUpdateRequest(BaseModel):
    name: Optional[str] = None
    armoring_prompt: Optional[str] = None
    system_prompt: Optional[str] = None

    @validator("name")
    def name_not_empty(cls, value: Optional[str]) -> Optional[str]:
        return _not_blank(value)


class ConversationCreateRequest(BaseModel):
    title: str
    model_id: str
    preset_id: Optional[str] = Field(None, description="Preset used to seed the conversation.")

    @validator("title", "model_id")
    def not_empty(cls, value: str) -> str:
        return _not_blank(value)


class ConversationUpdateRequest(BaseModel):
    title: Optional[str] = None
    model_id: Optional[str] = None

    @validator("title", "model_id")
    def not_empty(cls, value: Optional[str]) -> Optional[str]:
        return _not_blank(value)


class BatchDeleteRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)


class SendMessageRequest(BaseModel):
    content: str = Field(..., description="User message to send to the model.")
    stream: Optional[bool] = Field(None, description="Stream the reply; defaults to the server setting.")

    @validator("content")
    def not_empty(cls, value: str) -> str:
        return _not_blank(value)


# ---------- FastAPI Factory ----------
def create_app(
    chat_config: Optional[ChatConfig] = None,
    *,
    store: Optional[AppStore] = None,
    client_factory: Optional[ClientFactory] = None,
    log_dir: Optional[str] = None,
) -> FastAPI:
    if log_dir:
        setup_logging(log_dir, logging.INFO)

    config = chat_config or ChatConfig()
    store = store or AppStore()
    service = ChatService(store, config, client_factory=client_factory)

    app = FastAPI(title="Multichat", version="0.1.0")
    app.state.store = store
    app.state.service = service

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Request failed: %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Request failed"})

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/model-types")
    async def model_types() -> List[Dict[str, Any]]:
        return [
            {
                "type": model_type.value,
                "name": get_model_type_name(model_type),
                "common_models": get_common_models_for_type(model_type),
            }
            for model_type in ModelType
        ]

    # ----- models -----

    @app.get("/models")
    async def list_models() -> List[Dict[str, Any]]:
        return [model.public_dict() for model in app.state.store.list_models()]

    @app.post("/models", status_code=201)
    async def create_model(request: ModelCreateRequest) -> Dict[str, Any]:
        model = ModelConfig(**request.dict())
        _raise_if_invalid(model)
        created = app.state.store.add_model(model)
        return created.public_dict()

    @app.get("/models/{model_id}")
    async def get_model(model_id: str) -> Dict[str, Any]:
        return app.state.store.get_model(model_id).public_dict()

    @app.patch("/models/{model_id}")
    async def update_model(model_id: str, request: ModelUpdateRequest) -> Dict[str, Any]:
        changes = request.dict(exclude_unset=True)
        _reject_nulls(changes, ("name", "type", "api_key", "model", "enabled"))
        current = app.state.store.get_model(model_id)
        _raise_if_invalid(dataclasses.replace(current, **changes))
        return app.state.store.update_model(model_id, **changes).public_dict()

    @app.delete("/models/{model_id}", status_code=204)
    async def delete_model(model_id: str) -> None:
        app.state.store.delete_model(model_id)

    # ----- presets -----

    @app.get("/presets")
    async def list_presets() -> List[Dict[str, Any]]:
        return [preset.to_dict() for preset in app.state.store.list_presets()]

    @app.post("/presets", status_code=201)
    async def create_preset(request: PresetCreateRequest) -> Dict[str, Any]:
        return app.state.store.add_preset(Preset(**request.dict())).to_dict()

    @app.get("/presets/{preset_id}")
    async def get_preset(preset_id: str) -> Dict[str, Any]:
        return app.state.store.get_preset(preset_id).to_dict()

    @app.patch("/presets/{preset_id}")
    async def update_preset(preset_id: str, request: PresetUpdateRequest) -> Dict[str, Any]:
        changes = request.dict(exclude_unset=True)
        _reject_nulls(changes, ("name", "armoring_prompt", "system_prompt"))
        return app.state.store.update_preset(preset_id, **changes).to_dict()

    @app.delete("/presets/{preset_id}", status_code=204)
    async def delete_preset(preset_id: str) -> None:
        app.state.store.delete_preset(preset_id)

    # ----- conversations -----

    @app.get("/conversations")
    async def list_conversations() -> List[Dict[str, Any]]:
        return [conv.to_dict(include_messages=False) for conv in app.state.store.list_conversations()]

    @app.post("/conversations", status_code=201)
    async def create_conversation(request: ConversationCreateRequest) -> Dict[str, Any]:
        model = app.state.store.get_model(request.model_id)
        if not model.enabled:
            raise HTTPException(status_code=400, detail=f"Model '{model.name}' is disabled")
        _raise_if_invalid(model)
        preset = app.state.store.get_preset(request.preset_id) if request.preset_id else None

        conversation = app.state.store.create_conversation(request.title, model.id, preset.id if preset else None)
        if preset:
            logger.info(
                "Seeding conversation %s with preset %s (armoring=%s, system=%s)",
                conversation.id,
                preset.name,
                bool(preset.armoring_prompt.strip()),
                bool(preset.system_prompt.strip()),
            )
            await run_in_threadpool(app.state.service.initialize_with_preset, conversation.id)
        return app.state.store.get_conversation(conversation.id).to_dict()

    @app.post("/conversations/batch-delete")
    async def batch_delete_conversations(request: BatchDeleteRequest) -> Dict[str, int]:
        return {"deleted": app.state.store.delete_conversations(request.ids)}

    @app.get("/conversations/{conversation_id}")
    async def get_conversation(conversation_id: str) -> Dict[str, Any]:
        return app.state.store.get_conversation(conversation_id).to_dict()

    @app.patch("/conversations/{conversation_id}")
    async def update_conversation(conversation_id: str, request: ConversationUpdateRequest) -> Dict[str, Any]:
        changes = request.dict(exclude_unset=True)
        _reject_nulls(changes, ("title", "model_id"))
        if "model_id" in changes:
            app.state.store.get_model(changes["model_id"])
        return app.state.store.update_conversation(conversation_id, **changes).to_dict()

    @app.delete("/conversations/{conversation_id}", status_code=204)
    async def delete_conversation(conversation_id: str) -> None:
        app.state.store.delete_conversation(conversation_id)

    @app.post("/conversations/{conversation_id}/messages")
    async def send_message(conversation_id: str, request: SendMessageRequest):
        use_stream = config.stream_by_default if request.stream is None else request.stream
        logger.info(
            "Chat turn for conversation %s (stream=%s)",
            conversation_id,
            "on" if use_stream else "off",
        )
        if use_stream:
            stream = app.state.service.stream_message(conversation_id, request.content)
            return StreamingResponse(stream, media_type="text/plain")

        message = await run_in_threadpool(app.state.service.send_message, conversation_id, request.content)
        return message.to_dict()

    return app


def _raise_if_invalid(model: ModelConfig) -> None:
    error = validate_model_config(model)
    if error:
        raise HTTPException(status_code=400, detail=error)

def _reject_nulls(changes: Dict[str, Any], fields: Tuple[str, ...]) -> None:
    nulls = [name for name in fields if name in changes and changes[name] is None]
    if nulls:
        raise HTTPException(status_code=400, detail=f"Field(s) cannot be null: {', '.join(nulls)}")
