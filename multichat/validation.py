"""Model configuration checks and per-provider reference data."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from llm_providers import ModelType

from .models import ModelConfig

_TYPE_NAMES: Dict[ModelType, str] = {
    ModelType.OPENAI: "OpenAI",
    ModelType.DEEPSEEK: "DeepSeek",
    ModelType.GEMINI: "Gemini",
    ModelType.CLAUDE: "Claude",
}

_COMMON_MODELS: Dict[ModelType, List[str]] = {
    ModelType.OPENAI: [
        "gpt-3.5-turbo",
        "gpt-3.5-turbo-16k",
        "gpt-4",
        "gpt-4-turbo",
        "gpt-4o",
        "gpt-4o-mini",
    ],
    ModelType.DEEPSEEK: ["deepseek-chat", "deepseek-reasoner"],
    ModelType.GEMINI: [
        "gemini-2.5-flash-preview-04-17",
        "gemini-2.5-pro-preview-05-06",
        "gemini-2.0-flash",
    ],
    ModelType.CLAUDE: [
        "claude-instant-1",
        "claude-2",
        "claude-2.1",
        "claude-3-opus",
        "claude-3-sonnet",
        "claude-3-haiku",
    ],
}

MODEL_ERROR_HELP: Dict[ModelType, Dict[str, str]] = {
    ModelType.DEEPSEEK: {
        "model_not_exist": (
            "DeepSeek reported that the model does not exist. Usual causes:\n"
            "1. The model name is misspelled: only \"deepseek-chat\" and \"deepseek-reasoner\" are served.\n"
            "2. The API key has no access to that model.\n"
        ),
    },
    ModelType.GEMINI: {
        "model_not_exist": (
            "Gemini reported that the model does not exist. Usual causes:\n"
            "1. The model name is misspelled.\n"
            "2. The API key has no access to that model.\n"
            "Known Gemini models: gemini-2.5-flash-preview-04-17, gemini-2.5-pro-preview-05-06, "
            "gemini-2.0-flash\n"
        ),
    },
    ModelType.OPENAI: {
        "model_not_exist": (
            "OpenAI reported that the model does not exist. Usual causes:\n"
            "1. The model name is misspelled, e.g. \"gpt-4\" or \"gpt-3.5-turbo\".\n"
            "2. The API key has no access to that model.\n"
            "3. The model has been retired; pick a current version.\n"
        ),
    },
}


def validate_model_config(config: ModelConfig) -> Optional[str]:
    """Return the first problem with ``config``, or ``None`` when usable.

    Model identifiers are deliberately not checked against a list; any name
    the provider accepts is allowed.
    """
    if not config.api_key or not config.api_key.strip():
        return "API key must not be empty"
    if not config.model or not config.model.strip():
        return "Model identifier must not be empty"
    return None


def get_model_type_name(model_type: Union[ModelType, str]) -> str:
    try:
        return _TYPE_NAMES[ModelType(model_type)]
    except ValueError:
        return str(model_type)


def get_common_models_for_type(model_type: Union[ModelType, str]) -> List[str]:
    try:
        return list(_COMMON_MODELS[ModelType(model_type)])
    except ValueError:
        return []


def get_model_error_help(model_type: Union[ModelType, str], error_type: str) -> Optional[str]:
    try:
        help_by_error = MODEL_ERROR_HELP.get(ModelType(model_type))
    except ValueError:
        return None
    if not help_by_error:
        return None
    return help_by_error.get(error_type)
