"""Resolve provider clients by model type."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type, Union

from .base import BaseProviderClient, ModelType
from .config import ProviderSettings

logger = logging.getLogger(__name__)


class ProviderFactory:
    """Registry mapping :class:`ModelType` values to client classes."""

    _registry: Dict[str, Type[BaseProviderClient]] = {}

    @classmethod
    def register(cls, model_type: Union[ModelType, str], client_cls: Type[BaseProviderClient]) -> None:
        key = _type_key(model_type)
        if not key:
            raise ValueError("Model type cannot be empty")
        cls._registry[key] = client_cls

    @classmethod
    def create(cls, model_config: Any, settings: Optional[ProviderSettings] = None) -> BaseProviderClient:
        """Build the client for ``model_config.type``.

        Raises:
            ValueError: If the type is not registered.
        """
        key = _type_key(model_config.type)
        client_cls = cls._registry.get(key)
        if client_cls is None:
            available = ", ".join(sorted(cls._registry)) or "<none>"
            raise ValueError(f"Unsupported model type: {key}. Registered types: {available}")
        logger.debug("Creating %s client for model %s", client_cls.__name__, model_config.model)
        return client_cls.from_model_config(model_config, settings)


def create_provider_client(model_config: Any, settings: Optional[ProviderSettings] = None) -> BaseProviderClient:
    return ProviderFactory.create(model_config, settings)


def _type_key(model_type: Union[ModelType, str, None]) -> str:
    if isinstance(model_type, ModelType):
        return model_type.value
    return (model_type or "").strip().lower()
