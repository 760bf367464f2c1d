"""Factory for creating LLM model instances."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dualchat.clients.llm_providers.base import (
    LLMProvider,
    ModelConfig,
    StrandsModel,
)

if TYPE_CHECKING:
    from dualchat.core.config import Settings
    from dualchat.models.chat import QuickChatConfig

logger = logging.getLogger(__name__)


def create_model(config: ModelConfig) -> StrandsModel:
    """Create a Strands-compatible model instance.

    Args:
        config: Model configuration including provider, model_id, and api_key.

    Returns:
        A Strands-compatible model instance.

    Raises:
        ValueError: If provider is not supported or API key is missing.
        ImportError: If required provider package is not installed.
    """
    if not config.api_key:
        raise ValueError(f"API key is required for provider '{config.provider.value}'")

    if config.provider == LLMProvider.OPENAI:
        return _create_openai_model(config)
    elif config.provider == LLMProvider.ANTHROPIC:
        return _create_anthropic_model(config)
    elif config.provider == LLMProvider.GOOGLE:
        return _create_gemini_model(config)
    else:
        raise ValueError(f"Unsupported provider: {config.provider}")


def _create_openai_model(config: ModelConfig) -> StrandsModel:
    """Create an OpenAI model instance."""
    try:
        from strands.models.openai import OpenAIModel
    except ImportError as e:
        raise ImportError(
            "OpenAI support requires 'strands-agents[openai]'. "
            "Install with: pip install 'strands-agents[openai]'"
        ) from e

    params: dict[str, Any] = {}
    if config.temperature is not None:
        params["temperature"] = config.temperature
    if config.max_tokens is not None:
        params["max_tokens"] = config.max_tokens

    return OpenAIModel(
        client_args={"api_key": config.api_key},
        model_id=config.model_id,
        params=params,
    )


def _create_anthropic_model(config: ModelConfig) -> StrandsModel:
    """Create an Anthropic (Claude) model instance."""
    try:
        from strands.models.anthropic import AnthropicModel
    except ImportError as e:
        raise ImportError(
            "Anthropic support requires 'strands-agents[anthropic]'. "
            "Install with: pip install 'strands-agents[anthropic]'"
        ) from e

    params: dict[str, Any] = {}
    if config.temperature is not None:
        params["temperature"] = config.temperature

    # Anthropic requires max_tokens on every request.
    return AnthropicModel(
        client_args={"api_key": config.api_key},
        model_id=config.model_id,
        max_tokens=config.max_tokens or 1024,
        params=params,
    )


def _create_gemini_model(config: ModelConfig) -> StrandsModel:
    """Create a Google Gemini model instance."""
    try:
        from strands.models.gemini import GeminiModel
    except ImportError as e:
        raise ImportError(
            "Gemini support requires 'strands-agents[gemini]'. "
            "Install with: pip install 'strands-agents[gemini]'"
        ) from e

    params: dict[str, Any] = {}
    if config.temperature is not None:
        params["temperature"] = config.temperature
    if config.max_tokens is not None:
        params["max_output_tokens"] = config.max_tokens

    return GeminiModel(
        client_args={"api_key": config.api_key},
        model_id=config.model_id,
        params=params,
    )


def get_provider_config(settings: Settings, chat_config: QuickChatConfig) -> ModelConfig:
    """Build ModelConfig for one quick-chat request.

    The provider and sampling options come from the request's chat config; the
    API key comes from application settings.

    Args:
        settings: Application settings.
        chat_config: Merged quick-chat configuration.

    Returns:
        ModelConfig for the requested provider.

    Raises:
        ValueError: If no API key is configured for the provider.
    """
    provider = chat_config.provider
    api_key = settings.api_key_for(provider.value)
    if not api_key:
        logger.warning("No API key configured for provider '%s'", provider.value)
        raise ValueError(f"No API key configured for provider '{provider.value}'")

    return ModelConfig(
        provider=provider,
        model_id=chat_config.model or provider.default_model_id,
        api_key=api_key,
        temperature=chat_config.temperature,
        max_tokens=chat_config.max_tokens,
    )
