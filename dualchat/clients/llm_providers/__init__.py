"""LLM Provider abstraction for multi-provider support.

This module provides a unified interface for the quick-chat model vendors:
- OpenAI (GPT-4)
- Anthropic (Claude)
- Google (Gemini)

Usage:
    from dualchat.clients.llm_providers import create_model, LLMProvider, ModelConfig

    model = create_model(
        ModelConfig(provider=LLMProvider.OPENAI, model_id="gpt-4", api_key="your-api-key")
    )
"""

from dualchat.clients.llm_providers.base import LLMProvider, ModelConfig
from dualchat.clients.llm_providers.factory import create_model, get_provider_config

__all__ = [
    "LLMProvider",
    "ModelConfig",
    "create_model",
    "get_provider_config",
]
