from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

from dualchat.models.chat import (
    DEFAULT_CLASSIFIER_THRESHOLDS,
    DEFAULT_QUICK_CHAT_CONFIG,
    DEFAULT_TASK_CHAT_CONFIG,
    ClassifierThresholds,
    ConfigT,
    QuickChatConfig,
    TaskChatConfig,
    merge_config,
)

DEFAULT_ORCHESTRATOR_URL = "http://127.0.0.1:1906"
DEFAULT_KNOWLEDGE_URL = "http://127.0.0.1:1906"


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if not value:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_json_object_env(name: str) -> dict[str, Any]:
    value = os.getenv(name, "")
    if not value.strip():
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{name} must be valid JSON") from exc
    if not isinstance(parsed, dict):
        raise ValueError(f"{name} must be a JSON object")
    return parsed


def _get_defaults_env(name: str, defaults: ConfigT) -> ConfigT:
    overrides = _get_json_object_env(name)
    try:
        return merge_config(defaults, overrides)
    except ValueError as exc:
        raise ValueError(f"{name}: {exc}") from exc


@dataclass(frozen=True)
class Settings:
    port: int
    log_level: str
    openai_api_key: str
    anthropic_api_key: str
    gemini_api_key: str
    orchestrator_url: str
    knowledge_url: str
    http_timeout_seconds: int
    remote_mode_detection: bool
    retrieval_top_k: int
    task_poll_interval_ms: int
    task_timeout_ms: int
    quick_chat_defaults: QuickChatConfig
    task_chat_defaults: TaskChatConfig
    classifier_thresholds: ClassifierThresholds

    def api_key_for(self, provider: str) -> str:
        keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.gemini_api_key,
        }
        return keys.get(provider, "")


def load_settings() -> Settings:
    return Settings(
        port=_get_int_env("PORT", 8000),
        log_level=os.getenv("LOG_LEVEL", "info"),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        orchestrator_url=os.getenv("ORCHESTRATOR_URL", DEFAULT_ORCHESTRATOR_URL),
        knowledge_url=os.getenv("KNOWLEDGE_URL", DEFAULT_KNOWLEDGE_URL),
        http_timeout_seconds=_get_int_env("HTTP_TIMEOUT_SECONDS", 30),
        remote_mode_detection=_get_bool_env("REMOTE_MODE_DETECTION", False),
        retrieval_top_k=max(1, _get_int_env("RETRIEVAL_TOP_K", 5)),
        task_poll_interval_ms=max(0, _get_int_env("TASK_POLL_INTERVAL_MS", 1000)),
        task_timeout_ms=max(0, _get_int_env("TASK_TIMEOUT_MS", 300_000)),
        quick_chat_defaults=_get_defaults_env(
            "QUICK_CHAT_DEFAULTS_JSON", DEFAULT_QUICK_CHAT_CONFIG
        ),
        task_chat_defaults=_get_defaults_env("TASK_CHAT_DEFAULTS_JSON", DEFAULT_TASK_CHAT_CONFIG),
        classifier_thresholds=_get_defaults_env(
            "CLASSIFIER_THRESHOLDS_JSON", DEFAULT_CLASSIFIER_THRESHOLDS
        ),
    )
