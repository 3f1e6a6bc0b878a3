"""Unified LLM client that supports multiple providers."""
from __future__ import annotations

import logging
import os
import time
from typing import Any, TypeVar

from pydantic import BaseModel

from .base_provider import Attachment
from .gemini_provider import GeminiProvider
from .mock_provider import MockProvider
from .openai_provider import OpenAIProvider

T = TypeVar('T', bound=BaseModel)

logger = logging.getLogger(__name__)


def _verbose_enabled(cfg: dict[str, Any]) -> bool:
    logging_cfg = cfg.get("logging", {}) if isinstance(cfg, dict) else {}
    env_verbose = os.environ.get("SCHOLARGRAPH_LLM_VERBOSE", "").lower() in {"1", "true", "yes", "on"}
    return bool(logging_cfg.get("llm_verbose", False) or env_verbose)


class UnifiedLLMClient:
    """
    Profile-based LLM client.

    Each profile under ``models:`` names a provider and a model. Available
    providers: gemini (default), openai, mock.
    """

    def __init__(self, cfg: dict[str, Any], profile: str = "graph"):
        """
        Args:
            cfg: Configuration dictionary
            profile: Model profile to use (e.g., "graph", "vision")
        """
        self.cfg = cfg
        self.profile = profile

        models_cfg = cfg.get("models", {}) if isinstance(cfg, dict) else {}
        profile_key = profile
        if profile_key not in models_cfg and "graph" in models_cfg:
            profile_key = "graph"
        if profile_key not in models_cfg:
            raise ValueError(f"Model profile '{profile}' not found in config and no fallback available")
        model_config = models_cfg[profile_key]
        self.model = model_config["model"]

        provider_name = str(model_config.get("provider", "gemini")).lower()
        timeout_cfg = cfg.get("timeouts", {})
        retry_cfg = cfg.get("retries", {})
        verbose = _verbose_enabled(cfg)

        common_kwargs = {
            "config": cfg,
            "model_name": self.model,
            "timeout": timeout_cfg.get("request_seconds", 120),
            "retries": retry_cfg.get("max_attempts", 3),
            "backoff_min": retry_cfg.get("backoff_min_seconds", 2),
            "backoff_max": retry_cfg.get("backoff_max_seconds", 8),
            "verbose": verbose,
        }

        if provider_name == "gemini":
            self.provider = GeminiProvider(**common_kwargs, temperature=model_config.get("temperature", 0.7))
        elif provider_name == "openai":
            self.provider = OpenAIProvider(**common_kwargs)
        elif provider_name == "mock":
            self.provider = MockProvider(
                **common_kwargs,
                mock_instance=model_config.get("mock_instance"),
                responses=model_config.get("responses"),
            )
        else:
            raise ValueError(f"Unknown provider: {provider_name}")

        if verbose:
            logger.info("Initialized %s provider with model: %s", self.provider.provider_name, self.model)

    def parse(self, *, system: str, user: str, schema: type[T], attachments: list[Attachment] | None = None) -> T:
        """Structured call: returns an instance of `schema`."""
        start_time = time.time()
        try:
            return self.provider.parse(system=system, user=user, schema=schema, attachments=attachments)
        finally:
            logger.debug(
                "LLM parse [%s/%s] schema=%s in %.2fs",
                self.profile, self.provider.provider_name, schema.__name__, time.time() - start_time,
            )

    def raw(self, *, system: str, user: str, attachments: list[Attachment] | None = None) -> str:
        """Plain text call (no schema)."""
        start_time = time.time()
        try:
            return self.provider.raw(system=system, user=user, attachments=attachments)
        finally:
            logger.debug(
                "LLM raw [%s/%s] in %.2fs",
                self.profile, self.provider.provider_name, time.time() - start_time,
            )

    @property
    def provider_name(self) -> str:
        return self.provider.provider_name
