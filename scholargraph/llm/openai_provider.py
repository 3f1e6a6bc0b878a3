"""OpenAI provider implementation."""
from __future__ import annotations

import base64
import logging
import os
import random
import time
from typing import Any, TypeVar

from openai import OpenAI
from pydantic import BaseModel

from .base_provider import Attachment, BaseLLMProvider

T = TypeVar('T', bound=BaseModel)

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseLLMProvider):
    """OpenAI API provider implementation (Chat Completions)."""

    def __init__(
        self,
        config: dict[str, Any],
        model_name: str,
        timeout: int = 120,
        retries: int = 3,
        backoff_min: float = 2.0,
        backoff_max: float = 8.0,
        verbose: bool = False,
        **kwargs
    ):
        """Initialize OpenAI provider."""
        self.config = config
        self.model_name = model_name
        self.timeout = timeout
        self.retries = max(1, int(retries))
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self.verbose = verbose

        ocfg = config.get("openai", {}) if isinstance(config, dict) else {}
        api_key_env = ocfg.get("api_key_env", "OPENAI_API_KEY")
        api_key = os.environ.get(api_key_env)
        if not api_key:
            raise ValueError(f"API key not found in environment variable: {api_key_env}")

        # The SDK expects base_url to include the "/v1" path.
        raw_base_url = os.environ.get("OPENAI_BASE_URL") or ocfg.get("base_url")
        base_url = (raw_base_url or "https://api.openai.com/v1").rstrip("/")
        if not base_url.endswith("/v1"):
            base_url = base_url + "/v1"
        self.client = OpenAI(api_key=api_key, base_url=base_url)
        if self.verbose:
            logger.info("[OpenAI Provider] Using base_url: %s", base_url)

    @staticmethod
    def _user_content(user: str, attachments: list[Attachment] | None) -> Any:
        if not attachments:
            return user
        parts: list[dict[str, Any]] = [{"type": "text", "text": user}]
        for att in attachments:
            encoded = base64.b64encode(att.data).decode("ascii")
            data_url = f"data:{att.mime_type};base64,{encoded}"
            if att.mime_type.startswith("image/"):
                parts.append({"type": "image_url", "image_url": {"url": data_url}})
            else:
                parts.append({"type": "file", "file": {"filename": att.name or "document", "file_data": data_url}})
        return parts

    def _messages(self, system: str, user: str, attachments: list[Attachment] | None) -> list[dict[str, Any]]:
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": self._user_content(user, attachments)},
        ]

    def _with_retries(self, label: str, call):
        last_err = None
        for attempt in range(self.retries):
            try:
                if self.verbose:
                    logger.info("[OpenAI] %s %s attempt %d/%d", self.model_name, label, attempt + 1, self.retries)
                return call()
            except Exception as e:
                last_err = e
                logger.debug("OpenAI %s failed (attempt %d): %s", label, attempt + 1, e)
                if attempt < self.retries - 1:
                    time.sleep(random.uniform(self.backoff_min, self.backoff_max))
        raise RuntimeError(f"OpenAI {label} call failed after {self.retries} attempts: {last_err}")

    def parse(
        self,
        *,
        system: str,
        user: str,
        schema: type[T],
        attachments: list[Attachment] | None = None,
    ) -> T:
        """Structured call through Chat Completions parse."""
        messages = self._messages(system, user, attachments)

        def call():
            completion = self.client.beta.chat.completions.parse(
                model=self.model_name,
                messages=messages,
                response_format=schema,
                timeout=self.timeout,
            )
            message = completion.choices[0].message
            if message.parsed:
                return message.parsed
            if message.refusal:
                raise RuntimeError(f"Model refused: {message.refusal}")
            return schema.model_validate_json(message.content)

        return self._with_retries("parse", call)

    def raw(self, *, system: str, user: str, attachments: list[Attachment] | None = None) -> str:
        """Make a plain text call."""
        messages = self._messages(system, user, attachments)

        def call():
            completion = self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                timeout=self.timeout,
            )
            return completion.choices[0].message.content or ""

        return self._with_retries("raw", call)

    @property
    def provider_name(self) -> str:
        return "OpenAI"
