"""Gemini provider implementation (google-genai SDK)."""
from __future__ import annotations

import logging
import os
import random
import time
from typing import Any, TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel

from ..utils.json_utils import extract_json_value
from .base_provider import Attachment, BaseLLMProvider

T = TypeVar('T', bound=BaseModel)

logger = logging.getLogger(__name__)


class GeminiProvider(BaseLLMProvider):
    """Google Gemini API provider implementation."""

    def __init__(
        self,
        config: dict[str, Any],
        model_name: str,
        timeout: int = 120,
        retries: int = 3,
        backoff_min: float = 2.0,
        backoff_max: float = 8.0,
        temperature: float = 0.7,
        verbose: bool = False,
        **kwargs
    ):
        """
        Initialize Gemini provider.

        Args:
            config: Configuration dictionary
            model_name: Gemini model name (e.g., "gemini-2.5-flash")
            timeout: Request timeout in seconds
            retries: Number of retry attempts
            backoff_min: Minimum backoff time in seconds
            backoff_max: Maximum backoff time in seconds
        """
        self.config = config
        self.model_name = model_name
        self.timeout = timeout
        self.retries = max(1, int(retries))
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self.temperature = temperature
        self.verbose = verbose

        gcfg = config.get("gemini", {}) if isinstance(config, dict) else {}
        api_key_env = gcfg.get("api_key_env", "GOOGLE_API_KEY")
        api_key = os.environ.get(api_key_env)
        if not api_key:
            raise ValueError(f"API key not found in environment variable: {api_key_env}")
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
        )

    @staticmethod
    def _contents(user: str, attachments: list[Attachment] | None) -> list[Any]:
        contents: list[Any] = [user]
        for att in attachments or []:
            contents.append(types.Part.from_bytes(data=att.data, mime_type=att.mime_type))
        return contents

    def _generate(self, contents: list[Any], config: types.GenerateContentConfig) -> Any:
        last_err = None
        for attempt in range(self.retries):
            try:
                if self.verbose:
                    logger.info("[Gemini] %s attempt %d/%d", self.model_name, attempt + 1, self.retries)
                response = self._client.models.generate_content(
                    model=self.model_name,
                    contents=contents,
                    config=config,
                )
                candidates = getattr(response, 'candidates', None)
                if candidates:
                    finish = str(getattr(candidates[0], 'finish_reason', '') or '').upper()
                    if any(tag in finish for tag in ("SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST")):
                        raise RuntimeError(f"Response blocked: {finish}")
                return response
            except Exception as e:
                last_err = e
                logger.debug("Gemini call failed (attempt %d): %s", attempt + 1, e)
                if attempt < self.retries - 1:
                    time.sleep(random.uniform(self.backoff_min, self.backoff_max))
        raise RuntimeError(f"Gemini call failed after {self.retries} attempts: {last_err}")

    def parse(
        self,
        *,
        system: str,
        user: str,
        schema: type[T],
        attachments: list[Attachment] | None = None,
    ) -> T:
        """Make a structured call returning parsed JSON matching `schema`."""
        config = types.GenerateContentConfig(
            system_instruction=system,
            temperature=self.temperature,
            response_mime_type="application/json",
            response_json_schema=schema.model_json_schema(),
        )
        response = self._generate(self._contents(user, attachments), config)
        text = getattr(response, 'text', None)
        if not text:
            raise RuntimeError("Empty response from Gemini")
        data = extract_json_value(text)
        if data is None:
            raise ValueError("No valid JSON found in Gemini response")
        return schema.model_validate(data)

    def raw(self, *, system: str, user: str, attachments: list[Attachment] | None = None) -> str:
        """Make a plain text call."""
        config = types.GenerateContentConfig(
            system_instruction=system,
            temperature=self.temperature,
        )
        response = self._generate(self._contents(user, attachments), config)
        return getattr(response, 'text', None) or ""

    @property
    def provider_name(self) -> str:
        return "Gemini"
