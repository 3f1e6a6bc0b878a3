"""Mock LLM provider for testing."""
from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel

from .base_provider import Attachment, BaseLLMProvider

T = TypeVar('T', bound=BaseModel)


class MockProvider(BaseLLMProvider):
    """Scripted provider: replays queued responses, or a delegate's answers.

    Queue entries may be dicts, JSON strings, model instances, plain strings
    (for ``raw``) or exceptions, which are raised when their turn comes.
    """

    def __init__(self, config: dict[str, Any], model_name: str, **kwargs):
        self.config = config
        self.model_name = model_name
        self.call_count = 0
        self.calls: list[dict[str, Any]] = []
        self.responses: list[Any] = list(kwargs.get('responses') or [])
        self.response_index = 0
        self._mock_instance = kwargs.get('mock_instance')

    def set_responses(self, responses):
        """Set predefined responses for testing."""
        self.responses = list(responses)
        self.response_index = 0

    def _next(self) -> Any:
        if self.response_index < len(self.responses):
            response = self.responses[self.response_index]
            self.response_index += 1
            if isinstance(response, BaseException):
                raise response
            return response
        return None

    def parse(
        self,
        *,
        system: str,
        user: str,
        schema: type[T],
        attachments: list[Attachment] | None = None,
    ) -> T:
        self.call_count += 1
        self.calls.append({"system": system, "user": user, "schema": schema, "attachments": attachments})

        if self._mock_instance is not None and hasattr(self._mock_instance, 'parse'):
            return self._mock_instance.parse(system=system, user=user, schema=schema)

        response = self._next()
        if response is None:
            return schema()
        if isinstance(response, BaseModel):
            return response
        if isinstance(response, str):
            response = json.loads(response)
        return schema.model_validate(response)

    def raw(self, *, system: str, user: str, attachments: list[Attachment] | None = None) -> str:
        self.call_count += 1
        self.calls.append({"system": system, "user": user, "schema": None, "attachments": attachments})

        if self._mock_instance is not None and hasattr(self._mock_instance, 'raw'):
            return self._mock_instance.raw(system=system, user=user)

        response = self._next()
        if response is None:
            return "Mock response for testing"
        if isinstance(response, dict):
            return json.dumps(response)
        return str(response)

    @property
    def provider_name(self) -> str:
        return "mock"
