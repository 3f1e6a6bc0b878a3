"""Base provider interface for LLM clients."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel

T = TypeVar('T', bound=BaseModel)


@dataclass
class Attachment:
    """Binary input sent alongside a prompt (PDF page set, image note)."""
    data: bytes
    mime_type: str
    name: str = ""


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def __init__(self, config: dict[str, Any], model_name: str, **kwargs):
        """Initialize the provider with configuration."""
        pass

    @abstractmethod
    def parse(
        self,
        *,
        system: str,
        user: str,
        schema: type[T],
        attachments: list[Attachment] | None = None,
    ) -> T:
        """
        Make a structured call returning an instance of the schema.

        Args:
            system: System prompt
            user: User prompt
            schema: Pydantic model class for structured output
            attachments: Optional binary parts (documents, images)

        Returns:
            Instance of the schema with parsed data
        """
        pass

    @abstractmethod
    def raw(self, *, system: str, user: str, attachments: list[Attachment] | None = None) -> str:
        """Make a plain text call without structured output."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name for logging."""
        pass
