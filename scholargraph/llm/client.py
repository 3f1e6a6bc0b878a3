"""LLM client entry point - re-exports the unified client."""
from __future__ import annotations

from .base_provider import Attachment
from .unified_client import T, UnifiedLLMClient as LLMClient

__all__ = ['Attachment', 'LLMClient', 'T']
