"""LLM client module using Claude Agent SDK."""

from cellbook.llm.base import ImageInput, LLMClient
from cellbook.llm.factory import create_llm_client

__all__ = [
    "ImageInput",
    "LLMClient",
    "create_llm_client",
]
