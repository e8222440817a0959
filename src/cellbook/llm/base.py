"""Base types for LLM clients."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ImageInput:
    """An inlined image sent alongside a prompt."""

    media_type: str  # image/png | image/jpeg
    data: str  # base64, no data: prefix


class LLMClient(Protocol):
    """Text completion, optionally with images."""

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        images: Sequence[ImageInput] | None = None,
    ) -> str:
        """Return the model's text response."""
        ...

    async def close(self) -> None:
        ...
