"""Mock LLM client for testing."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from cellbook.llm.base import ImageInput


@dataclass
class RecordedCall:
    """Arguments of one complete() call."""

    prompt: str
    system_prompt: str | None
    images: list[ImageInput] = field(default_factory=list)


class MockClaudeClient:
    """Mock client that replays scripted responses.

    Falls back to echoing the prompt once the script runs out. Used for
    testing without model access.
    """

    def __init__(
        self,
        responses: Sequence[str] | None = None,
        error: Exception | None = None,
        **kwargs: object,
    ) -> None:
        self.responses = list(responses or [])
        self.error = error
        self.calls: list[RecordedCall] = []

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        images: Sequence[ImageInput] | None = None,
    ) -> str:
        """Return the next scripted response."""
        self.calls.append(RecordedCall(prompt, system_prompt, list(images or [])))
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return f"Echo: {prompt}"

    async def close(self) -> None:
        """No-op for mock client."""
        pass
