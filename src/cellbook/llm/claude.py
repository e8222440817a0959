"""Claude Agent SDK client for cellbook."""

import os
from collections.abc import AsyncIterator, Sequence
from typing import Any

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    TextBlock,
    query,
)

from cellbook.llm.base import ImageInput

# Built-in agent tools, all disallowed for completion calls
BUILTIN_TOOLS = (
    "Bash",
    "BashOutput",
    "KillShell",
    "Read",
    "Write",
    "Edit",
    "MultiEdit",
    "NotebookEdit",
    "Glob",
    "Grep",
    "WebFetch",
    "WebSearch",
    "Task",
    "TodoWrite",
    "ExitPlanMode",
    "ListMcpResources",
    "ReadMcpResource",
)


class ClaudeClient:
    """Claude Agent SDK client used as a plain completion endpoint.

    Every built-in tool is disallowed and each call is a single turn; the
    notebook only needs text back (code, analyses, fixes).

    Supports multiple backends:
    - anthropic: Direct Anthropic API (requires ANTHROPIC_API_KEY)
    - bedrock: AWS Bedrock (requires AWS credentials)
    - vertex: Google Vertex AI (requires GCP credentials)

    Example:
        client = ClaudeClient(backend="anthropic")
        code = await client.complete(
            "Plot a sine wave",
            system_prompt="You are a Python code generator.",
        )
    """

    def __init__(
        self,
        backend: str = "anthropic",
        model: str | None = None,
        aws_region: str | None = None,
        aws_profile: str | None = None,
    ) -> None:
        """Initialize Claude client.

        Args:
            backend: API backend ("anthropic", "bedrock", or "vertex")
            model: Model ID (SDK default if not set)
            aws_region: AWS region for Bedrock
            aws_profile: AWS profile for Bedrock credentials
        """
        self.backend = backend
        self.model = model
        self.aws_region = aws_region
        self.aws_profile = aws_profile

        self._configure_backend()

    def _configure_backend(self) -> None:
        """Configure Claude Agent SDK backend via environment variables.

        The Claude Agent SDK uses environment variables to select the backend:
        - ANTHROPIC_API_KEY: Direct Anthropic API (default)
        - CLAUDE_CODE_USE_BEDROCK=1: Use AWS Bedrock
        - CLAUDE_CODE_USE_VERTEX=1: Use Google Vertex AI
        """
        if self.backend == "bedrock":
            os.environ["CLAUDE_CODE_USE_BEDROCK"] = "1"
            if self.aws_region:
                os.environ["AWS_REGION"] = self.aws_region
            if self.aws_profile:
                os.environ["AWS_PROFILE"] = self.aws_profile
        elif self.backend == "vertex":
            os.environ["CLAUDE_CODE_USE_VERTEX"] = "1"

    def _build_options(self, system_prompt: str | None) -> ClaudeAgentOptions:
        """Build single-turn, tool-less options."""
        kwargs: dict[str, Any] = {
            "allowed_tools": [],
            "disallowed_tools": list(BUILTIN_TOOLS),
            "max_turns": 1,
        }
        if system_prompt:
            kwargs["system_prompt"] = system_prompt
        if self.model:
            kwargs["model"] = self.model
        return ClaudeAgentOptions(**kwargs)

    async def _multimodal_prompt(
        self,
        prompt: str,
        images: Sequence[ImageInput],
    ) -> AsyncIterator[dict[str, Any]]:
        """Streaming-input message carrying text plus image blocks."""
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for image in images:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image.media_type,
                        "data": image.data,
                    },
                }
            )
        yield {
            "type": "user",
            "message": {"role": "user", "content": content},
            "parent_tool_use_id": None,
            "session_id": "default",
        }

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        images: Sequence[ImageInput] | None = None,
    ) -> str:
        """Generate a completion for the given prompt.

        Args:
            prompt: The user's message
            system_prompt: Instructions for this call
            images: Images to attach to the message

        Returns:
            The assistant's response text
        """
        options = self._build_options(system_prompt)
        message_input: Any = prompt
        if images:
            message_input = self._multimodal_prompt(prompt, images)

        full_response = ""
        async for message in query(prompt=message_input, options=options):
            if isinstance(message, AssistantMessage):
                for block in message.content:
                    if isinstance(block, TextBlock):
                        full_response += block.text

        return full_response

    async def close(self) -> None:
        """Clean up resources (no-op for stateless query API)."""
        pass
