"""Factory function for creating LLM clients."""

from typing import Any

from cellbook.llm.base import LLMClient


def create_llm_client(
    provider: str = "claude",
    backend: str = "anthropic",
    model: str | None = None,
    aws_region: str | None = None,
    aws_profile: str | None = None,
    **kwargs: Any,
) -> LLMClient:
    """Create an LLM client based on provider.

    Args:
        provider: Provider name ("claude" or "mock")
        backend: API backend ("anthropic", "bedrock", or "vertex")
        model: Model ID (SDK default if not set)
        aws_region: AWS region for Bedrock
        aws_profile: AWS profile for Bedrock credentials
        **kwargs: Additional provider-specific options

    Returns:
        Configured LLM client

    Raises:
        ValueError: If provider is unknown
    """
    if provider == "claude":
        from cellbook.llm.claude import ClaudeClient

        return ClaudeClient(
            backend=backend,
            model=model,
            aws_region=aws_region,
            aws_profile=aws_profile,
        )

    elif provider == "mock":
        from cellbook.llm.mock import MockClaudeClient

        return MockClaudeClient(**kwargs)

    else:
        raise ValueError(f"Unknown LLM provider: {provider}. Use 'claude' or 'mock'.")
