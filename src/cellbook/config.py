"""Configuration loading with environment variable substitution."""

import json
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from cellbook.exceptions import ConfigError

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")

# Remote sandbox lifetime: one hour
DEFAULT_SANDBOX_TTL_SECONDS = 60 * 60


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ConfigError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class SandboxLimitsConfig(BaseModel):
    """Resource limits honoured by backends that enforce them locally."""

    timeout_seconds: int = 30


class SandboxConfig(BaseModel):
    """Remote sandbox session configuration."""

    backend: str = "e2b"  # e2b | local
    api_key: str | None = None
    template: str | None = None  # E2B sandbox template
    ttl_seconds: int = DEFAULT_SANDBOX_TTL_SECONDS
    enforce_expiry: bool = False
    limits: SandboxLimitsConfig = Field(default_factory=SandboxLimitsConfig)


class StagingConfig(BaseModel):
    """File staging settings."""

    max_lines: int | None = None  # None keeps tabular files whole
    tabular_extensions: list[str] = Field(default_factory=lambda: [".csv"])
    tabular_content_types: list[str] = Field(default_factory=lambda: ["text/csv"])


class ExecutionConfig(BaseModel):
    """Code execution settings."""

    run_all_pause_seconds: float = 0.1


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "claude"  # claude | mock
    backend: str = "anthropic"  # anthropic | bedrock | vertex
    model: str | None = None
    aws_region: str | None = None
    aws_profile: str | None = None


class LoggingConfig(BaseModel):
    """Log output settings, applied when the server starts."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = Field(default_factory=list)


class Config(BaseModel):
    """Main configuration for cellbook."""

    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        # Substitute environment variables
        data = substitute_env_vars(data or {})
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        return cls.model_validate(data)
