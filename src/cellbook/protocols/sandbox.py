"""Sandbox protocol for remote code execution services."""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class ExecutionFailure:
    """Error raised by the code inside the sandbox (not by the transport)."""

    name: str
    value: str
    traceback: str


@dataclass
class RawExecution:
    """Result of one remote run call, before normalization.

    `results` holds the backend's own rich result objects (or mappings);
    `None` means the execution produced no result list at all.
    """

    text: str | None = None
    error: ExecutionFailure | None = None
    results: list[Any] | None = field(default=None)


@runtime_checkable
class SandboxHandle(Protocol):
    """A live remote execution session."""

    sandbox_id: str

    async def set_timeout(self, seconds: int) -> None:
        """Set the remote idle/lifetime timeout."""
        ...

    async def run_code(self, code: str) -> RawExecution:
        """Execute code in the session and return the raw result."""
        ...

    async def write_file(self, name: str, content: str) -> None:
        """Write a file into the session's working filesystem."""
        ...

    async def close(self) -> None:
        """Release the session."""
        ...


class SandboxBackend(Protocol):
    """Protocol for sandbox services (E2B, local subprocess)."""

    async def create(self, api_key: str | None = None) -> SandboxHandle:
        """Create a new remote session and return its handle."""
        ...
