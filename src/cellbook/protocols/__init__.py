"""Protocol interfaces for pluggable backends."""

from cellbook.protocols.sandbox import (
    ExecutionFailure,
    RawExecution,
    SandboxBackend,
    SandboxHandle,
)

__all__ = [
    "ExecutionFailure",
    "RawExecution",
    "SandboxBackend",
    "SandboxHandle",
]
