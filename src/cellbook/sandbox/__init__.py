"""Sandbox session management and code execution."""

from cellbook.sandbox.normalizer import RESULT_SLOTS, NormalizedResult, normalize
from cellbook.sandbox.pipeline import ExecutionOutcome, ExecutionPipeline, ExecutionRequest
from cellbook.sandbox.session import SandboxSession, SessionInfo, SessionManager
from cellbook.sandbox.staging import FileStager, StagedFile, is_tabular, truncate_tabular

__all__ = [
    "ExecutionOutcome",
    "ExecutionPipeline",
    "ExecutionRequest",
    "FileStager",
    "NormalizedResult",
    "RESULT_SLOTS",
    "SandboxSession",
    "SessionInfo",
    "SessionManager",
    "StagedFile",
    "is_tabular",
    "normalize",
    "truncate_tabular",
]
