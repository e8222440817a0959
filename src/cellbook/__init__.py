"""Cellbook - notebook backend running code cells in a remote sandbox."""

from cellbook.caching import SingleFlight
from cellbook.cells import Cell, CellStatus
from cellbook.config import Config
from cellbook.notebook import Notebook
from cellbook.observability import (
    RequestContext,
    configure_logging,
    register_metric_callback,
    unregister_metric_callback,
)
from cellbook.sandbox import (
    ExecutionOutcome,
    ExecutionPipeline,
    FileStager,
    NormalizedResult,
    SessionManager,
    StagedFile,
    normalize,
)

__version__ = "0.1.0"
__all__ = [
    # Core
    "Cell",
    "CellStatus",
    "Config",
    "Notebook",
    # Sandbox
    "ExecutionOutcome",
    "ExecutionPipeline",
    "FileStager",
    "NormalizedResult",
    "SessionManager",
    "SingleFlight",
    "StagedFile",
    "normalize",
    # Observability
    "RequestContext",
    "configure_logging",
    "register_metric_callback",
    "unregister_metric_callback",
]
