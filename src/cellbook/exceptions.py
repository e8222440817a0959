"""Cellbook exceptions."""


class CellbookError(Exception):
    """Base exception for cellbook."""

    pass


class ConfigError(CellbookError):
    """Configuration error."""

    pass


class SandboxError(CellbookError):
    """Sandbox-related error."""

    pass


class SessionInitError(SandboxError):
    """Remote sandbox session could not be created."""

    pass


class SessionExpiredError(SandboxError):
    """Sandbox session has outlived its lifetime."""

    pass


class ExecutionError(SandboxError):
    """Remote run call failed."""

    pass


class StagingError(SandboxError):
    """One or more file writes failed."""

    pass


class AssistError(CellbookError):
    """AI assistance error."""

    pass


class GenerationError(AssistError):
    """Text generation failed or returned unusable content."""

    pass


class AnalysisError(AssistError):
    """Output analysis failed."""

    pass


class FixError(AssistError):
    """Error-fix suggestion failed."""

    pass


class ReviewRequiredError(CellbookError):
    """AI-authored code must be confirmed before it runs."""

    pass


class CellStateError(CellbookError):
    """Invalid cell status transition."""

    pass
