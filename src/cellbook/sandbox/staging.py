"""Staging of user files into the sandbox's working filesystem."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, replace

from cellbook.config import StagingConfig
from cellbook.exceptions import StagingError
from cellbook.observability import Timer, emit_counter, emit_timer, get_logger
from cellbook.protocols import SandboxHandle
from cellbook.sandbox.session import SessionManager

logger = get_logger(__name__)

DEFAULT_TABULAR_EXTENSIONS = (".csv",)
DEFAULT_TABULAR_CONTENT_TYPES = ("text/csv",)


@dataclass
class StagedFile:
    """A file to place in the sandbox, referenced by name in generated code."""

    name: str
    content: str
    content_type: str | None = None


def is_tabular(
    file: StagedFile,
    extensions: Sequence[str] = DEFAULT_TABULAR_EXTENSIONS,
    content_types: Sequence[str] = DEFAULT_TABULAR_CONTENT_TYPES,
) -> bool:
    """Check content type first, then the file extension."""
    if file.content_type and file.content_type.lower() in content_types:
        return True
    name = file.name.lower()
    return any(name.endswith(ext.lower()) for ext in extensions)


def truncate_tabular(
    file: StagedFile,
    max_lines: int | None,
    extensions: Sequence[str] = DEFAULT_TABULAR_EXTENSIONS,
    content_types: Sequence[str] = DEFAULT_TABULAR_CONTENT_TYPES,
) -> StagedFile:
    """Keep only the first max_lines lines of a tabular file.

    Non-tabular files, and any file when max_lines is None or 0, are
    returned unchanged.
    """
    if not max_lines or not is_tabular(file, extensions, content_types):
        return file
    lines = file.content.split("\n")
    return replace(file, content="\n".join(lines[:max_lines]))


class FileStager:
    """Writes files into the notebook's sandbox session.

    Writes are issued concurrently. A failed write fails the whole call
    and nothing is rolled back: other files may or may not have landed.
    """

    def __init__(
        self,
        sessions: SessionManager,
        max_lines: int | None = None,
        tabular_extensions: Sequence[str] = DEFAULT_TABULAR_EXTENSIONS,
        tabular_content_types: Sequence[str] = DEFAULT_TABULAR_CONTENT_TYPES,
    ) -> None:
        """Initialize file stager.

        Args:
            sessions: Session manager owning the sandbox
            max_lines: Leading lines kept from tabular files (None keeps all)
            tabular_extensions: File extensions treated as tabular
            tabular_content_types: Content types treated as tabular
        """
        self.sessions = sessions
        self.max_lines = max_lines
        self.tabular_extensions = tuple(tabular_extensions)
        self.tabular_content_types = tuple(tabular_content_types)

    @classmethod
    def from_config(cls, sessions: SessionManager, config: StagingConfig) -> "FileStager":
        return cls(
            sessions,
            max_lines=config.max_lines,
            tabular_extensions=config.tabular_extensions,
            tabular_content_types=config.tabular_content_types,
        )

    def prepare(self, files: Sequence[StagedFile]) -> list[StagedFile]:
        """Apply the size limit to tabular files."""
        return [
            truncate_tabular(
                file,
                self.max_lines,
                self.tabular_extensions,
                self.tabular_content_types,
            )
            for file in files
        ]

    async def stage_files(self, files: Sequence[StagedFile]) -> list[str]:
        """Write files into the session and return their names in input order.

        Raises:
            SessionInitError: If no session could be created
            StagingError: If any write failed
        """
        info = await self.sessions.ensure_session()

        with Timer() as timer:
            outcomes = await asyncio.gather(
                *(self._write(info.handle, file) for file in files),
                return_exceptions=True,
            )

        failures = [
            (file.name, outcome)
            for file, outcome in zip(files, outcomes)
            if isinstance(outcome, BaseException)
        ]
        if failures:
            names = ", ".join(name for name, _ in failures)
            first_error = failures[0][1]
            logger.error(
                "File staging failed",
                context={"failed": [name for name, _ in failures], "file_count": len(files)},
                error=first_error if isinstance(first_error, Exception) else None,
            )
            emit_counter("staging.failed")
            raise StagingError(f"Failed to stage {names}: {first_error}") from first_error

        logger.info(
            "Files staged",
            context={"file_count": len(files), "sandbox_id": info.handle.sandbox_id},
            duration_ms=timer.duration_ms,
        )
        emit_timer("staging.duration", timer.duration_ms)
        return [file.name for file in files]

    async def _write(self, handle: SandboxHandle, file: StagedFile) -> None:
        await handle.write_file(file.name, file.content)
