"""Main Notebook class for cellbook."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from cellbook.assist import CodeAssistant
from cellbook.cells import Cell
from cellbook.config import Config
from cellbook.exceptions import CellbookError, ReviewRequiredError
from cellbook.llm import LLMClient, create_llm_client
from cellbook.observability import RequestContext, configure_logging, emit_counter, get_logger
from cellbook.plugins import create_sandbox_backend
from cellbook.protocols import SandboxBackend
from cellbook.sandbox import (
    ExecutionPipeline,
    FileStager,
    NormalizedResult,
    SessionManager,
    StagedFile,
)

logger = get_logger(__name__)

GENERATE_FAILED = "Failed to generate code"
ANALYZE_FAILED = "Failed to analyze output"
FIX_FAILED = "Failed to fix code"


def _failure(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": message, **extra}


class Notebook:
    """Composition root: one sandbox session shared by every operation.

    Every public operation returns a dict with a "success" key and never
    raises; failures come back as {"success": False, "error": message}.

    Example usage:
        notebook = Notebook.from_config("cellbook.yaml")

        outcome = await notebook.run("import math\\nmath.pi")
        print(outcome["output"])

        generated = await notebook.generate_code("Plot a sine wave")

        # Start HTTP server
        notebook.serve(port=8080)
    """

    def __init__(
        self,
        config: Config,
        sandbox_backend: SandboxBackend | None = None,
        llm: LLMClient | None = None,
    ) -> None:
        """Wire the components together.

        Args:
            config: Notebook configuration
            sandbox_backend: Sandbox service (created from config if not given)
            llm: LLM client (created from config if not given)
        """
        self.config = config

        if sandbox_backend is None:
            sandbox_config = config.sandbox
            sandbox_backend = create_sandbox_backend(
                sandbox_config.backend,
                template=sandbox_config.template,
                limits=sandbox_config.limits.model_dump(),
            )
        if llm is None:
            llm_config = config.llm
            llm = create_llm_client(
                provider=llm_config.provider,
                backend=llm_config.backend,
                model=llm_config.model,
                aws_region=llm_config.aws_region,
                aws_profile=llm_config.aws_profile,
            )

        self.sessions = SessionManager.from_config(config.sandbox, sandbox_backend)
        self.pipeline = ExecutionPipeline(self.sessions)
        self.stager = FileStager.from_config(self.sessions, config.staging)
        self.assistant = CodeAssistant(llm)
        self.llm = llm

    @classmethod
    def from_config(cls, path: str | Path) -> "Notebook":
        """Create a Notebook from a YAML or JSON configuration file."""
        return cls(Config.from_file(path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "Notebook":
        """Create a Notebook from a configuration dictionary."""
        return cls(Config.from_dict(config_dict))

    async def run(self, code: str) -> dict[str, Any]:
        """Execute code in the sandbox.

        Returns:
            {"success": True, "output": ..., "results": [...]} or
            {"success": False, "error": ..., "results": []}
        """
        async with RequestContext(operation="run"):
            outcome = await self.pipeline.run(code)
            return outcome.to_dict()

    async def run_cell(self, cell: Cell) -> dict[str, Any]:
        """Run a cell through its status machine.

        Unconfirmed AI-generated code is refused with review_required set.
        """
        async with RequestContext(cell_id=cell.id, operation="run"):
            try:
                cell.start()
            except ReviewRequiredError as e:
                emit_counter("notebook.review_required")
                return _failure(str(e), review_required=True, cell=cell.to_dict())
            except CellbookError as e:
                return _failure(str(e), cell=cell.to_dict())

            outcome = await self.pipeline.run(cell.code)
            cell.finish(outcome)
            return {**outcome.to_dict(), "cell": cell.to_dict()}

    async def run_all(self, codes: Sequence[str]) -> dict[str, Any]:
        """Execute cells top to bottom, one at a time.

        Returns:
            {"success": True, "outcomes": [...]} with one outcome per cell,
            in order; individual outcomes carry their own success flag.
        """
        async with RequestContext(operation="run_all"):
            outcomes = await self.pipeline.run_all(
                codes,
                pause_seconds=self.config.execution.run_all_pause_seconds,
            )
            return {
                "success": True,
                "outcomes": [outcome.to_dict() for outcome in outcomes],
            }

    async def generate_code(self, prompt: str) -> dict[str, Any]:
        """Generate code from a natural-language prompt.

        Returns:
            {"success": True, "code": ..., "ai_generated": True}
        """
        async with RequestContext(operation="generate_code"):
            try:
                code = await self.assistant.generate_code(prompt)
            except Exception as e:
                logger.error("Code generation error", error=e)
                return _failure(GENERATE_FAILED)
            return {"success": True, "code": code, "ai_generated": True}

    async def generate_code_with_files(
        self,
        prompt: str,
        files: Sequence[StagedFile],
    ) -> dict[str, Any]:
        """Stage files in the sandbox, then generate code that reads them.

        Returns:
            {"success": True, "code": ..., "files": [names], "ai_generated": True}
        """
        async with RequestContext(operation="generate_code_with_files"):
            try:
                names = await self.stager.stage_files(self.stager.prepare(files))
                code = await self.assistant.generate_code_with_files(prompt, names)
            except Exception as e:
                logger.error("Code generation error", context={"file_count": len(files)}, error=e)
                return _failure(str(e) or GENERATE_FAILED)
            return {"success": True, "code": code, "files": names, "ai_generated": True}

    async def analyze_output(
        self,
        output: str,
        results: Sequence[NormalizedResult | Mapping[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Explain a cell's output, including its images.

        Returns:
            {"success": True, "analysis": ...}
        """
        async with RequestContext(operation="analyze_output"):
            try:
                analysis = await self.assistant.analyze_output(output, results)
            except Exception as e:
                logger.error("Analysis error", error=e)
                return _failure(ANALYZE_FAILED)
            return {"success": True, "analysis": analysis}

    async def fix_code(self, code: str, error: str) -> dict[str, Any]:
        """Suggest a fix for code that produced error.

        Returns:
            {"success": True, "code": ..., "ai_generated": True}
        """
        async with RequestContext(operation="fix_code"):
            try:
                fixed = await self.assistant.fix_code(code, error)
            except Exception as e:
                logger.error("Fix error", error=e)
                return _failure(FIX_FAILED)
            return {"success": True, "code": fixed, "ai_generated": True}

    def time_remaining(self) -> dict[str, Any]:
        """Seconds left in the sandbox session (0 before the first run).

        Returns:
            {"success": True, "time_remaining": seconds, "ttl": seconds}
        """
        return {
            "success": True,
            "time_remaining": self.sessions.time_remaining(),
            "ttl": self.sessions.ttl_seconds,
        }

    def serve(
        self,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        """Start the HTTP server.

        Log output is configured from the logging section first.

        Args:
            host: Host to bind to (defaults to config value)
            port: Port to bind to (defaults to config value)
        """
        import uvicorn

        from cellbook.server.app import create_app

        configure_logging(self.config.logging.level, self.config.logging.format)
        app = create_app(self)
        uvicorn.run(
            app,
            host=host or self.config.server.host,
            port=port or self.config.server.port,
            log_level=self.config.logging.level.lower(),
        )

    async def close(self) -> None:
        """Release the sandbox session and the LLM client."""
        await self.sessions.close()
        await self.llm.close()

    async def __aenter__(self) -> "Notebook":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
