"""Execution pipeline: code in, normalized outcome out."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from cellbook.exceptions import ExecutionError
from cellbook.observability import Timer, emit_counter, emit_timer, get_logger
from cellbook.protocols import RawExecution, SandboxHandle
from cellbook.sandbox.normalizer import NormalizedResult, normalize
from cellbook.sandbox.session import SessionManager

logger = get_logger(__name__)

NO_OUTPUT = "No output"
UNKNOWN_ERROR = "An unknown error occurred"


@dataclass
class ExecutionRequest:
    """One run invocation."""

    code: str


@dataclass
class ExecutionOutcome:
    """Result of running one request.

    results is None when the execution produced no result list and an
    empty list when the run failed before producing one.
    """

    success: bool
    output: str | None = None
    error: str | None = None
    results: list[NormalizedResult] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the client, leaving out absent fields."""
        data: dict[str, Any] = {"success": self.success}
        if self.output is not None:
            data["output"] = self.output
        if self.error is not None:
            data["error"] = self.error
        if self.results is not None:
            data["results"] = [result.to_dict() for result in self.results]
        return data


def select_output(execution: RawExecution) -> str:
    """Captured text, else the error traceback, else a placeholder."""
    if execution.text:
        return execution.text
    if execution.error is not None and execution.error.traceback:
        return execution.error.traceback
    return NO_OUTPUT


class ExecutionPipeline:
    """Runs code in the notebook's sandbox session.

    Each call is one round trip; nothing is retried and in-flight runs
    cannot be cancelled.
    """

    def __init__(self, sessions: SessionManager) -> None:
        self.sessions = sessions

    async def _submit(self, handle: SandboxHandle, request: ExecutionRequest) -> RawExecution:
        try:
            return await handle.run_code(request.code)
        except Exception as e:
            raise ExecutionError(str(e) or UNKNOWN_ERROR) from e

    async def run(self, code: str) -> ExecutionOutcome:
        """Run code and return a uniform outcome; never raises."""
        request = ExecutionRequest(code=code)

        with Timer() as timer:
            try:
                info = await self.sessions.ensure_session()
                execution = await self._submit(info.handle, request)
                results = None
                if execution.results is not None:
                    results = [normalize(raw) for raw in execution.results]
            except Exception as e:
                logger.error(
                    "Execution failed",
                    context={"code_length": len(code)},
                    error=e,
                )
                emit_counter("execution.failed")
                return ExecutionOutcome(
                    success=False,
                    error=str(e) or UNKNOWN_ERROR,
                    results=[],
                )

        logger.info(
            "Execution completed",
            context={
                "code_length": len(code),
                "result_count": len(results) if results is not None else 0,
                "raised": execution.error.name if execution.error else None,
            },
            duration_ms=timer.duration_ms,
        )
        emit_timer("execution.duration", timer.duration_ms)
        emit_counter("execution.completed")

        return ExecutionOutcome(
            success=True,
            output=select_output(execution),
            results=results,
        )

    async def run_all(
        self,
        codes: Sequence[str],
        pause_seconds: float = 0.1,
    ) -> list[ExecutionOutcome]:
        """Run cells top to bottom, one full round trip at a time.

        A failed cell does not stop the cells after it.
        """
        outcomes: list[ExecutionOutcome] = []
        for index, code in enumerate(codes):
            if index and pause_seconds > 0:
                await asyncio.sleep(pause_seconds)
            outcomes.append(await self.run(code))
        return outcomes
