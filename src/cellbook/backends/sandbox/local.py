"""Local subprocess-based sandbox for development."""

import asyncio
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Any
from uuid import uuid4

from cellbook.protocols.sandbox import ExecutionFailure, RawExecution

SCRIPT_NAME = "cell.py"


def _parse_failure(stderr: str) -> ExecutionFailure:
    """Build an ExecutionFailure from a Python traceback printed on stderr."""
    last_line = next(
        (line for line in reversed(stderr.strip().splitlines()) if line.strip()),
        "",
    )
    name, sep, value = last_line.partition(":")
    if not sep or " " in name.strip():
        return ExecutionFailure(name="Error", value=last_line, traceback=stderr)
    return ExecutionFailure(name=name.strip(), value=value.strip(), traceback=stderr)


class LocalSandboxHandle:
    """A working directory plus a fresh interpreter per run.

    State does not persist between runs: each cell is a separate process.
    """

    def __init__(self, sandbox_id: str, workdir: Path, timeout_seconds: int) -> None:
        self.sandbox_id = sandbox_id
        self.workdir = workdir
        self.timeout_seconds = timeout_seconds
        self.lifetime_seconds: int | None = None

    async def set_timeout(self, seconds: int) -> None:
        """Record the lifetime; nothing expires a local sandbox."""
        self.lifetime_seconds = seconds

    async def run_code(self, code: str) -> RawExecution:
        """Execute code in the working directory."""
        if not self.workdir.exists():
            raise RuntimeError(f"Sandbox not found: {self.sandbox_id}")

        script_path = self.workdir / SCRIPT_NAME
        script_path.write_text(code)

        proc = await asyncio.create_subprocess_exec(
            sys.executable,
            str(script_path),
            cwd=self.workdir,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            message = f"Execution timed out after {self.timeout_seconds} seconds"
            return RawExecution(
                text=None,
                error=ExecutionFailure(name="TimeoutError", value=message, traceback=message),
            )

        text = stdout.decode() if stdout else None
        if proc.returncode:
            return RawExecution(text=text, error=_parse_failure(stderr.decode()))
        return RawExecution(text=text)

    async def write_file(self, name: str, content: str) -> None:
        """Write a file into the working directory."""
        file_path = self.workdir / name
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)

    async def close(self) -> None:
        """Remove the working directory."""
        if self.workdir.exists():
            shutil.rmtree(self.workdir, ignore_errors=True)


class LocalSandboxBackend:
    """Subprocess-based sandbox for local development.

    WARNING: NOT for production use. Provides no security isolation.
    Use the E2B backend for anything that runs untrusted code.
    """

    def __init__(
        self,
        limits: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize local sandbox backend.

        Args:
            limits: Resource limits (timeout_seconds used, others ignored)
            **kwargs: Ignored (for compatibility with other backends)
        """
        self._limits = limits or {}
        self._timeout = self._limits.get("timeout_seconds", 30)

    async def create(self, api_key: str | None = None) -> LocalSandboxHandle:
        """Create a new working directory and return its handle."""
        sandbox_id = f"local-{uuid4().hex[:8]}"
        workdir = Path(tempfile.mkdtemp(prefix="cellbook-sandbox-"))
        return LocalSandboxHandle(sandbox_id, workdir, self._timeout)
