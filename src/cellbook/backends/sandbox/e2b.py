"""E2B Code Interpreter sandbox backend.

Sandboxes run in E2B's cloud with a Jupyter kernel, so state persists
across runs and the last expression of a cell is returned as a rich
result (text, images, charts, ...).
"""

from typing import Any

from e2b_code_interpreter import AsyncSandbox

from cellbook.protocols.sandbox import ExecutionFailure, RawExecution


class E2BSandboxHandle:
    """Wraps a live AsyncSandbox."""

    def __init__(self, sandbox: AsyncSandbox) -> None:
        self._sandbox = sandbox
        self.sandbox_id = sandbox.sandbox_id

    async def set_timeout(self, seconds: int) -> None:
        """Set the remote lifetime, counted from now."""
        await self._sandbox.set_timeout(seconds)

    async def run_code(self, code: str) -> RawExecution:
        """Run code in the sandbox's kernel."""
        execution = await self._sandbox.run_code(code)

        error = None
        if execution.error is not None:
            error = ExecutionFailure(
                name=execution.error.name,
                value=execution.error.value,
                traceback=execution.error.traceback,
            )

        return RawExecution(
            text=execution.text,
            error=error,
            results=list(execution.results) if execution.results is not None else None,
        )

    async def write_file(self, name: str, content: str) -> None:
        """Write a file relative to the sandbox user's home directory."""
        await self._sandbox.files.write(name, content)

    async def close(self) -> None:
        """Kill the remote sandbox."""
        await self._sandbox.kill()


class E2BSandboxBackend:
    """Creates E2B Code Interpreter sandboxes.

    Example:
        backend = E2BSandboxBackend(template="code-interpreter-v1")
        handle = await backend.create(api_key=os.environ["E2B_API_KEY"])
        execution = await handle.run_code("1 + 1")
    """

    def __init__(
        self,
        template: str | None = None,
        limits: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize E2B backend.

        Args:
            template: Sandbox template name or ID (E2B default if not set)
            limits: Ignored; E2B enforces its own limits
            **kwargs: Ignored (for compatibility with other backends)
        """
        self.template = template
        self._limits = limits or {}

    async def create(self, api_key: str | None = None) -> E2BSandboxHandle:
        """Create a new sandbox.

        Falls back to the E2B_API_KEY environment variable when no key is
        given (handled by the SDK).
        """
        kwargs: dict[str, Any] = {}
        if self.template:
            kwargs["template"] = self.template
        if api_key:
            kwargs["api_key"] = api_key

        sandbox = await AsyncSandbox.create(**kwargs)
        return E2BSandboxHandle(sandbox)
