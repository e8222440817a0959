"""Tests for the local subprocess sandbox backend."""

import pytest

from cellbook.backends.sandbox.local import LocalSandboxBackend, LocalSandboxHandle, _parse_failure
from cellbook.protocols import SandboxHandle


class TestLocalSandbox:
    """Tests for LocalSandboxBackend and its handles."""

    @pytest.fixture
    def backend(self) -> LocalSandboxBackend:
        """Create a local sandbox backend."""
        return LocalSandboxBackend(limits={"timeout_seconds": 5})

    @pytest.mark.asyncio
    async def test_create_sandbox(self, backend: LocalSandboxBackend) -> None:
        """Create a new sandbox."""
        handle = await backend.create()

        assert handle.sandbox_id.startswith("local-")
        assert handle.workdir.exists()
        assert isinstance(handle, SandboxHandle)
        await handle.close()

    @pytest.mark.asyncio
    async def test_execute_simple_code(self, backend: LocalSandboxBackend) -> None:
        """Execute simple Python code."""
        handle = await backend.create()

        execution = await handle.run_code('print("Hello, World!")')

        assert execution.text.strip() == "Hello, World!"
        assert execution.error is None
        await handle.close()

    @pytest.mark.asyncio
    async def test_execute_reads_staged_file(self, backend: LocalSandboxBackend) -> None:
        """Code sees files written into the sandbox."""
        handle = await backend.create()
        await handle.write_file("input.csv", "a,b\n1,2")

        code = """
with open('input.csv') as f:
    print(f.read())
"""
        execution = await handle.run_code(code)

        assert "a,b" in execution.text
        await handle.close()

    @pytest.mark.asyncio
    async def test_write_file_creates_directories(self, backend: LocalSandboxBackend) -> None:
        """Nested paths are created on write."""
        handle = await backend.create()

        await handle.write_file("data/raw/input.txt", "hello")

        assert (handle.workdir / "data" / "raw" / "input.txt").read_text() == "hello"
        await handle.close()

    @pytest.mark.asyncio
    async def test_execute_runtime_error(self, backend: LocalSandboxBackend) -> None:
        """A raising cell reports the exception name and traceback."""
        handle = await backend.create()

        execution = await handle.run_code("1 / 0")

        assert execution.error is not None
        assert execution.error.name == "ZeroDivisionError"
        assert execution.error.value == "division by zero"
        assert "Traceback" in execution.error.traceback
        await handle.close()

    @pytest.mark.asyncio
    async def test_execute_syntax_error(self, backend: LocalSandboxBackend) -> None:
        """Execute code with syntax error."""
        handle = await backend.create()

        execution = await handle.run_code("def broken(")

        assert execution.error is not None
        assert execution.error.name == "SyntaxError"
        await handle.close()

    @pytest.mark.asyncio
    async def test_execute_timeout(self) -> None:
        """Long-running code is killed after the timeout."""
        backend = LocalSandboxBackend(limits={"timeout_seconds": 1})
        handle = await backend.create()

        execution = await handle.run_code("import time; time.sleep(10)")

        assert execution.error is not None
        assert execution.error.name == "TimeoutError"
        assert "timed out" in execution.error.value
        await handle.close()

    @pytest.mark.asyncio
    async def test_set_timeout_recorded(self, backend: LocalSandboxBackend) -> None:
        """The requested lifetime is recorded."""
        handle = await backend.create()

        await handle.set_timeout(3600)

        assert handle.lifetime_seconds == 3600
        await handle.close()

    @pytest.mark.asyncio
    async def test_close_removes_workdir(self, backend: LocalSandboxBackend) -> None:
        """Closing removes the working directory."""
        handle = await backend.create()
        workdir = handle.workdir

        await handle.close()

        assert not workdir.exists()

    @pytest.mark.asyncio
    async def test_run_after_close_raises(self, backend: LocalSandboxBackend) -> None:
        """A closed sandbox cannot run code."""
        handle = await backend.create()
        await handle.close()

        with pytest.raises(RuntimeError, match="Sandbox not found"):
            await handle.run_code("print(1)")

    @pytest.mark.asyncio
    async def test_each_create_is_isolated(self, backend: LocalSandboxBackend) -> None:
        """Separate sandboxes have separate working directories."""
        first = await backend.create()
        second = await backend.create()

        assert first.sandbox_id != second.sandbox_id
        assert first.workdir != second.workdir
        await first.close()
        await second.close()


class TestParseFailure:
    """Tests for traceback parsing."""

    def test_named_exception(self) -> None:
        stderr = 'Traceback (most recent call last):\n  File "cell.py", line 1\nKeyError: \'x\'\n'
        failure = _parse_failure(stderr)

        assert failure.name == "KeyError"
        assert failure.value == "'x'"
        assert failure.traceback == stderr

    def test_unparseable_output(self) -> None:
        failure = _parse_failure("Killed\n")

        assert failure.name == "Error"
        assert failure.value == "Killed"


def test_handle_satisfies_protocol(tmp_path) -> None:
    """LocalSandboxHandle matches the SandboxHandle protocol."""
    assert isinstance(LocalSandboxHandle("local-1", tmp_path, 5), SandboxHandle)
