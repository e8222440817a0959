"""Tests for the Notebook composition root."""

import logging

import pytest

from cellbook.cells import Cell
from cellbook.config import Config
from cellbook.notebook import ANALYZE_FAILED, FIX_FAILED, GENERATE_FAILED, Notebook
from cellbook.observability import TextFormatter
from cellbook.protocols import RawExecution
from cellbook.sandbox import StagedFile


class TestNotebookWiring:
    """Tests for construction."""

    def test_components_share_one_session_manager(self, notebook: Notebook) -> None:
        assert notebook.pipeline.sessions is notebook.sessions
        assert notebook.stager.sessions is notebook.sessions
        assert notebook.stager.max_lines == 100
        assert notebook.sessions.ttl_seconds == 1800

    def test_from_dict_builds_backends_from_config(self, sample_config_dict) -> None:
        """Backend and LLM come from config when not injected."""
        from cellbook.backends.sandbox.local import LocalSandboxBackend
        from cellbook.llm.mock import MockClaudeClient

        notebook = Notebook.from_dict(sample_config_dict)

        assert isinstance(notebook.sessions.backend, LocalSandboxBackend)
        assert isinstance(notebook.llm, MockClaudeClient)


class TestRun:
    """Tests for running code."""

    @pytest.mark.asyncio
    async def test_run(self, notebook: Notebook, backend) -> None:
        result = await notebook.run("x = 1")

        assert result == {"success": True, "output": "No output", "results": []}
        assert backend.api_keys == ["test-key"]

    @pytest.mark.asyncio
    async def test_run_failure_is_a_result(self, notebook: Notebook, backend) -> None:
        backend.create_error = RuntimeError("invalid API key")

        result = await notebook.run("x = 1")

        assert result == {"success": False, "error": "invalid API key", "results": []}

    @pytest.mark.asyncio
    async def test_run_cell_refuses_unreviewed_code(self, notebook: Notebook, backend) -> None:
        cell = Cell()
        cell.set_code("import os", ai_generated=True)

        result = await notebook.run_cell(cell)

        assert result["success"] is False
        assert result["review_required"] is True
        assert result["cell"]["needs_review"] is True
        assert backend.created == []

    @pytest.mark.asyncio
    async def test_run_cell_user_code(self, notebook: Notebook) -> None:
        cell = Cell(code="1 + 1")
        info = await notebook.sessions.ensure_session()
        info.handle.executions.append(RawExecution(text="2", results=[{"text": "2"}]))

        result = await notebook.run_cell(cell)

        assert result["success"] is True
        assert result["output"] == "2"
        assert result["cell"]["status"] == "succeeded"
        assert result["cell"]["results"] == [{"text": "2"}]

    @pytest.mark.asyncio
    async def test_run_cell_already_executing(self, notebook: Notebook) -> None:
        cell = Cell(code="1")
        cell.start()

        result = await notebook.run_cell(cell)

        assert result["success"] is False
        assert "review_required" not in result

    @pytest.mark.asyncio
    async def test_run_all(self, notebook: Notebook, backend) -> None:
        result = await notebook.run_all(["a = 1", "a"])

        assert result["success"] is True
        assert len(result["outcomes"]) == 2
        assert backend.handle.codes == ["a = 1", "a"]


class TestAssist:
    """Tests for AI-assist operations."""

    @pytest.mark.asyncio
    async def test_generate_code(self, notebook: Notebook, llm) -> None:
        llm.responses.append("```python\nprint('hi')\n```")

        result = await notebook.generate_code("say hi")

        assert result == {"success": True, "code": "print('hi')", "ai_generated": True}

    @pytest.mark.asyncio
    async def test_generate_code_failure(self, notebook: Notebook, llm) -> None:
        llm.error = RuntimeError("rate limited")

        result = await notebook.generate_code("say hi")

        assert result == {"success": False, "error": GENERATE_FAILED}

    @pytest.mark.asyncio
    async def test_generate_with_files_stages_then_generates(
        self, notebook: Notebook, backend, llm
    ) -> None:
        """Files are truncated, staged, then named in the prompt."""
        llm.responses.append("```python\nimport pandas as pd\n```")
        rows = "\n".join(f"{i},{i}" for i in range(500))

        result = await notebook.generate_code_with_files(
            "summarize",
            [StagedFile("data.csv", rows)],
        )

        assert result == {
            "success": True,
            "code": "import pandas as pd",
            "files": ["data.csv"],
            "ai_generated": True,
        }
        assert len(backend.handle.files["data.csv"].split("\n")) == 100
        assert "- data.csv" in llm.calls[0].prompt

    @pytest.mark.asyncio
    async def test_generate_with_files_staging_failure(
        self, notebook: Notebook, backend, llm
    ) -> None:
        """A staging failure is reported and the model is not called."""
        backend.create_error = RuntimeError("no quota")

        result = await notebook.generate_code_with_files("x", [StagedFile("a.csv", "1")])

        assert result == {"success": False, "error": "no quota"}
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_analyze_output(self, notebook: Notebook, llm) -> None:
        llm.responses.append("Looks right.")

        result = await notebook.analyze_output("42", [{"png": "iVBOR"}])

        assert result == {"success": True, "analysis": "Looks right."}
        assert len(llm.calls[0].images) == 1

    @pytest.mark.asyncio
    async def test_analyze_output_failure(self, notebook: Notebook, llm) -> None:
        llm.error = RuntimeError("down")

        assert await notebook.analyze_output("42") == {"success": False, "error": ANALYZE_FAILED}

    @pytest.mark.asyncio
    async def test_fix_code(self, notebook: Notebook, llm) -> None:
        llm.responses.append("```python\nx = 1\nx\n```")

        result = await notebook.fix_code("x", "NameError")

        assert result == {"success": True, "code": "x = 1\nx", "ai_generated": True}

    @pytest.mark.asyncio
    async def test_fix_code_failure(self, notebook: Notebook, llm) -> None:
        llm.error = RuntimeError("down")

        assert await notebook.fix_code("x", "NameError") == {"success": False, "error": FIX_FAILED}


class TestLifecycle:
    """Tests for time remaining and shutdown."""

    @pytest.mark.asyncio
    async def test_time_remaining(self, notebook: Notebook) -> None:
        assert notebook.time_remaining() == {"success": True, "time_remaining": 0, "ttl": 1800}

        await notebook.run("1")

        assert notebook.time_remaining()["time_remaining"] > 1790

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_session(self, notebook: Notebook, backend) -> None:
        async with notebook:
            await notebook.run("1")

        assert backend.handle.closed

    def test_serve_configures_logging(
        self, sample_config_dict, backend, llm, package_logger, monkeypatch
    ) -> None:
        """serve() applies the logging section before starting uvicorn."""
        import uvicorn

        started = {}
        monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: started.update(kwargs))
        sample_config_dict["logging"] = {"level": "DEBUG", "format": "text"}
        notebook = Notebook(Config.from_dict(sample_config_dict), sandbox_backend=backend, llm=llm)

        notebook.serve(port=9000)

        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0].formatter, TextFormatter)
        assert started["port"] == 9000
        assert started["log_level"] == "debug"
