"""Pytest configuration and fixtures."""

import asyncio
import logging

import pytest

from cellbook.config import Config
from cellbook.llm.mock import MockClaudeClient
from cellbook.notebook import Notebook
from cellbook.observability import (
    PACKAGE_LOGGER,
    register_metric_callback,
    unregister_metric_callback,
)
from cellbook.protocols import RawExecution
from cellbook.sandbox import ExecutionPipeline, FileStager, SessionManager


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSandboxHandle:
    """In-memory sandbox session with scripted executions."""

    def __init__(self, sandbox_id: str) -> None:
        self.sandbox_id = sandbox_id
        self.timeout: int | None = None
        self.codes: list[str] = []
        self.executions: list[RawExecution] = []
        self.run_error: Exception | None = None
        self.files: dict[str, str] = {}
        self.write_errors: dict[str, Exception] = {}
        self.closed = False

    async def set_timeout(self, seconds: int) -> None:
        self.timeout = seconds

    async def run_code(self, code: str) -> RawExecution:
        self.codes.append(code)
        await asyncio.sleep(0)
        if self.run_error is not None:
            raise self.run_error
        if self.executions:
            return self.executions.pop(0)
        return RawExecution(text=None, results=[])

    async def write_file(self, name: str, content: str) -> None:
        await asyncio.sleep(0)
        if name in self.write_errors:
            raise self.write_errors[name]
        self.files[name] = content

    async def close(self) -> None:
        self.closed = True


class FakeSandboxBackend:
    """Creates FakeSandboxHandles and records every creation."""

    def __init__(self, create_error: Exception | None = None, delay: float = 0.0) -> None:
        self.create_error = create_error
        self.delay = delay
        self.created: list[FakeSandboxHandle] = []
        self.api_keys: list[str | None] = []

    async def create(self, api_key: str | None = None) -> FakeSandboxHandle:
        self.api_keys.append(api_key)
        await asyncio.sleep(self.delay)
        if self.create_error is not None:
            raise self.create_error
        handle = FakeSandboxHandle(f"fake-{len(self.created) + 1}")
        self.created.append(handle)
        return handle

    @property
    def handle(self) -> FakeSandboxHandle:
        """The most recently created handle."""
        return self.created[-1]


@pytest.fixture
def metrics():
    """Metric events (name, value, labels) emitted during the test."""
    received: list[tuple] = []

    def callback(name: str, value: float, labels: dict) -> None:
        received.append((name, value, labels))

    register_metric_callback(callback)
    yield received
    unregister_metric_callback(callback)


@pytest.fixture
def package_logger():
    """The cellbook logger, with its handlers and level restored afterwards."""
    package = logging.getLogger(PACKAGE_LOGGER)
    handlers = list(package.handlers)
    level = package.level
    yield package
    package.handlers[:] = handlers
    package.setLevel(level)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeSandboxBackend:
    return FakeSandboxBackend()


@pytest.fixture
def sessions(backend: FakeSandboxBackend, clock: FakeClock) -> SessionManager:
    return SessionManager(backend, api_key="test-key", ttl_seconds=3600, clock=clock)


@pytest.fixture
def pipeline(sessions: SessionManager) -> ExecutionPipeline:
    return ExecutionPipeline(sessions)


@pytest.fixture
def stager(sessions: SessionManager) -> FileStager:
    return FileStager(sessions)


@pytest.fixture
def llm() -> MockClaudeClient:
    return MockClaudeClient()


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "sandbox": {
            "backend": "local",
            "api_key": "test-key",
            "ttl_seconds": 1800,
            "limits": {"timeout_seconds": 5},
        },
        "staging": {"max_lines": 100},
        "execution": {"run_all_pause_seconds": 0},
        "llm": {"provider": "mock"},
    }


@pytest.fixture
def notebook(
    sample_config_dict,
    backend: FakeSandboxBackend,
    llm: MockClaudeClient,
) -> Notebook:
    """Notebook wired to the fake sandbox and mock LLM."""
    return Notebook(Config.from_dict(sample_config_dict), sandbox_backend=backend, llm=llm)
