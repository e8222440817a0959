"""Sandbox session manager.

Owns at most one live remote sandbox session. The session is created
lazily on first use and reused until the manager is discarded; expiry is
left to the remote service unless enforce_expiry is set.
"""

import time
from dataclasses import dataclass
from typing import Callable

from cellbook.caching import SingleFlight
from cellbook.config import DEFAULT_SANDBOX_TTL_SECONDS, SandboxConfig
from cellbook.exceptions import SessionExpiredError, SessionInitError
from cellbook.observability import Timer, emit_counter, emit_timer, get_logger
from cellbook.protocols import SandboxBackend, SandboxHandle

logger = get_logger(__name__)

_CREATE_KEY = "sandbox-session"


@dataclass
class SandboxSession:
    """Session state: the handle and when it was created."""

    ttl_seconds: float
    handle: SandboxHandle | None = None
    created_at: float | None = None


@dataclass(frozen=True)
class SessionInfo:
    """What ensure_session hands to callers."""

    handle: SandboxHandle
    created_at: float


class SessionManager:
    """Owns the notebook's single sandbox session.

    Concurrent first calls to ensure_session share one in-flight creation,
    so at most one remote session is ever created per manager.

    Example:
        manager = SessionManager(backend, api_key="e2b_...")
        info = await manager.ensure_session()
        execution = await info.handle.run_code("1 + 1")
        manager.time_remaining()  # seconds, advisory
    """

    def __init__(
        self,
        backend: SandboxBackend,
        api_key: str | None = None,
        ttl_seconds: float = DEFAULT_SANDBOX_TTL_SECONDS,
        enforce_expiry: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize session manager.

        Args:
            backend: Sandbox service used to create sessions
            api_key: Credential passed to the sandbox service
            ttl_seconds: Remote session lifetime
            enforce_expiry: Refuse to hand out a session past its lifetime
            clock: Wall clock (seconds), injectable for tests
        """
        self.backend = backend
        self.api_key = api_key
        self.enforce_expiry = enforce_expiry
        self._clock = clock
        self._session = SandboxSession(ttl_seconds=ttl_seconds)
        self._single_flight = SingleFlight()

    @classmethod
    def from_config(cls, config: SandboxConfig, backend: SandboxBackend) -> "SessionManager":
        """Create a manager from the sandbox configuration section."""
        return cls(
            backend,
            api_key=config.api_key,
            ttl_seconds=config.ttl_seconds,
            enforce_expiry=config.enforce_expiry,
        )

    @property
    def session(self) -> SandboxSession:
        """Current session state."""
        return self._session

    @property
    def ttl_seconds(self) -> float:
        return self._session.ttl_seconds

    async def ensure_session(self) -> SessionInfo:
        """Return the live session, creating it on first use.

        An existing handle is returned unchanged: no freshness check and no
        renewal.

        Raises:
            SessionInitError: If the remote session could not be created
            SessionExpiredError: If expiry is enforced and the session is past its lifetime
        """
        if self._session.handle is None:
            return await self._single_flight.do(_CREATE_KEY, self._create)

        if self.enforce_expiry and self.is_expired():
            raise SessionExpiredError(
                f"Sandbox session {self._session.handle.sandbox_id} expired"
            )
        return self._current()

    def _current(self) -> SessionInfo:
        assert self._session.handle is not None and self._session.created_at is not None
        return SessionInfo(handle=self._session.handle, created_at=self._session.created_at)

    async def _create(self) -> SessionInfo:
        """Create the remote session (runs at most once at a time)."""
        if self._session.handle is not None:
            return self._current()

        with Timer() as timer:
            try:
                handle = await self.backend.create(api_key=self.api_key)
            except Exception as e:
                logger.error("Sandbox session creation failed", error=e)
                emit_counter("sandbox.session.create_failed")
                raise SessionInitError(str(e) or "Failed to initialize sandbox") from e

            try:
                await handle.set_timeout(int(self._session.ttl_seconds))
            except Exception as e:
                logger.error(
                    "Setting sandbox lifetime failed",
                    context={"sandbox_id": handle.sandbox_id},
                    error=e,
                )
                emit_counter("sandbox.session.create_failed")
                await self._discard(handle)
                raise SessionInitError(str(e) or "Failed to initialize sandbox") from e

        self._session.handle = handle
        self._session.created_at = self._clock()

        logger.info(
            "Sandbox session created",
            context={"sandbox_id": handle.sandbox_id, "ttl_seconds": self._session.ttl_seconds},
            duration_ms=timer.duration_ms,
        )
        emit_timer("sandbox.session.create", timer.duration_ms)
        return self._current()

    async def _discard(self, handle: SandboxHandle) -> None:
        """Release a handle that never became the session."""
        try:
            await handle.close()
        except Exception as e:
            logger.warning(
                "Failed to release sandbox",
                context={"sandbox_id": handle.sandbox_id},
                error=e,
            )

    def time_remaining(self) -> float:
        """Seconds left in the session's lifetime; 0 if none was created.

        Advisory: nothing is blocked when this reaches zero unless
        enforce_expiry is set.
        """
        if self._session.created_at is None:
            return 0.0
        elapsed = self._clock() - self._session.created_at
        return max(0.0, self._session.ttl_seconds - elapsed)

    def is_expired(self) -> bool:
        """True once a created session has outlived its lifetime."""
        return self._session.created_at is not None and self.time_remaining() <= 0

    async def close(self) -> None:
        """Release the session on shutdown.

        Not part of any run or staging path; the remote service normally
        retires the session on its own.
        """
        handle = self._session.handle
        if handle is None:
            return
        self._session.handle = None
        self._session.created_at = None
        await handle.close()
        logger.info("Sandbox session closed", context={"sandbox_id": handle.sandbox_id})
