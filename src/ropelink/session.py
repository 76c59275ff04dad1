"""Lifecycle of the engine process bound to one project directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO, Callable
import socket
import subprocess
import time

from ropelink.config import ClientConfig
from ropelink.exceptions import NotRunningError, ProcessSpawnFailure, TransportTimeout
from ropelink.invariants import never
from ropelink.log import get_logger

logger = get_logger(__name__)

_TERMINATE_GRACE_SECONDS = 5.0
_READY_POLL_SECONDS = 0.1


class SessionState(str, Enum):
    CLOSED = "closed"
    STARTING = "starting"
    RUNNING = "running"


@dataclass
class Session:
    host: str
    port: int
    directory: Path
    process: subprocess.Popen | None = None
    state: SessionState = SessionState.CLOSED
    # Successful mutating commands since this session started.
    generation: int = 0
    _log_stream: IO[bytes] | None = field(default=None, repr=False)

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"


class SessionManager:
    """Owns the single session of an editor instance.

    ``open`` is fire-and-forget: it returns once the engine is launched, not once
    it accepts requests. Use ``wait_until_ready`` when that matters.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        process_factory: Callable[..., subprocess.Popen] = subprocess.Popen,
        connect_fn: Callable[..., socket.socket] = socket.create_connection,
        home: Path | None = None,
    ) -> None:
        self.config = config
        self._process_factory = process_factory
        self._connect = connect_fn
        self._home = home
        self._session: Session | None = None
        # Bumped on every open so entries from an earlier session are never current.
        self._epoch = 0

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.CLOSED
        return self._session.state

    def launch_argv(self, directory: Path) -> list[str]:
        return [*self.config.program_argv(), "-V", str(directory)]

    def open(self, directory: Path | str) -> Session:
        self.close()
        directory = Path(directory).expanduser().resolve()
        argv = self.launch_argv(directory)
        log_stream = self._open_server_log()
        session = Session(
            host=self.config.host,
            port=self.config.port,
            directory=directory,
            state=SessionState.STARTING,
        )
        self._session = session
        self._epoch += 1
        output = log_stream if log_stream is not None else subprocess.DEVNULL
        try:
            session.process = self._process_factory(
                argv,
                cwd=str(self._home or Path.home()),
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=output,
            )
        except OSError as exc:
            if log_stream is not None:
                log_stream.close()
            self._session = None
            logger.warning("engine_spawn_failed", argv=argv, error=str(exc))
            raise ProcessSpawnFailure(
                f"could not start {argv[0]!r}: {exc}", command="open"
            ) from exc
        session._log_stream = log_stream
        session.state = SessionState.RUNNING
        logger.info("session_opened", directory=str(directory), url=session.url, pid=session.process.pid)
        return session

    def _open_server_log(self) -> IO[bytes] | None:
        if not self.config.server_log:
            return None
        path = Path(self.config.server_log).expanduser()
        try:
            return path.open("ab")
        except OSError as exc:
            raise ProcessSpawnFailure(
                f"could not open server log {str(path)!r}: {exc}", command="open"
            ) from exc

    def close(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        session.state = SessionState.CLOSED
        process = session.process
        session.process = None
        try:
            if process is not None and process.poll() is None:
                process.terminate()
                try:
                    process.wait(timeout=_TERMINATE_GRACE_SECONDS)
                except subprocess.TimeoutExpired:
                    process.kill()
                    process.wait(timeout=_TERMINATE_GRACE_SECONDS)
        finally:
            if session._log_stream is not None:
                session._log_stream.close()
                session._log_stream = None
        logger.info("session_closed", directory=str(session.directory))

    def is_running(self) -> bool:
        session = self._session
        if session is None or session.state is not SessionState.RUNNING:
            return False
        if session.process is None:
            return False
        returncode = session.process.poll()
        if returncode is not None:
            logger.warning("engine_exited", directory=str(session.directory), returncode=returncode)
            self.close()
            return False
        return True

    def require_running(self, command: str) -> Session:
        if not self.is_running():
            raise NotRunningError(
                f"no running session (state: {self.state.value})", command=command
            )
        if self._session is None:
            never("running session without a session value", command=command)
        return self._session

    def wait_until_ready(self, timeout: float | None = None) -> None:
        """Poll the engine's TCP port until it accepts a connection."""
        session = self.require_running("wait_until_ready")
        timeout = self.config.timeout_seconds if timeout is None else timeout
        deadline = time.monotonic() + timeout
        while True:
            try:
                connection = self._connect((session.host, session.port), timeout=_READY_POLL_SECONDS)
            except OSError:
                pass
            else:
                connection.close()
                logger.debug("engine_ready", url=session.url)
                return
            if not self.is_running():
                raise ProcessSpawnFailure(
                    "engine exited before accepting connections", command="wait_until_ready"
                )
            if time.monotonic() >= deadline:
                raise TransportTimeout(
                    f"engine at {session.url} not ready within {timeout}s",
                    command="wait_until_ready",
                )
            time.sleep(_READY_POLL_SECONDS)
