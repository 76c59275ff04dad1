from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from ropelink.config import ClientConfig
from ropelink.exceptions import NotRunningError, ProcessSpawnFailure, TransportTimeout
from ropelink.session import SessionManager, SessionState
from tests.fakes import FakeProc, ProcessRecorder


def _manager(processes, tmp_path: Path, **values: object) -> SessionManager:
    return SessionManager(ClientConfig(**values), process_factory=processes, home=tmp_path)


def test_open_spawns_engine_with_directory_flag(processes: ProcessRecorder, tmp_path: Path) -> None:
    project = tmp_path / "proj"
    project.mkdir()
    manager = _manager(processes, tmp_path / "home")

    session = manager.open(project)

    assert session.state is SessionState.RUNNING
    assert manager.is_running()
    (proc,) = processes.spawned
    assert proc.argv == ["rope-server", "-V", str(project.resolve())]
    assert proc.kwargs["cwd"] == str(tmp_path / "home")
    assert proc.kwargs["stdout"] is subprocess.DEVNULL


def test_open_supports_argument_list_program(processes: ProcessRecorder, tmp_path: Path) -> None:
    manager = _manager(processes, tmp_path, server_program=["python3", "/opt/engine/server.py"])
    manager.open(tmp_path)
    assert processes.spawned[0].argv == ["python3", "/opt/engine/server.py", "-V", str(tmp_path.resolve())]


def test_single_program_name_is_not_split(processes: ProcessRecorder, tmp_path: Path) -> None:
    manager = _manager(processes, tmp_path, server_program="/opt/my engine/rope-server")
    manager.open(tmp_path)
    assert processes.spawned[0].argv[0] == "/opt/my engine/rope-server"


def test_second_open_closes_first(processes: ProcessRecorder, tmp_path: Path) -> None:
    manager = _manager(processes, tmp_path)
    first = manager.open(tmp_path / "a")
    second = manager.open(tmp_path / "b")

    assert first.state is SessionState.CLOSED
    assert processes.spawned[0].terminated
    assert manager.session is second
    assert second.state is SessionState.RUNNING
    assert manager.epoch == 2


def test_close_is_noop_when_closed(processes: ProcessRecorder, tmp_path: Path) -> None:
    manager = _manager(processes, tmp_path)
    manager.close()
    assert manager.state is SessionState.CLOSED
    manager.open(tmp_path)
    manager.close()
    manager.close()
    assert manager.state is SessionState.CLOSED
    assert not manager.is_running()


def test_close_kills_process_that_ignores_terminate(tmp_path: Path) -> None:
    class _StubbornProc(FakeProc):
        def terminate(self) -> None:
            self.terminated = True

        def wait(self, timeout: float | None = None) -> int | None:
            if not self.killed:
                raise subprocess.TimeoutExpired(cmd=self.argv, timeout=timeout or 0.0)
            return self.returncode

    spawned: list[_StubbornProc] = []

    def _factory(argv, **kwargs):
        proc = _StubbornProc(argv, **kwargs)
        spawned.append(proc)
        return proc

    manager = SessionManager(ClientConfig(), process_factory=_factory, home=tmp_path)
    manager.open(tmp_path)
    manager.close()
    assert spawned[0].terminated
    assert spawned[0].killed


def test_spawn_failure_leaves_session_closed(tmp_path: Path) -> None:
    def _factory(argv, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", argv[0])

    manager = SessionManager(ClientConfig(), process_factory=_factory, home=tmp_path)
    with pytest.raises(ProcessSpawnFailure) as excinfo:
        manager.open(tmp_path)
    assert excinfo.value.command == "open"
    assert "rope-server" in str(excinfo.value)
    assert manager.state is SessionState.CLOSED
    assert manager.session is None


def test_exited_engine_is_reaped(processes: ProcessRecorder, tmp_path: Path) -> None:
    manager = _manager(processes, tmp_path)
    manager.open(tmp_path)
    processes.spawned[0].returncode = 1

    assert not manager.is_running()
    assert manager.state is SessionState.CLOSED
    with pytest.raises(NotRunningError):
        manager.require_running("rename")


def test_server_log_receives_engine_output(processes: ProcessRecorder, tmp_path: Path) -> None:
    log_path = tmp_path / "engine.log"
    manager = _manager(processes, tmp_path, server_log=str(log_path))
    manager.open(tmp_path)
    stream = processes.spawned[0].kwargs["stdout"]
    assert Path(stream.name) == log_path
    manager.close()
    assert stream.closed


def test_wait_until_ready_polls_until_connect(processes: ProcessRecorder, tmp_path: Path) -> None:
    attempts: list[tuple[str, int]] = []

    class _Conn:
        def close(self) -> None:
            pass

    def _connect(address, timeout=None):
        attempts.append(address)
        if len(attempts) < 3:
            raise ConnectionRefusedError(111, "refused")
        return _Conn()

    manager = SessionManager(
        ClientConfig(port=7001), process_factory=processes, connect_fn=_connect, home=tmp_path
    )
    manager.open(tmp_path)
    manager.wait_until_ready(timeout=5.0)
    assert attempts == [("127.0.0.1", 7001)] * 3


def test_wait_until_ready_times_out(processes: ProcessRecorder, tmp_path: Path) -> None:
    def _connect(address, timeout=None):
        raise ConnectionRefusedError(111, "refused")

    manager = SessionManager(ClientConfig(), process_factory=processes, connect_fn=_connect, home=tmp_path)
    manager.open(tmp_path)
    with pytest.raises(TransportTimeout):
        manager.wait_until_ready(timeout=0.0)


def test_wait_until_ready_reports_dead_engine(processes: ProcessRecorder, tmp_path: Path) -> None:
    def _connect(address, timeout=None):
        processes.spawned[0].returncode = 2
        raise ConnectionRefusedError(111, "refused")

    manager = SessionManager(ClientConfig(), process_factory=processes, connect_fn=_connect, home=tmp_path)
    manager.open(tmp_path)
    with pytest.raises(ProcessSpawnFailure):
        manager.wait_until_ready(timeout=5.0)
    assert manager.state is SessionState.CLOSED


def test_close_releases_server_log_when_kill_wait_times_out(tmp_path: Path) -> None:
    class _UnkillableProc(FakeProc):
        def terminate(self) -> None:
            self.terminated = True

        def kill(self) -> None:
            self.killed = True

        def wait(self, timeout: float | None = None) -> int | None:
            raise subprocess.TimeoutExpired(cmd=self.argv, timeout=timeout or 0.0)

    spawned: list[_UnkillableProc] = []

    def _factory(argv, **kwargs):
        proc = _UnkillableProc(argv, **kwargs)
        spawned.append(proc)
        return proc

    config = ClientConfig(server_log=str(tmp_path / "engine.log"))
    manager = SessionManager(config, process_factory=_factory, home=tmp_path)
    manager.open(tmp_path)
    stream = spawned[0].kwargs["stdout"]

    with pytest.raises(subprocess.TimeoutExpired):
        manager.close()

    assert spawned[0].killed
    assert stream.closed
    assert manager.state is SessionState.CLOSED
