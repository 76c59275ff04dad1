from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from ropelink.config import ClientConfig
from ropelink.editor import DiskBuffers
from ropelink.operations import build_operations
from ropelink.session import SessionManager
from tests.fakes import FakeTransport, ProcessRecorder


@pytest.fixture
def processes() -> ProcessRecorder:
    return ProcessRecorder()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_ops(processes: ProcessRecorder, transport: FakeTransport, tmp_path: Path):
    def _make(*, auto_revert: bool = False, editor=None, **config_values: object):
        config = ClientConfig(auto_revert=auto_revert, **config_values)
        sessions = SessionManager(config, process_factory=processes, home=tmp_path)
        return build_operations(
            config,
            editor,
            sessions=sessions,
            transport_factory=lambda session, cfg: transport,
        )

    return _make


@pytest.fixture
def buffers() -> DiskBuffers:
    return DiskBuffers()
