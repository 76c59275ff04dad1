from __future__ import annotations

from pathlib import Path
from typing import Iterable, Protocol

from ropelink.log import get_logger

logger = get_logger(__name__)


class Editor(Protocol):
    """The slice of an editing environment the protocol layer needs."""

    def current_file(self) -> str | None: ...

    def open_buffers(self) -> Iterable[str]: ...

    def buffer_text(self, path: str) -> str | None: ...

    def revert_buffer(self, path: str) -> bool: ...

    def close_file(self, path: str) -> None: ...

    def open_file(self, path: str) -> None: ...


def _key(path: str | Path) -> str:
    return str(Path(path).expanduser().resolve())


class DiskBuffers:
    """In-memory buffers mirroring files on disk.

    Buffers marked modified are never reverted; reconciliation must not discard
    unsaved edits without asking.
    """

    def __init__(self) -> None:
        self._texts: dict[str, str] = {}
        self._modified: set[str] = set()
        self._current: str | None = None

    def current_file(self) -> str | None:
        return self._current

    def open_buffers(self) -> list[str]:
        return list(self._texts)

    def buffer_text(self, path: str) -> str | None:
        return self._texts.get(_key(path))

    def open_file(self, path: str) -> None:
        key = _key(path)
        self._texts[key] = Path(key).read_text(encoding="utf-8")
        self._modified.discard(key)
        self._current = key

    def close_file(self, path: str) -> None:
        key = _key(path)
        self._texts.pop(key, None)
        self._modified.discard(key)
        if self._current == key:
            self._current = None

    def edit(self, path: str, text: str) -> None:
        key = _key(path)
        if key not in self._texts:
            raise KeyError(path)
        self._texts[key] = text
        self._modified.add(key)

    def is_modified(self, path: str) -> bool:
        return _key(path) in self._modified

    def revert_buffer(self, path: str) -> bool:
        key = _key(path)
        if key not in self._texts or key in self._modified:
            return False
        try:
            self._texts[key] = Path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            # The engine moved or deleted the file.
            self.close_file(key)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("buffer_revert_failed", path=key, error=str(exc))
            return False
        return True
