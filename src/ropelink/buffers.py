from __future__ import annotations

from typing import Iterable

from ropelink.editor import Editor
from ropelink.log import get_logger

logger = get_logger(__name__)


class BufferSynchronizer:
    """Reconciles editor buffers with disk after a mutating command.

    The engine does not report which files it rewrote, so reconciliation is
    best-effort: the command's primary target when one is known, otherwise every
    open buffer. Files touched elsewhere in the project are only picked up if the
    editor has them open and no target was given.
    """

    def __init__(self, editor: Editor | None, *, enabled: bool) -> None:
        self.editor = editor
        self.enabled = enabled
        self.sync_count = 0

    def maybe_sync(self, affected_files: Iterable[str] | None = None) -> list[str]:
        """Revert buffers for ``affected_files``; returns the paths reverted."""
        if not self.enabled or self.editor is None:
            return []
        self.sync_count += 1
        if affected_files is None:
            targets = list(self.editor.open_buffers())
        else:
            targets = list(affected_files)
        reverted = [path for path in targets if self.editor.revert_buffer(path)]
        logger.debug("buffers_reconciled", requested=targets, reverted=reverted)
        return reverted
