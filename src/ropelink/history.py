"""Read-only views of the engine's undo and redo stacks.

The engine is the only source of truth for history. Entries are indexed by
their position in the answer (0 is the most recent) and are valid only until
the next mutating command or session change.
"""

from __future__ import annotations

from dataclasses import dataclass

from ropelink.commands.catalog import Method
from ropelink.dispatcher import CommandDispatcher
from ropelink.exceptions import StaleHistoryError, TransportFailure
from ropelink.rpc_types import RpcValue


@dataclass(frozen=True)
class HistoryEntry:
    index: int
    description: RpcValue
    stack: str
    epoch: int
    generation: int


class HistoryTracker:
    def __init__(self, dispatcher: CommandDispatcher) -> None:
        self.dispatcher = dispatcher

    def undo(self) -> RpcValue:
        return self.dispatcher.dispatch(Method.UNDO)

    def redo(self) -> RpcValue:
        return self.dispatcher.dispatch(Method.REDO)

    def undo_history(self) -> list[HistoryEntry]:
        return self._fetch(Method.UNDO_HISTORY, "undo")

    def redo_history(self) -> list[HistoryEntry]:
        return self._fetch(Method.REDO_HISTORY, "redo")

    def _fetch(self, method: Method, stack: str) -> list[HistoryEntry]:
        result = self.dispatcher.dispatch(method)
        if result is None:
            return []
        if not isinstance(result, (list, tuple)):
            raise TransportFailure(
                f"expected a sequence, got {type(result).__name__}", command=method.value
            )
        sessions = self.dispatcher.sessions
        session = sessions.require_running(method.value)
        return [
            HistoryEntry(
                index=index,
                description=description,
                stack=stack,
                epoch=sessions.epoch,
                generation=session.generation,
            )
            for index, description in enumerate(result)
        ]

    def is_current(self, entry: HistoryEntry) -> bool:
        sessions = self.dispatcher.sessions
        session = sessions.session
        if session is None or not sessions.is_running():
            return False
        return entry.epoch == sessions.epoch and entry.generation == session.generation

    def check_current(self, entry: HistoryEntry) -> HistoryEntry:
        if not self.is_current(entry):
            raise StaleHistoryError(
                f"{entry.stack} entry {entry.index} predates the latest change; re-fetch history",
                command=f"{entry.stack}_history",
            )
        return entry
