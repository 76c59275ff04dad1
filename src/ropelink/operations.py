"""Typed façade over the command catalog.

Offsets, positions and extract ranges are 0-based character (code point)
offsets into the file text, never byte offsets or line/column pairs.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from pydantic import ValidationError

from ropelink.buffers import BufferSynchronizer
from ropelink.commands.catalog import Method
from ropelink.config import ClientConfig
from ropelink.dispatcher import CommandDispatcher, TransportFactory, xmlrpc_transport_factory
from ropelink.editor import Editor
from ropelink.exceptions import CommandContractError, TransportFailure
from ropelink.history import HistoryTracker
from ropelink.log import get_logger
from ropelink.rpc_types import RpcValue
from ropelink.schema import CodeAssistProposal, ProjectResource
from ropelink.session import SessionManager

logger = get_logger(__name__)


def _as_sequence(result: RpcValue, command: str) -> Sequence[RpcValue]:
    if result is None:
        return []
    if not isinstance(result, (list, tuple)):
        raise TransportFailure(f"expected a sequence, got {type(result).__name__}", command=command)
    return result


def renamed_path(path: Path, new_name: str) -> Path:
    """Where a module lands after ``rename`` without an offset."""
    if path.name == "__init__.py":
        return path.parent.parent / new_name / path.name
    return path.with_name(new_name + path.suffix)


@dataclass
class RefactorOperations:
    sessions: SessionManager
    dispatcher: CommandDispatcher
    history: HistoryTracker
    editor: Editor | None = None

    def _root(self, command: str) -> Path:
        return self.sessions.require_running(command).directory

    def _decode_resources(self, result: RpcValue, command: str) -> List[ProjectResource]:
        root = self._root(command)
        try:
            return [
                ProjectResource.model_validate(item).resolved(root)
                for item in _as_sequence(result, command)
            ]
        except ValidationError as exc:
            raise TransportFailure(f"malformed resource in answer: {exc}", command=command) from exc

    def get_all_resources(self) -> List[ProjectResource]:
        result = self.dispatcher.dispatch(Method.GET_ALL_RESOURCES)
        return self._decode_resources(result, Method.GET_ALL_RESOURCES.value)

    def get_children(self, path: str) -> List[ProjectResource]:
        result = self.dispatcher.dispatch(Method.GET_CHILDREN, path)
        return self._decode_resources(result, Method.GET_CHILDREN.value)

    def rename(self, new_name: str, path: str, offset: int | None = None) -> RpcValue:
        """Rename the identifier at ``offset`` in ``path``, or the module itself without one."""
        if offset is None:
            return self.dispatcher.dispatch(Method.RENAME, new_name, path)
        return self.dispatcher.dispatch(Method.RENAME, new_name, path, offset)

    def rename_current_file(self, new_name: str) -> str:
        """Rename the editor's current module and move the editor onto the new file."""
        editor = self.editor
        current = editor.current_file() if editor is not None else None
        if editor is None or current is None:
            raise CommandContractError("no current file to rename", command=Method.RENAME.value)
        self.rename(new_name, current)
        new_path = str(renamed_path(Path(current), new_name))
        editor.close_file(current)
        editor.open_file(new_path)
        logger.info("current_file_renamed", old=current, new=new_path)
        return new_path

    def extract_method(self, name: str, file_path: str, begin: int, end: int) -> RpcValue:
        return self.dispatcher.dispatch(Method.EXTRACT_METHOD, name, file_path, begin, end)

    def extract_variable(self, name: str, file_path: str, begin: int, end: int) -> RpcValue:
        return self.dispatcher.dispatch(Method.EXTRACT_VARIABLE, name, file_path, begin, end)

    def code_assist(
        self, file_path: str, position: int, text: str | None = None
    ) -> List[CodeAssistProposal]:
        command = Method.CODE_ASSIST.value
        source = self._root(command) / file_path
        if text is None and self.editor is not None:
            text = self.editor.buffer_text(str(source))
        if text is None:
            text = source.read_text(encoding="utf-8")
        result = self.dispatcher.dispatch(Method.CODE_ASSIST, text, position, file_path)
        try:
            return [CodeAssistProposal.model_validate(item) for item in _as_sequence(result, command)]
        except ValidationError as exc:
            raise TransportFailure(f"malformed proposal in answer: {exc}", command=command) from exc


def build_operations(
    config: ClientConfig,
    editor: Editor | None = None,
    *,
    sessions: SessionManager | None = None,
    transport_factory: TransportFactory = xmlrpc_transport_factory,
) -> RefactorOperations:
    sessions = sessions or SessionManager(config)
    synchronizer = BufferSynchronizer(editor, enabled=config.auto_revert)
    dispatcher = CommandDispatcher(sessions, synchronizer, transport_factory=transport_factory)
    return RefactorOperations(
        sessions=sessions,
        dispatcher=dispatcher,
        history=HistoryTracker(dispatcher),
        editor=editor,
    )
