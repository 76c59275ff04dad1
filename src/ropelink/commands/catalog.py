from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ropelink.exceptions import CommandContractError
from ropelink.rpc_types import RpcArgs, RpcScalar


class Method(str, Enum):
    GET_ALL_RESOURCES = "get_all_resources"
    GET_CHILDREN = "get_children"
    UNDO = "undo"
    REDO = "redo"
    UNDO_HISTORY = "undo_history"
    REDO_HISTORY = "redo_history"
    RENAME = "rename"
    EXTRACT_METHOD = "extract_method"
    EXTRACT_VARIABLE = "extract_variable"
    CODE_ASSIST = "code_assist"


@dataclass(frozen=True)
class Param:
    name: str
    kind: type
    optional: bool = False


@dataclass(frozen=True)
class CommandSpec:
    method: Method
    params: tuple[Param, ...] = ()
    mutating: bool = False
    # Position of the argument naming the file the command primarily targets.
    target_param: int | None = None

    @property
    def min_arity(self) -> int:
        return sum(1 for param in self.params if not param.optional)

    @property
    def max_arity(self) -> int:
        return len(self.params)

    def primary_target(self, args: RpcArgs) -> str | None:
        if self.target_param is None or self.target_param >= len(args):
            return None
        target = args[self.target_param]
        return target if isinstance(target, str) else None

    def validate(self, args: RpcArgs) -> None:
        if not self.min_arity <= len(args) <= self.max_arity:
            expected = (
                str(self.max_arity)
                if self.min_arity == self.max_arity
                else f"{self.min_arity}..{self.max_arity}"
            )
            raise CommandContractError(
                f"expected {expected} arguments, got {len(args)}",
                command=self.method.value,
            )
        for param, value in zip(self.params, args):
            if not _matches(param.kind, value):
                raise CommandContractError(
                    f"argument {param.name!r} must be {param.kind.__name__}, "
                    f"got {type(value).__name__}",
                    command=self.method.value,
                )


def _matches(kind: type, value: RpcScalar) -> bool:
    # bool is an int subclass; offsets and positions never accept it.
    if kind is int and isinstance(value, bool):
        return False
    return isinstance(value, kind)


_PATH = Param("path", str)

COMMAND_CATALOG: dict[Method, CommandSpec] = {
    Method.GET_ALL_RESOURCES: CommandSpec(Method.GET_ALL_RESOURCES),
    Method.GET_CHILDREN: CommandSpec(Method.GET_CHILDREN, (_PATH,)),
    Method.UNDO: CommandSpec(Method.UNDO, mutating=True),
    Method.REDO: CommandSpec(Method.REDO, mutating=True),
    Method.UNDO_HISTORY: CommandSpec(Method.UNDO_HISTORY),
    Method.REDO_HISTORY: CommandSpec(Method.REDO_HISTORY),
    Method.RENAME: CommandSpec(
        Method.RENAME,
        (Param("new_name", str), _PATH, Param("offset", int, optional=True)),
        mutating=True,
        target_param=1,
    ),
    Method.EXTRACT_METHOD: CommandSpec(
        Method.EXTRACT_METHOD,
        (Param("name", str), Param("file_path", str), Param("begin", int), Param("end", int)),
        mutating=True,
        target_param=1,
    ),
    Method.EXTRACT_VARIABLE: CommandSpec(
        Method.EXTRACT_VARIABLE,
        (Param("name", str), Param("file_path", str), Param("begin", int), Param("end", int)),
        mutating=True,
        target_param=1,
    ),
    Method.CODE_ASSIST: CommandSpec(
        Method.CODE_ASSIST,
        (Param("full_buffer_text", str), Param("position", int), Param("file_path", str)),
    ),
}


def command_spec(method: Method | str) -> CommandSpec:
    try:
        return COMMAND_CATALOG[Method(method)]
    except ValueError:
        raise CommandContractError(f"unknown command {method!r}", command=str(method)) from None


def mutating_methods() -> tuple[Method, ...]:
    return tuple(method for method, spec in COMMAND_CATALOG.items() if spec.mutating)
