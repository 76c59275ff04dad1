from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, TextIO
import json
import shlex
import sys

import typer

from ropelink.config import load_client_config
from ropelink.editor import DiskBuffers
from ropelink.exceptions import RopeLinkError
from ropelink.history import HistoryEntry
from ropelink.log import configure_logging
from ropelink.operations import RefactorOperations, build_operations
from ropelink.rpc_types import RpcValue

app = typer.Typer(add_completion=False)

ShellHandler = Callable[[RefactorOperations, List[str]], object]

_PROMPT = "ropelink> "


def _int_arg(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise typer.BadParameter(f"{name} must be an integer, got {value!r}") from None


def _render(value: object) -> str:
    if hasattr(value, "model_dump"):
        return json.dumps(value.model_dump(mode="json"), sort_keys=True)
    if isinstance(value, HistoryEntry):
        return json.dumps(
            {"index": value.index, "description": value.description}, sort_keys=True, default=str
        )
    return json.dumps(value, sort_keys=True, default=str)


_SHELL_COMMANDS: dict[str, tuple[int, int, ShellHandler]] = {
    "resources": (0, 0, lambda ops, args: ops.get_all_resources()),
    "children": (1, 1, lambda ops, args: ops.get_children(args[0])),
    "undo": (0, 0, lambda ops, args: ops.history.undo()),
    "redo": (0, 0, lambda ops, args: ops.history.redo()),
    "undo-history": (0, 0, lambda ops, args: ops.history.undo_history()),
    "redo-history": (0, 0, lambda ops, args: ops.history.redo_history()),
    "rename": (
        2,
        3,
        lambda ops, args: ops.rename(
            args[0], args[1], _int_arg(args[2], "offset") if len(args) > 2 else None
        ),
    ),
    "extract-method": (
        4,
        4,
        lambda ops, args: ops.extract_method(
            args[0], args[1], _int_arg(args[2], "begin"), _int_arg(args[3], "end")
        ),
    ),
    "extract-variable": (
        4,
        4,
        lambda ops, args: ops.extract_variable(
            args[0], args[1], _int_arg(args[2], "begin"), _int_arg(args[3], "end")
        ),
    ),
    "assist": (2, 2, lambda ops, args: ops.code_assist(args[0], _int_arg(args[1], "position"))),
}


def _emit_result(result: RpcValue | object) -> None:
    if result is None:
        typer.echo("ok")
        return
    if isinstance(result, list):
        for item in result:
            typer.echo(_render(item))
        return
    typer.echo(_render(result))


def run_shell_line(ops: RefactorOperations, line: str) -> bool:
    """Run one shell line; returns False when the shell should stop."""
    try:
        tokens = shlex.split(line)
    except ValueError as exc:
        typer.echo(f"parse: {exc}", err=True)
        return True
    if not tokens:
        return True
    name, args = tokens[0], tokens[1:]
    if name in {"quit", "exit"}:
        return False
    entry = _SHELL_COMMANDS.get(name)
    if entry is None:
        typer.echo(f"{name}: unknown command", err=True)
        return True
    min_args, max_args, handler = entry
    if not min_args <= len(args) <= max_args:
        typer.echo(f"{name}: expected {min_args}..{max_args} arguments, got {len(args)}", err=True)
        return True
    try:
        _emit_result(handler(ops, args))
    except RopeLinkError as exc:
        typer.echo(str(exc) if exc.command else f"{name}: {exc}", err=True)
    except (typer.BadParameter, OSError, UnicodeDecodeError) as exc:
        typer.echo(f"{name}: {exc}", err=True)
    return True


def run_shell(ops: RefactorOperations, stream: TextIO, *, interactive: bool) -> None:
    while True:
        if interactive:
            typer.echo(_PROMPT, nl=False)
        line = stream.readline()
        if not line:
            return
        if not run_shell_line(ops, line):
            return


@app.command()
def shell(
    root: Path = typer.Argument(Path("."), exists=True, file_okay=False, resolve_path=True),
    config: Optional[Path] = typer.Option(None, "--config"),
    wait: bool = typer.Option(True, "--wait/--no-wait"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """Open a session on ROOT and run refactoring commands read from stdin."""
    configure_logging(log_level)
    try:
        client_config = load_client_config(root=root, config_path=config)
    except RopeLinkError as exc:
        typer.echo(f"config: {exc}", err=True)
        raise typer.Exit(code=2)
    ops = build_operations(client_config, DiskBuffers())
    try:
        ops.sessions.open(root)
        if wait:
            ops.sessions.wait_until_ready()
    except RopeLinkError as exc:
        ops.sessions.close()
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    try:
        run_shell(ops, sys.stdin, interactive=sys.stdin.isatty())
    finally:
        ops.sessions.close()


@app.command("config")
def show_config(
    root: Path = typer.Argument(Path("."), file_okay=False, resolve_path=True),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Print the resolved client configuration as JSON."""
    try:
        client_config = load_client_config(root=root, config_path=config)
    except RopeLinkError as exc:
        typer.echo(f"config: {exc}", err=True)
        raise typer.Exit(code=2)
    typer.echo(json.dumps(client_config.model_dump(mode="json"), indent=2, sort_keys=True))
