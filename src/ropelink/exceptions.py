"""Error kinds raised by the ropelink protocol layer.

Every error names the command that produced it so a failed keypress can be
correlated with the failed refactoring.
"""

from __future__ import annotations

from typing import Mapping


class RopeLinkError(RuntimeError):
    """Base class for all protocol-layer failures."""

    def __init__(self, detail: str, *, command: str | None = None) -> None:
        self.detail = detail
        self.command = command
        super().__init__(f"{command}: {detail}" if command else detail)


class NotRunningError(RopeLinkError):
    """A command was dispatched while no session was Running."""


class TransportFailure(RopeLinkError):
    """The request could not be delivered or its answer could not be read."""

    def __init__(
        self,
        detail: str,
        *,
        command: str | None = None,
        args_summary: str = "",
    ) -> None:
        self.args_summary = args_summary
        if args_summary:
            detail = f"{detail} (args: {args_summary})"
        super().__init__(detail, command=command)


class TransportTimeout(TransportFailure):
    """The engine did not answer within the configured timeout."""


class RemoteFault(RopeLinkError):
    def __init__(
        self,
        fault_string: str,
        *,
        command: str | None = None,
        fault_code: int | None = None,
    ) -> None:
        self.fault_code = fault_code
        self.fault_string = fault_string
        detail = fault_string if fault_code is None else f"[{fault_code}] {fault_string}"
        super().__init__(f"engine fault {detail}", command=command)


class ProcessSpawnFailure(RopeLinkError):
    """The engine process could not be launched; the session stays Closed."""


class CommandContractError(RopeLinkError, TypeError):
    """Arguments do not match the catalog entry for the command."""


class StaleHistoryError(RopeLinkError):
    pass


class ConfigError(RopeLinkError, ValueError):
    pass


class NeverThrown(RuntimeError):
    """Raised by ``never()``; reaching it is always a bug."""

    def __init__(self, reason: str, *, env: Mapping[str, object] | None = None) -> None:
        super().__init__(reason)
        self.env = dict(env or {})
