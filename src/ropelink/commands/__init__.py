from ropelink.commands.catalog import (
    COMMAND_CATALOG,
    CommandSpec,
    Method,
    Param,
    command_spec,
    mutating_methods,
)

__all__ = [
    "COMMAND_CATALOG",
    "CommandSpec",
    "Method",
    "Param",
    "command_spec",
    "mutating_methods",
]
