from __future__ import annotations

"""Value types carried across the engine's request/response boundary.

XML-RPC marshals a closed set of primitives; keeping the aliases explicit makes
it auditable which arguments and results may cross the wire.
"""

from typing import TypeAlias


RpcScalar: TypeAlias = str | int | float | bool | None
RpcValue: TypeAlias = RpcScalar | list["RpcValue"] | dict[str, "RpcValue"]
RpcArgs: TypeAlias = tuple[RpcScalar, ...]
