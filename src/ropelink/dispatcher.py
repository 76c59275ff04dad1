from __future__ import annotations

from typing import Callable

from ropelink.buffers import BufferSynchronizer
from ropelink.commands.catalog import Method, command_spec
from ropelink.config import ClientConfig
from ropelink.log import get_logger
from ropelink.rpc_types import RpcScalar, RpcValue
from ropelink.session import Session, SessionManager
from ropelink.transport import Transport, XmlRpcTransport

logger = get_logger(__name__)

TransportFactory = Callable[[Session, ClientConfig], Transport]


def xmlrpc_transport_factory(session: Session, config: ClientConfig) -> Transport:
    return XmlRpcTransport(session.url, timeout=config.timeout_seconds)


class CommandDispatcher:
    """Issues exactly one engine call per logical operation.

    There is no retry: mutating commands are not idempotent, so a failure is
    surfaced to the caller instead of being repeated.
    """

    def __init__(
        self,
        sessions: SessionManager,
        synchronizer: BufferSynchronizer,
        *,
        transport_factory: TransportFactory = xmlrpc_transport_factory,
    ) -> None:
        self.sessions = sessions
        self.synchronizer = synchronizer
        self._transport_factory = transport_factory

    def dispatch(self, method: Method | str, *args: RpcScalar) -> RpcValue:
        spec = command_spec(method)
        name = spec.method.value
        spec.validate(args)
        session = self.sessions.require_running(name)
        transport = self._transport_factory(session, self.sessions.config)
        logger.debug("dispatch", method=name, arity=len(args))
        result = transport.call(name, args)
        if spec.mutating:
            session.generation += 1
            target = spec.primary_target(args)
            if target is None:
                self.synchronizer.maybe_sync()
            else:
                self.synchronizer.maybe_sync([str(session.directory / target)])
        logger.debug("dispatched", method=name)
        return result
