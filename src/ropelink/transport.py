from __future__ import annotations

import http.client
import socket
import xmlrpc.client
from xml.parsers.expat import ExpatError
from typing import Callable, Protocol

from ropelink.exceptions import RemoteFault, TransportFailure, TransportTimeout
from ropelink.log import get_logger
from ropelink.rpc_types import RpcArgs, RpcValue

logger = get_logger(__name__)

_SUMMARY_LIMIT = 60


class Transport(Protocol):
    """Blocking request/response primitive: one call, one answer or one error."""

    def call(self, method: str, args: RpcArgs) -> RpcValue: ...


def summarize_args(args: RpcArgs) -> str:
    parts = []
    for value in args:
        text = repr(value)
        if len(text) > _SUMMARY_LIMIT:
            text = text[: _SUMMARY_LIMIT - 3] + "..."
        parts.append(text)
    return ", ".join(parts)


class _TimeoutTransport(xmlrpc.client.Transport):
    def __init__(self, timeout: float) -> None:
        super().__init__()
        self._timeout = timeout

    def make_connection(self, host):
        connection = super().make_connection(host)
        connection.timeout = self._timeout
        return connection


class XmlRpcTransport:
    """Talks to the engine's XML-RPC endpoint at ``http://{host}:{port}/``."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float,
        proxy_factory: Callable[..., xmlrpc.client.ServerProxy] = xmlrpc.client.ServerProxy,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._proxy_factory = proxy_factory

    def _proxy(self) -> xmlrpc.client.ServerProxy:
        return self._proxy_factory(
            self.url,
            transport=_TimeoutTransport(self.timeout),
            allow_none=True,
        )

    def call(self, method: str, args: RpcArgs) -> RpcValue:
        try:
            with self._proxy() as proxy:
                return getattr(proxy, method)(*args)
        except xmlrpc.client.Fault as exc:
            logger.warning("remote_fault", method=method, code=exc.faultCode)
            raise RemoteFault(
                str(exc.faultString), command=method, fault_code=exc.faultCode
            ) from exc
        except (socket.timeout, TimeoutError) as exc:
            logger.warning("transport_timeout", method=method, timeout=self.timeout)
            raise TransportTimeout(
                f"no answer from {self.url} within {self.timeout}s",
                command=method,
                args_summary=summarize_args(args),
            ) from exc
        except (OSError, http.client.HTTPException, xmlrpc.client.Error, ExpatError) as exc:
            logger.warning("transport_failure", method=method, error=str(exc))
            raise TransportFailure(
                f"request to {self.url} failed: {exc}",
                command=method,
                args_summary=summarize_args(args),
            ) from exc
