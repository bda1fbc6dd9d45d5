"""One RPC call per connection over the control channel.

Each call connects, applies the I/O timeout, splits the connection into a
reader and a writer, runs a single Thrift request/response and closes
everything again. Nothing is kept between calls.

Usage
-----
>>> from osquery_client.rpc import CallChannel
>>> response = CallChannel("/tmp/osquery-client").query("select * from time")
>>> response.status.code
0
"""

from __future__ import annotations

import socket
import struct
import time
from typing import Any, Optional

from thriftpy2.protocol import TBinaryProtocol
from thriftpy2.thrift import TClient, TException
from thriftpy2.transport import TBufferedTransport

from osquery_client.binding import ExtensionManager, ExtensionResponse, ExtensionStatus
from osquery_client.channel import ControlChannel, EndpointTransport, control_channel_for
from osquery_client.errors import ConnectError, ProtocolError, QueryError, TransportTimeout
from osquery_client.log import get_logger
from osquery_client.metrics import RPC_CALL_COUNT, RPC_CALL_DURATION

logger = get_logger(__name__)

# Read and write deadline for every call, in seconds
IO_TIMEOUT = 3.0

_STATUS_LABELS = {
    ConnectError: "connect_error",
    TransportTimeout: "timeout",
    ProtocolError: "protocol_error",
}


def _protocol(endpoint: Any) -> TBinaryProtocol:
    """Binary protocol over one endpoint, non-strict in both directions."""
    transport = TBufferedTransport(EndpointTransport(endpoint))
    return TBinaryProtocol(transport, strict_read=False, strict_write=False)


class CallChannel:
    """Issue single RPC calls against the daemon at ``socket_path``.

    Parameters
    ----------
    socket_path : str
        Extensions socket or named pipe of the daemon
    channel : ControlChannel, optional
        Channel variant to use. Default: chosen for the running platform.
    """

    def __init__(self, socket_path: str, channel: Optional[ControlChannel] = None) -> None:
        self.socket_path = socket_path
        self._channel = channel or control_channel_for(socket_path)

    def call(self, method: str, *args: Any, sql: str = "") -> Any:
        """Run one ExtensionManager method and return its decoded result.

        Args:
            method: Thrift method name (query, getQueryColumns, ping, ...)
            *args: Positional arguments for the method
            sql: Query text echoed in errors

        Raises:
            ConnectError: Channel missing or refused
            TransportTimeout: Read or write exceeded IO_TIMEOUT
            ProtocolError: Malformed reply, daemon exception, reset mid-call
        """
        start = time.perf_counter()
        try:
            result = self._call(method, args, sql)
        except QueryError as e:
            status = _STATUS_LABELS.get(type(e), "error")
            self._observe(method, status, start)
            logger.warning(
                "rpc_call_failed",
                method=method,
                socket=self.socket_path,
                status=status,
                error=str(e.cause),
            )
            raise

        self._observe(method, "ok", start)
        logger.debug("rpc_call_complete", method=method, socket=self.socket_path)
        return result

    def _call(self, method: str, args: tuple, sql: str) -> Any:
        try:
            conn = self._channel.open(IO_TIMEOUT)
        except OSError as e:
            raise ConnectError(sql, e) from e

        with conn:
            client = TClient(ExtensionManager, _protocol(conn.reader), _protocol(conn.writer))
            try:
                return getattr(client, method)(*args)
            except socket.timeout as e:
                raise TransportTimeout(sql, e) from e
            except (TException, OSError, ValueError, struct.error) as e:
                raise ProtocolError(sql, e) from e

    @staticmethod
    def _observe(method: str, status: str, start: float) -> None:
        RPC_CALL_DURATION.labels(method=method, status=status).observe(time.perf_counter() - start)
        RPC_CALL_COUNT.labels(method=method, status=status).inc()

    def query(self, sql: str) -> ExtensionResponse:
        """Execute a SQL query; the response is returned as decoded."""
        return self.call("query", sql, sql=sql)

    def get_query_columns(self, sql: str) -> ExtensionResponse:
        """Describe the columns a SQL query would return."""
        return self.call("getQueryColumns", sql, sql=sql)

    def ping(self) -> ExtensionStatus:
        """Ping the daemon's extension manager."""
        return self.call("ping")
