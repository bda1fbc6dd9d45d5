"""Control channel to the daemon: Unix domain socket or Windows named pipe.

Both variants offer the same three operations:

- ``open(timeout)``: connect and split the connection into a read and a
  write endpoint, both with the I/O timeout applied
- ``probe()``: one connect attempt, closed straight away
- ``remove()``: delete the channel's filesystem entry (sockets only)

``control_channel_for`` picks the variant for the running platform.
"""

from __future__ import annotations

import os
import socket
import sys
from abc import ABC, abstractmethod
from typing import Any, Optional

from thriftpy2.transport import TTransportBase, TTransportException

from osquery_client.log import get_logger

logger = get_logger(__name__)


class PipeEndpoint:
    """Socket-like wrapper around one handle to a named pipe.

    Blocking pipe handles cannot be given a deadline, so the timeout is
    recorded but not enforced.
    """

    def __init__(self, path: str) -> None:
        self._file = open(path, "r+b", buffering=0)
        self._timeout: Optional[float] = None

    def settimeout(self, timeout: Optional[float]) -> None:
        self._timeout = timeout

    def gettimeout(self) -> Optional[float]:
        return self._timeout

    def recv(self, size: int) -> bytes:
        return self._file.read(size) or b""

    def sendall(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = self._file.write(view)
            view = view[written:]

    def close(self) -> None:
        self._file.close()


class Connection:
    """Read and write endpoints of one connect(), closed together."""

    def __init__(self, reader: Any, writer: Any) -> None:
        self.reader = reader
        self.writer = writer

    def close(self) -> None:
        try:
            self.writer.close()
        finally:
            self.reader.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class ControlChannel(ABC):
    """Abstract base class for the two channel variants."""

    def __init__(self, path: str) -> None:
        self.path = path

    @abstractmethod
    def connect(self, timeout: Optional[float]) -> Any:
        """Open one endpoint connected to the daemon.

        Raises:
            OSError: Channel missing or refused
        """

    @abstractmethod
    def duplicate(self, endpoint: Any) -> Any:
        """Second handle on the same connection, used for writing."""

    @abstractmethod
    def remove(self) -> None:
        """Delete the channel's filesystem entry, if it has one."""

    def probe(self) -> bool:
        """Return True if the channel accepts a connection right now."""
        try:
            endpoint = self.connect(None)
        except OSError:
            return False
        endpoint.close()
        return True

    def open(self, timeout: Optional[float]) -> Connection:
        """Connect and derive a reader/writer pair.

        Raises:
            OSError: Channel missing, refused, or could not be duplicated
        """
        reader = self.connect(timeout)
        try:
            writer = self.duplicate(reader)
            writer.settimeout(timeout)
        except BaseException:
            reader.close()
            raise
        return Connection(reader, writer)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"


class UnixSocketChannel(ControlChannel):
    """Stream socket bound to a filesystem path (Linux, macOS)."""

    def connect(self, timeout: Optional[float]) -> socket.socket:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(timeout)
            sock.connect(self.path)
        except BaseException:
            sock.close()
            raise
        return sock

    def duplicate(self, endpoint: socket.socket) -> socket.socket:
        # Same underlying connection, separate handle for the write side.
        return endpoint.dup()

    def remove(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            logger.debug("socket_already_removed", socket=self.path)
            return
        logger.debug("socket_removed", socket=self.path)


class NamedPipeChannel(ControlChannel):
    """Named pipe such as ``\\\\.\\pipe\\osquery-client`` (Windows)."""

    def connect(self, timeout: Optional[float]) -> PipeEndpoint:
        endpoint = PipeEndpoint(self.path)
        endpoint.settimeout(timeout)
        return endpoint

    def duplicate(self, endpoint: PipeEndpoint) -> PipeEndpoint:
        return PipeEndpoint(self.path)

    def remove(self) -> None:
        # The pipe goes away with the server that created it.
        pass


def control_channel_for(path: str, platform: Optional[str] = None) -> ControlChannel:
    """Pick the channel variant for a platform (defaults to the running one)."""
    platform = platform or sys.platform
    if platform == "win32":
        return NamedPipeChannel(path)
    return UnixSocketChannel(path)


class EndpointTransport(TTransportBase):
    """Thrift transport over a single channel endpoint.

    Expects a socket-like object (``recv``/``sendall``/``close``). Wrap it in
    a buffered transport before handing it to a protocol.
    """

    def __init__(self, endpoint: Any) -> None:
        self._endpoint = endpoint
        self._closed = False

    def is_open(self) -> bool:
        return not self._closed

    def open(self) -> None:
        pass

    def close(self) -> None:
        self._closed = True
        self._endpoint.close()

    def read(self, sz: int) -> bytes:
        buff = self._endpoint.recv(sz)
        if not buff:
            raise TTransportException(
                type=TTransportException.END_OF_FILE,
                message="control channel closed by peer",
            )
        return buff

    def write(self, buff: bytes) -> None:
        self._endpoint.sendall(buff)

    def flush(self) -> None:
        pass
