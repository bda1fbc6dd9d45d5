"""Client handle for an osquery daemon.

Either attach to a daemon that is already running, or spawn a private one.
A spawned daemon belongs to the client: it is killed and its socket file
removed when the client is closed, leaves a ``with`` block, is garbage
collected, or the interpreter exits, whichever comes first.

Usage
-----
>>> from osquery_client import OsqueryClient
>>> res = OsqueryClient().with_socket("/var/osquery/osquery.em").query("select * from time")
>>> res.status.code
0

>>> with OsqueryClient().spawn_process("./osqueryd") as client:
...     rows = client.query("select * from os_version").response
"""

from __future__ import annotations

import subprocess
import weakref
from typing import Optional

from osquery_client.binding import ExtensionResponse, ExtensionStatus
from osquery_client.channel import ControlChannel, control_channel_for
from osquery_client.config import Settings, get_settings
from osquery_client.errors import SpawnError, TeardownError
from osquery_client.launcher import REAP_TIMEOUT, spawn_daemon
from osquery_client.log import get_logger
from osquery_client.metrics import OWNED_DAEMONS
from osquery_client.rpc import CallChannel

logger = get_logger(__name__)


def _teardown(process: subprocess.Popen, channel: ControlChannel) -> None:
    """Kill an owned daemon, then remove the channel entry it was bound to.

    Runs at most once per spawned daemon (driven by ``weakref.finalize``).

    Raises:
        TeardownError: The process could not be killed, or the socket file
            could not be removed
    """
    pid = process.pid
    try:
        process.kill()
        process.wait(timeout=REAP_TIMEOUT)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.error("daemon_kill_failed", pid=pid, error=str(e))
        raise TeardownError(f"Unable to kill child process {pid}: {e}") from e
    OWNED_DAEMONS.dec()

    try:
        channel.remove()
    except OSError as e:
        logger.error("socket_remove_failed", socket=channel.path, error=str(e))
        raise TeardownError(f"Unable to remove socket '{channel.path}': {e}") from e

    logger.info("teardown_complete", pid=pid, socket=channel.path)


class OsqueryClient:
    """Run SQL against an osquery daemon over its extensions socket.

    Parameters
    ----------
    socket_path : str, optional
        Extensions socket or named pipe. Default: ``Settings.socket_path``
    settings : Settings, optional
        Configuration. Default: cached environment settings

    Examples
    --------
    >>> client = OsqueryClient().with_socket("/tmp/test.sock")
    >>> client.query("select * from time").status.code
    0
    """

    def __init__(self, socket_path: Optional[str] = None, *, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._socket_path = socket_path or self._settings.socket_path
        self._process: Optional[subprocess.Popen] = None
        self._channel: Optional[ControlChannel] = None
        self._finalizer: Optional[weakref.finalize] = None

    @property
    def socket_path(self) -> str:
        """Control channel used for calls."""
        return self._socket_path

    @property
    def owns_child_process(self) -> bool:
        """True if this client spawned the daemon it holds."""
        return self._process is not None

    @property
    def child_process(self) -> Optional[subprocess.Popen]:
        return self._process

    def with_socket(self, path: str) -> "OsqueryClient":
        """Point the client at another control channel. No I/O happens."""
        self._socket_path = path
        return self

    def spawn_process(self, executable: str) -> "OsqueryClient":
        """Start a private daemon on ``socket_path`` and wait until it is ready.

        Blocks until the socket accepts a connection. With default settings
        there is no deadline; set ``spawn_timeout`` to bound the wait.

        Raises:
            SpawnError: Executable could not be started, never became ready,
                or this client already owns a daemon
        """
        if self._process is not None:
            raise SpawnError(
                executable,
                reason=f"client already owns daemon pid {self._process.pid}",
            )

        channel = control_channel_for(self._socket_path)
        result = spawn_daemon(
            executable,
            channel,
            timeout=self._settings.spawn_timeout,
            poll_interval=self._settings.poll_interval,
        )
        self._process = result.process
        self._channel = channel
        self._finalizer = weakref.finalize(self, _teardown, result.process, channel)
        OWNED_DAEMONS.inc()
        return self

    def query(self, sql: str) -> ExtensionResponse:
        """Execute a SQL query.

        Returns:
            The daemon's response as decoded: ``status`` (code, message) and
            ``response`` (list of column -> value dicts)

        Raises:
            ConnectError: Daemon not reachable at ``socket_path``
            TransportTimeout: No reply within the I/O timeout
            ProtocolError: Malformed reply or daemon-side failure
        """
        return CallChannel(self._socket_path).query(sql)

    def get_query_columns(self, sql: str) -> ExtensionResponse:
        """Column names and types a SQL query would produce."""
        return CallChannel(self._socket_path).get_query_columns(sql)

    def ping(self) -> ExtensionStatus:
        return CallChannel(self._socket_path).ping()

    def close(self) -> None:
        """Tear down the owned daemon, if any. Later calls do nothing.

        If the daemon survives a failed teardown the client keeps owning it,
        and the next ``close()`` (or garbage collection) tries again.

        Raises:
            TeardownError: Owned daemon could not be killed or its socket
                file could not be removed
        """
        finalizer, self._finalizer = self._finalizer, None
        if finalizer is None:
            return

        try:
            finalizer()
        except TeardownError:
            if self._process.poll() is None:
                # finalize objects fire once; register a fresh one for the retry
                self._finalizer = weakref.finalize(self, _teardown, self._process, self._channel)
            else:
                self._release()
            raise
        self._release()

    def _release(self) -> None:
        self._process = None
        self._channel = None

    def __enter__(self) -> "OsqueryClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        owned = f", pid={self._process.pid}" if self._process is not None else ""
        return f"OsqueryClient(socket_path={self._socket_path!r}{owned})"
