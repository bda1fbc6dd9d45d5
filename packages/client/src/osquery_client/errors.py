"""Error types for osquery-client.

All errors follow the "fail fast" principle with explicit messages.
Query failures carry the original SQL so callers can report or retry
without keeping the request around.
"""

from typing import Optional


class OsqueryError(Exception):
    """Base exception for all osquery-client errors."""

    pass


class SpawnError(OsqueryError):
    """The daemon executable could not be started or never became ready."""

    def __init__(self, executable: str, cause: Optional[BaseException] = None, reason: str = "") -> None:
        self.executable = executable
        self.cause = cause
        detail = reason or (str(cause) if cause is not None else "unknown error")
        super().__init__(f"Unable to spawn daemon '{executable}': {detail}")


class QueryError(OsqueryError):
    """An RPC call failed. Subclasses narrow down where it failed."""

    def __init__(self, sql: str, cause: Optional[BaseException] = None) -> None:
        self.sql = sql
        self.cause = cause
        super().__init__(f"Unable to execute the query '{sql}', ERROR: {cause}")


class ConnectError(QueryError):
    """Control channel is missing or refused the connection."""

    pass


class TransportTimeout(QueryError):
    """Read or write did not complete within the per-call I/O timeout."""

    pass


class ProtocolError(QueryError):
    """Malformed response, daemon-side exception, or connection lost mid-call."""

    pass


class TeardownError(OsqueryError):
    """Owned daemon could not be killed or its socket could not be removed.

    Never ignored: a leaked daemon keeps the socket bound and a stale
    socket file blocks the next bind.
    """

    pass


SpawnFailure = SpawnError
ConnectFailure = ConnectError
ProtocolFailure = ProtocolError
TeardownFailure = TeardownError
