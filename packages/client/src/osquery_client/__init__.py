"""osquery Python client.

Runs osquery SQL through the daemon's Thrift extensions API, either by
attaching to a running daemon's socket or by spawning a private daemon.

Quick Start
-----------
>>> from osquery_client import OsqueryClient
>>> res = OsqueryClient().with_socket("/var/osquery/osquery.em").query("select * from time")
>>> res.status.code
0

Standalone daemon
-----------------
>>> with OsqueryClient().spawn_process("./osqueryd") as client:
...     for row in client.query("select name, version from os_version").response:
...         print(row["name"], row["version"])
"""

from .binding import ExtensionCode, ExtensionResponse, ExtensionStatus
from .client import OsqueryClient
from .config import Settings, get_settings
from .errors import (
    ConnectError,
    ConnectFailure,
    OsqueryError,
    ProtocolError,
    ProtocolFailure,
    QueryError,
    SpawnError,
    SpawnFailure,
    TeardownError,
    TeardownFailure,
    TransportTimeout,
)
from .log import configure_logging, get_logger

__all__ = [
    # Client
    "OsqueryClient",
    # RPC contract
    "ExtensionCode",
    "ExtensionResponse",
    "ExtensionStatus",
    # Errors
    "OsqueryError",
    "SpawnError",
    "QueryError",
    "ConnectError",
    "TransportTimeout",
    "ProtocolError",
    "TeardownError",
    "SpawnFailure",
    "ConnectFailure",
    "ProtocolFailure",
    "TeardownFailure",
    # Config / logging
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
]

__version__ = "0.1.0"
