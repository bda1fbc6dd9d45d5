"""Start a daemon subprocess and wait until its control channel accepts connections.

Readiness is detected by polling: connect, and on the first success close
the probe and return. With the default settings the poll loop has no
delay and no deadline, so a daemon that never binds its socket blocks the
caller forever. ``timeout`` and ``poll_interval`` opt into a bounded wait.
"""

from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass
from typing import Optional

from osquery_client.channel import ControlChannel
from osquery_client.errors import SpawnError
from osquery_client.log import get_logger
from osquery_client.metrics import READINESS_PROBES, SPAWN_WAIT_DURATION

logger = get_logger(__name__)

# Flags after --extensions_socket: no database, no watchdog, no logging,
# ephemeral mode, empty config.
DAEMON_FLAGS = (
    "--disable_database",
    "--disable_watchdog",
    "--disable_logging",
    "--ephemeral",
    "--config_path",
    "/dev/null",
)

# Seconds to wait for a killed daemon to be reaped
REAP_TIMEOUT = 5.0


@dataclass(frozen=True)
class SpawnResult:
    """A started daemon whose control channel accepted a connection."""

    process: subprocess.Popen
    socket_path: str
    probes: int
    elapsed: float


def daemon_command(executable: str, socket_path: str) -> list[str]:
    """Full argv for a daemon bound to ``socket_path``."""
    return [executable, "--extensions_socket", socket_path, *DAEMON_FLAGS]


def wait_until_ready(
    channel: ControlChannel,
    *,
    timeout: Optional[float] = None,
    poll_interval: float = 0.0,
) -> int:
    """Probe ``channel`` until it accepts a connection.

    Args:
        channel: Control channel of the starting daemon
        timeout: Give up after this many seconds. None waits forever.
        poll_interval: Sleep between probes. 0 retries immediately.

    Returns:
        Number of probes made, including the successful one

    Raises:
        TimeoutError: ``timeout`` elapsed before the channel was ready
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    probes = 0
    try:
        while True:
            probes += 1
            if channel.probe():
                return probes
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(
                    f"control channel '{channel.path}' not ready after {timeout}s ({probes} probes)"
                )
            if poll_interval:
                time.sleep(poll_interval)
    finally:
        READINESS_PROBES.inc(probes)


def _reap(process: subprocess.Popen) -> None:
    process.kill()
    process.wait(timeout=REAP_TIMEOUT)


def spawn_daemon(
    executable: str,
    channel: ControlChannel,
    *,
    timeout: Optional[float] = None,
    poll_interval: float = 0.0,
) -> SpawnResult:
    """Start ``executable`` bound to ``channel`` and block until it is ready.

    The daemon's stdio is detached to the null device. If waiting fails or
    is interrupted, the process is killed before the error propagates.

    Raises:
        SpawnError: The OS could not start the executable, or ``timeout``
            elapsed before the channel accepted a connection
    """
    cmd = daemon_command(executable, channel.path)

    start = time.monotonic()
    try:
        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        logger.error("daemon_spawn_failed", executable=executable, error=str(e))
        raise SpawnError(executable, e) from e

    logger.info("daemon_spawned", executable=executable, pid=process.pid, socket=channel.path)

    try:
        probes = wait_until_ready(channel, timeout=timeout, poll_interval=poll_interval)
    except TimeoutError as e:
        _reap(process)
        logger.error("daemon_not_ready", executable=executable, pid=process.pid, error=str(e))
        raise SpawnError(executable, e) from e
    except BaseException:
        _reap(process)
        raise

    elapsed = time.monotonic() - start
    SPAWN_WAIT_DURATION.observe(elapsed)
    logger.info(
        "daemon_ready",
        pid=process.pid,
        socket=channel.path,
        probes=probes,
        elapsed=round(elapsed, 3),
    )
    return SpawnResult(process=process, socket_path=channel.path, probes=probes, elapsed=elapsed)
