"""Pytest fixtures for osquery-client tests."""

import os
import shutil
import sys
import tempfile
import threading
from pathlib import Path

import pytest
from typer.testing import CliRunner

from fake_daemon import FakeDaemon
from osquery_client.config import Settings, get_settings

TESTS_DIR = Path(__file__).parent


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop OSQUERY_* overrides and the cached settings around every test."""
    for var in list(os.environ):
        if var.startswith("OSQUERY_") or var.startswith("FAKE_OSQUERYD_"):
            monkeypatch.delenv(var)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Settings built from defaults only."""
    return Settings(_env_file=None)


@pytest.fixture
def socket_path():
    """Short socket path; AF_UNIX paths are limited to about 100 bytes."""
    tmp = tempfile.mkdtemp(prefix="osq-")
    yield os.path.join(tmp, "osquery.em")
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def fake_daemon(socket_path):
    """In-process daemon serving the extensions API on ``socket_path``."""
    server = FakeDaemon(socket_path)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def fake_osqueryd(tmp_path):
    """Executable that runs fake_daemon.main() under this interpreter."""
    script = tmp_path / "osqueryd"
    script.write_text(
        f"#!{sys.executable}\n"
        "import sys\n"
        f"sys.path.insert(0, {str(TESTS_DIR)!r})\n"
        "from fake_daemon import main\n"
        "main()\n"
    )
    script.chmod(0o755)
    return str(script)


@pytest.fixture
def cli_runner():
    return CliRunner()
