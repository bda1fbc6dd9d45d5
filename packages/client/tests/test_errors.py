"""Tests for the error taxonomy."""

import pytest

from osquery_client import errors
from osquery_client.errors import (
    ConnectError,
    OsqueryError,
    ProtocolError,
    QueryError,
    SpawnError,
    TeardownError,
    TransportTimeout,
)

pytestmark = pytest.mark.unit


class TestQueryErrors:
    """Query failures keep the SQL and the underlying cause."""

    @pytest.mark.parametrize("cls", [QueryError, ConnectError, TransportTimeout, ProtocolError])
    def test_message_echoes_query(self, cls):
        cause = OSError(111, "Connection refused")
        err = cls("select * from time", cause)

        assert err.sql == "select * from time"
        assert err.cause is cause
        assert "Unable to execute the query 'select * from time'" in str(err)
        assert "Connection refused" in str(err)

    @pytest.mark.parametrize("cls", [ConnectError, TransportTimeout, ProtocolError])
    def test_subclasses_are_query_errors(self, cls):
        assert issubclass(cls, QueryError)
        assert issubclass(cls, OsqueryError)


class TestSpawnError:
    def test_message_names_executable_and_cause(self):
        err = SpawnError("./osqueryd", FileNotFoundError(2, "No such file or directory"))

        assert err.executable == "./osqueryd"
        assert isinstance(err.cause, FileNotFoundError)
        assert "./osqueryd" in str(err)
        assert "No such file" in str(err)

    def test_reason_without_cause(self):
        err = SpawnError("./osqueryd", reason="client already owns daemon pid 42")

        assert err.cause is None
        assert "already owns daemon pid 42" in str(err)


class TestTaxonomyAliases:
    def test_failure_names_alias_error_classes(self):
        assert errors.SpawnFailure is SpawnError
        assert errors.ConnectFailure is ConnectError
        assert errors.ProtocolFailure is ProtocolError
        assert errors.TeardownFailure is TeardownError

    def test_teardown_error_is_not_a_query_error(self):
        assert issubclass(TeardownError, OsqueryError)
        assert not issubclass(TeardownError, QueryError)
