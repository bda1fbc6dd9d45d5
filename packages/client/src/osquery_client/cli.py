"""osquery-client CLI.

Usage:
    osquery-client query "select * from time" --socket /var/osquery/osquery.em
    osquery-client query "select * from os_version" --spawn ./osqueryd --format json
    osquery-client columns "select * from processes"
    osquery-client ping --socket /var/osquery/osquery.em

Exit codes: 0 success, 1 client error, 2 daemon returned a non-zero status.
"""

import json
from enum import Enum
from typing import Optional

import typer

from osquery_client.client import OsqueryClient
from osquery_client.config import get_settings
from osquery_client.errors import OsqueryError
from osquery_client.log import configure_logging

app = typer.Typer(
    name="osquery-client",
    help="Run osquery SQL through a daemon's extensions socket.",
    add_completion=False,
)


class OutputFormat(str, Enum):
    """Output format options."""

    table = "table"
    json = "json"


SocketOption = typer.Option(None, "--socket", "-s", help="Extensions socket (default: OSQUERY_SOCKET_PATH)")
SpawnOption = typer.Option(
    None,
    "--spawn",
    help="Spawn this daemon binary for the call (default: OSQUERY_EXECUTABLE, if set)",
)
FormatOption = typer.Option(OutputFormat.table, "--format", "-f", help="Output format")


@app.callback()
def _setup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, json_format=settings.log_format == "json")


def _format_table(rows: list[dict]) -> str:
    if not rows:
        return "No rows."
    columns = list(rows[0])
    widths = {c: max([len(c)] + [len(str(r.get(c, ""))) for r in rows]) for c in columns}
    lines = [
        "  ".join(c.ljust(widths[c]) for c in columns),
        "  ".join("-" * widths[c] for c in columns),
    ]
    for row in rows:
        lines.append("  ".join(str(row.get(c, "")).ljust(widths[c]) for c in columns))
    return "\n".join(lines)


def _run(method: str, sql: str, socket: Optional[str], spawn: Optional[str], fmt: OutputFormat) -> None:
    executable = spawn or get_settings().executable
    try:
        with OsqueryClient(socket) as client:
            if executable:
                client.spawn_process(executable)
            response = getattr(client, method)(sql)
    except OsqueryError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    status = response.status
    code = status.code if status is not None else None
    message = status.message if status is not None else None
    rows = response.response or []

    if fmt == OutputFormat.json:
        typer.echo(json.dumps({"status": {"code": code, "message": message}, "rows": rows}, indent=2))
    else:
        typer.echo(_format_table(rows))

    if code:
        typer.echo(f"Error: daemon returned status {code}: {message}", err=True)
        raise typer.Exit(2)


@app.command()
def query(
    sql: str = typer.Argument(..., help="SQL to execute"),
    socket: Optional[str] = SocketOption,
    spawn: Optional[str] = SpawnOption,
    fmt: OutputFormat = FormatOption,
):
    """Execute a SQL query and print the result rows.

    Examples:

        osquery-client query "select * from time" --socket /var/osquery/osquery.em
    """
    _run("query", sql, socket, spawn, fmt)


@app.command()
def columns(
    sql: str = typer.Argument(..., help="SQL to describe"),
    socket: Optional[str] = SocketOption,
    spawn: Optional[str] = SpawnOption,
    fmt: OutputFormat = FormatOption,
):
    """Show the columns a SQL query would return.

    Examples:

        osquery-client columns "select * from processes"
    """
    _run("get_query_columns", sql, socket, spawn, fmt)


@app.command()
def ping(socket: Optional[str] = SocketOption):
    """Check that the daemon answers on its extensions socket."""
    try:
        status = OsqueryClient(socket).ping()
    except OsqueryError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"{status.code} {status.message or ''}".rstrip())
    if status.code:
        raise typer.Exit(2)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
