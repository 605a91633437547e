"""Combos subcommand: populate and check the 5d combinations table."""

from __future__ import annotations

import typer

from outcomeguard.errors import OutcomeGuardError
from outcomeguard.outcomes.combinations import UNIVERSE_SIZE
from outcomeguard.storage.combinations import combination_count, fetch_combinations_table, load_combinations
from outcomeguard.storage.db import get_connection, init_schema

app = typer.Typer(help="5d combinations table")


def _connect(settings):
    try:
        conn = get_connection(settings.db_path)
    except OutcomeGuardError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(1)
    init_schema(conn)
    return conn


@app.command("load")
def load(ctx: typer.Context) -> None:
    """Populate combinations_5d (idempotent)."""
    settings = ctx.obj["settings"]
    conn = _connect(settings)
    try:
        count = load_combinations(conn)
        typer.echo(f"combinations_5d rows: {count} (expected {UNIVERSE_SIZE})")
        if count != UNIVERSE_SIZE:
            raise typer.Exit(1)
    finally:
        conn.close()


@app.command("check")
def check(ctx: typer.Context) -> None:
    """Load the table the way the service does and verify every row."""
    settings = ctx.obj["settings"]
    conn = _connect(settings)
    try:
        typer.echo(f"Rows: {combination_count(conn)}")
        try:
            table = fetch_combinations_table(conn)
        except OutcomeGuardError as e:
            typer.echo(f"Combinations table not usable: {e}")
            raise typer.Exit(1)
        big = len(table.sum_size("big"))
        typer.echo(f"OK: {len(table)} outcomes, {big} with sum big, {len(table) - big} with sum small")
    finally:
        conn.close()
