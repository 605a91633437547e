"""Period subcommand: status, transitions, scheduler ticks, dry-run simulation."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from pathlib import Path

import typer

from outcomeguard.errors import OutcomeGuardError
from outcomeguard.models import GameKind, PeriodKey, Result
from outcomeguard.outcomes import CombinationsTable, OutcomeSpaces
from outcomeguard.period import PeriodManager, current_window
from outcomeguard.storage.results import InMemoryResultRecorder
from outcomeguard.store import MemoryStore

app = typer.Typer(help="Period lifecycle: status, open/freeze/settle, tick, simulate")


def _key(game: str, duration: int, timeline: str, period_id: str | None) -> PeriodKey:
    if not period_id:
        period_id = current_window(datetime.now(timezone.utc), duration).period_id
    return PeriodKey.build(game, duration, timeline, period_id)


def _echo_result(result: Result) -> None:
    typer.echo(f"Period: {result.period.scope}")
    typer.echo(f"Outcome: {result.outcome_key}  Branch: {result.branch}  Protection: {result.protection_active}")
    typer.echo(f"Unique users: {result.unique_users}  Liability: {result.liability}  Seed: {result.seed}")
    typer.echo(f"Attributes: {json.dumps(result.attributes)}")


def _manager(ctx: typer.Context) -> PeriodManager:
    return PeriodManager.from_settings(ctx.obj["settings"])


@app.command("show")
def show(
    ctx: typer.Context,
    game: str = typer.Option(..., "--game", "-g", help="wingo, k3 or 5d"),
    duration: int = typer.Option(60, "--duration", "-d", help="Duration class in seconds"),
    timeline: str = typer.Option("default", "--timeline", "-t"),
    period_id: str | None = typer.Option(None, "--period-id", help="Defaults to the current period"),
) -> None:
    """Show state, participation and exposure for a period."""
    try:
        key = _key(game, duration, timeline, period_id)
        mgr = _manager(ctx)
        status = mgr.status(key)
        exposure = mgr.exposure_snapshot(key)
    except OutcomeGuardError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(1)
    typer.echo(f"Period: {status.period}  State: {status.state.value if status.state else 'unknown'}")
    typer.echo(f"Bets: {status.bet_count}  Stake: {status.total_stake}  Unique users: {status.unique_users}")
    typer.echo(f"Protection active: {status.protection_active}")
    if status.candidates is not None:
        c = status.candidates
        typer.echo(f"Candidates: {c.remaining}/{c.universe_size} ({c.excluded} excluded)")
    for pred, amount in sorted(exposure.items(), key=lambda kv: -kv[1]):
        typer.echo(f"  {pred:<24} {amount}")


@app.command("open")
def open_cmd(
    ctx: typer.Context,
    game: str = typer.Option(..., "--game", "-g"),
    duration: int = typer.Option(60, "--duration", "-d"),
    timeline: str = typer.Option("default", "--timeline", "-t"),
    period_id: str | None = typer.Option(None, "--period-id"),
) -> None:
    """Open a period (no-op if it already exists)."""
    try:
        key = _key(game, duration, timeline, period_id)
        state = _manager(ctx).open_period(key)
    except OutcomeGuardError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(1)
    typer.echo(f"{key.scope}: {state.value}")


@app.command("freeze")
def freeze_cmd(
    ctx: typer.Context,
    game: str = typer.Option(..., "--game", "-g"),
    duration: int = typer.Option(60, "--duration", "-d"),
    timeline: str = typer.Option("default", "--timeline", "-t"),
    period_id: str = typer.Option(..., "--period-id"),
) -> None:
    """Freeze a period; further bets are rejected."""
    try:
        key = _key(game, duration, timeline, period_id)
        _manager(ctx).freeze(key)
    except OutcomeGuardError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(1)
    typer.echo(f"{key.scope}: frozen")


@app.command("settle")
def settle_cmd(
    ctx: typer.Context,
    game: str = typer.Option(..., "--game", "-g"),
    duration: int = typer.Option(60, "--duration", "-d"),
    timeline: str = typer.Option("default", "--timeline", "-t"),
    period_id: str = typer.Option(..., "--period-id"),
) -> None:
    """Select and record the result of a frozen period."""
    try:
        result = _manager(ctx).settle(_key(game, duration, timeline, period_id))
    except OutcomeGuardError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(1)
    _echo_result(result)


@app.command("tick")
def tick_cmd(
    ctx: typer.Context,
    loop: bool = typer.Option(False, "--loop", help="Keep ticking every [game] tick_interval_sec"),
) -> None:
    """Open, freeze and settle scheduled periods according to the clock."""
    settings = ctx.obj["settings"]
    try:
        mgr = _manager(ctx)
        while True:
            for result in mgr.tick(datetime.now(timezone.utc), settings.schedule):
                typer.echo(f"{result.period.scope} -> {result.outcome_key} ({result.branch})")
            if not loop:
                break
            time.sleep(settings.tick_interval_sec)
    except OutcomeGuardError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        typer.echo("Stopped.")


@app.command("results")
def results_cmd(
    ctx: typer.Context,
    game: str | None = typer.Option(None, "--game", "-g"),
    limit: int = typer.Option(20, "--limit", "-n"),
) -> None:
    """List recently recorded results."""
    from outcomeguard.storage.results import DuckDBResultRecorder

    try:
        kind = GameKind.parse(game) if game else None
        recorder = DuckDBResultRecorder(ctx.obj["settings"].db_path)
    except OutcomeGuardError as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(1)
    for r in recorder.recent(kind, limit=limit):
        typer.echo(f"{r.period.scope:<40} {r.outcome_key:>6}  {r.branch:<16} users={r.unique_users}")


@app.command("simulate")
def simulate(
    ctx: typer.Context,
    bets_file: Path = typer.Argument(..., exists=True, readable=True, help="JSON list of bets"),
    game: str = typer.Option(..., "--game", "-g"),
    duration: int = typer.Option(60, "--duration", "-d"),
    period_id: str = typer.Option("20250101000000001", "--period-id"),
    threshold: int | None = typer.Option(None, "--threshold", help="Override enhanced_user_threshold"),
) -> None:
    """Dry run one period in memory: open, place bets, freeze, settle.

    Each bet is an object with user_id, bet_type, bet_value, stake and payout_multiplier.
    """
    settings = ctx.obj["settings"]
    bets = json.loads(bets_file.read_text())
    if not isinstance(bets, list):
        typer.echo("Bets file must hold a JSON list")
        raise typer.Exit(1)
    key = _key(game, duration, "default", period_id)
    mgr = PeriodManager(
        MemoryStore(),
        OutcomeSpaces(CombinationsTable.generate() if key.game is GameKind.COMBINATORIAL5 else None),
        InMemoryResultRecorder(),
        enhanced_user_threshold=threshold if threshold is not None else settings.enhanced_user_threshold,
        protected_share_pct=settings.protected_share_pct,
        retention_sec=settings.retention_sec,
    )
    mgr.open_period(key)
    for i, bet in enumerate(bets):
        try:
            receipt = mgr.place_bet(
                key.game,
                key.duration,
                key.timeline,
                key.period_id,
                user_id=bet["user_id"],
                bet_type=bet["bet_type"],
                bet_value=bet["bet_value"],
                stake=bet["stake"],
                payout_multiplier=bet["payout_multiplier"],
            )
        except KeyError as e:
            typer.echo(f"Bet #{i}: missing field {e}")
            raise typer.Exit(1)
        except OutcomeGuardError as e:
            typer.echo(f"Bet #{i} rejected: {e}")
            continue
        extra = f"  candidates removed={receipt.candidates_removed}" if receipt.candidates_removed is not None else ""
        typer.echo(f"Bet #{i}: {receipt.predicate} liability={receipt.liability}{extra}")
    mgr.freeze(key)
    try:
        result = mgr.settle(key)
    except OutcomeGuardError as e:
        typer.echo(f"Settlement failed: {e}")
        raise typer.Exit(1)
    _echo_result(result)
