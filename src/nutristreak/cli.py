"""Command line entry points for maintenance, backfill and manual refresh."""

from __future__ import annotations

import json
from datetime import date, timedelta

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .exceptions import StreakError
from .logging_config import setup_logging
from .models.activity import ActivityKind

_DATE = click.DateTime(formats=["%Y-%m-%d"])


def _app(ctx: click.Context) -> AppContext:
    return ctx.obj


def _echo_snapshot(app: AppContext, user_id: int) -> None:
    click.echo(json.dumps(app.streaks.snapshot(user_id).as_dict(), indent=2))


@click.group()
@click.option("--verbose", is_flag=True, default=False, help="Log to console and the JSON log file")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """NutriStreak streak maintenance commands."""

    config = BaseConfig()
    if verbose:
        setup_logging(config)
    app = create_app_context(config)
    ctx.obj = app
    ctx.call_on_close(app.close)


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database schema."""

    click.echo(f"Database ready: {_app(ctx).config.DATABASE_URL}")


@cli.command("add-user")
@click.argument("username")
@click.option("--timezone", "tz", default=None, help="IANA timezone, e.g. America/Toronto")
@click.pass_context
def add_user(ctx: click.Context, username: str, tz: str | None) -> None:
    """Create a user."""

    try:
        user = _app(ctx).user_repo.create(username, timezone=tz)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created user {user.id} ({user.username})")


@cli.command("set-timezone")
@click.argument("user_id", type=int)
@click.argument("tz")
@click.pass_context
def set_timezone(ctx: click.Context, user_id: int, tz: str) -> None:
    """Change a user's timezone; takes effect on the next streak update."""

    try:
        _app(ctx).user_repo.set_timezone(user_id, tz)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"User {user_id} timezone set to {tz}")


@cli.command("login")
@click.argument("user_id", type=int)
@click.pass_context
def login(ctx: click.Context, user_id: int) -> None:
    """Record today's login and recompute the login streak."""

    app = _app(ctx)
    try:
        app.streaks.record_login(user_id)
    except StreakError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_snapshot(app, user_id)


@cli.command("log-food")
@click.argument("user_id", type=int)
@click.option("--date", "entry_date", type=_DATE, default=None, help="Day the food was logged for")
@click.pass_context
def log_food(ctx: click.Context, user_id: int, entry_date) -> None:
    """Record a food-logged day (today by default) and update the food streak."""

    app = _app(ctx)
    try:
        app.streaks.record_food_day(user_id, entry_date.date() if entry_date else None)
    except StreakError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_snapshot(app, user_id)


@cli.command("touch")
@click.argument("user_id", type=int)
@click.argument("kind", type=click.Choice([k.value for k in ActivityKind]))
@click.option("--date", "event_date", type=_DATE, default=None)
@click.pass_context
def touch(ctx: click.Context, user_id: int, kind: str, event_date) -> None:
    """Update one streak kind without recording new activity."""

    app = _app(ctx)
    try:
        app.streaks.touch(user_id, kind, event_date.date() if event_date else None)
    except StreakError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_snapshot(app, user_id)


@cli.command("recompute")
@click.argument("user_id", type=int, required=False)
@click.option("--all-users", is_flag=True, default=False, help="Recompute every user with streak state")
@click.pass_context
def recompute(ctx: click.Context, user_id: int | None, all_users: bool) -> None:
    """Recompute login and food streaks."""

    app = _app(ctx)
    if all_users:
        from .scheduler import StreakMaintenanceScheduler

        results = StreakMaintenanceScheduler(app).run_nightly_recompute()
        failed = sorted(uid for uid, ok in results.items() if not ok)
        click.echo(f"Recomputed {len(results) - len(failed)} users, {len(failed)} failed")
        if failed:
            raise click.ClickException(f"Failed users: {', '.join(map(str, failed))}")
        return
    if user_id is None:
        raise click.UsageError("Pass USER_ID or --all-users")
    try:
        app.streaks.recompute_all(user_id)
    except StreakError as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_snapshot(app, user_id)


@cli.command("show")
@click.argument("user_id", type=int)
@click.option("--days", "window", type=click.IntRange(0, 60), default=0, help="Also list activity for the last N days")
@click.pass_context
def show(ctx: click.Context, user_id: int, window: int) -> None:
    """Print the stored streak state (read-only)."""

    app = _app(ctx)
    try:
        _echo_snapshot(app, user_id)
    except StreakError as exc:
        raise click.ClickException(str(exc)) from exc
    if window:
        today = app.streaks.days.local_today(user_id)
        start = today - timedelta(days=window - 1)
        for kind in ActivityKind:
            days = app.activity_repo.list_days(user_id, kind, start, today)
            click.echo(f"{kind.value}: {_format_days(days)}")


def _format_days(days: list[date]) -> str:
    return ", ".join(d.isoformat() for d in days) if days else "-"


def main() -> None:  # pragma: no cover - console script
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
