#!/usr/bin/env python3
"""
Gridiron Picks Management CLI

Command-line management for the Gridiron Picks application: manual syncs,
reconciliation, statistics rebuilds, legacy data migration and API users.
"""

import logging
import os

# CLI runs never start the background scheduler
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import click  # noqa: E402
import requests  # noqa: E402
from flask.cli import with_appcontext  # noqa: E402
from sqlalchemy import text  # noqa: E402
from sqlalchemy.exc import IntegrityError, SQLAlchemyError  # noqa: E402

from gridiron import create_app, db  # noqa: E402
from gridiron.models import Game, GameState, Pick, SyncMarker, User  # noqa: E402
from gridiron.services import migration, stats_service  # noqa: E402
from gridiron.services.pipeline import process_week, refresh_game, run_refresh, settle_games  # noqa: E402
from gridiron.services.scheduler_service import scheduler_service  # noqa: E402
from gridiron.utils import league_calendar  # noqa: E402
from gridiron.utils.data_sync import DataSync  # noqa: E402

app = create_app()


@click.group()
def cli():
    """Gridiron Picks Management CLI"""
    pass


# Data Sync Commands
@cli.group()
def sync():
    """Data synchronization commands"""
    pass


@sync.command()
@click.argument("year", type=int)
@click.argument("week", type=int)
@with_appcontext
def week(year, week):
    """Sync one league week and settle finished games"""
    if not league_calendar.is_valid_week(week):
        click.echo(f"❌ Invalid week {week} (1-{league_calendar.LAST_WEEK})")
        return

    click.echo(f"Syncing {league_calendar.week_name(week)}, {year}...")
    try:
        sync_result, reconciled, users_updated = process_week(
            DataSync.from_config(app.config), year, week
        )
    except requests.exceptions.RequestException as e:
        click.echo(f"❌ Upstream error: {str(e)}")
        return
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error: {str(e)}")
        logging.error(f"Week sync failed - SQL error: {e}")
        return

    click.echo(
        f"✅ {sync_result.written} written, {sync_result.unchanged} unchanged, "
        f"{sync_result.skipped} skipped, {sync_result.regressions} regressions"
    )
    click.echo(f"✅ {len(reconciled)} games settled, {users_updated} users updated")


@sync.command()
@click.option("--force", is_flag=True, help="Ignore the cooldown marker")
@with_appcontext
def refresh(force):
    """Run the scheduled refresh for the current week"""
    try:
        result = run_refresh(force=force)
    except requests.exceptions.RequestException as e:
        click.echo(f"❌ Upstream error: {str(e)}")
        return
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error: {str(e)}")
        return

    click.echo(f"Week {result.week}, {result.year}: {result.status}")
    if result.sync:
        click.echo(f"✅ {result.sync['written']} games written, {len(result.reconciled)} settled")


@sync.command()
@click.argument("event_id")
@with_appcontext
def game(event_id):
    """Refresh a single stored game"""
    try:
        outcome = refresh_game(event_id)
    except requests.exceptions.RequestException as e:
        click.echo(f"❌ Upstream error: {str(e)}")
        return

    if outcome is None:
        click.echo(f"❌ Game {event_id} not found! Sync its week first.")
        return

    sync_result, reconciled, _ = outcome
    click.echo(f"✅ Game {event_id}: {sync_result.written} written, {len(reconciled)} settled")


# Reconciliation Commands
@cli.command()
@click.argument("game_id")
@with_appcontext
def reconcile(game_id):
    """Settle picks for one final game"""
    try:
        reconciled, users_updated = settle_games([game_id])
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error: {str(e)}")
        return

    outcome = reconciled[0]
    click.echo(
        f"Game {game_id}: {outcome['status']} "
        f"({outcome['picks_updated']} picks, {users_updated} users updated)"
    )


# Statistics Commands
@cli.group()
def stats():
    """Statistics commands"""
    pass


@stats.command()
@click.option("--user", "username", help="Only this username")
@click.option("--year", type=int, help="Only this season")
@with_appcontext
def recalc(username, year):
    """Rebuild week and season statistics from picks"""
    try:
        if username:
            user = User.query.filter_by(username=username).first()
            if not user:
                click.echo(f"❌ User '{username}' not found!")
                return
            weeks = stats_service.recalculate_user_stats(user.id, year)
            click.echo(f"✅ Recalculated {weeks} weeks for {username}")
        else:
            users = stats_service.recalculate_all_stats(year)
            click.echo(f"✅ Recalculated statistics for {users} users")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error: {str(e)}")
        logging.error(f"Stats recalculation failed - SQL error: {e}")


# Migration Commands
@cli.group()
def migrate():
    """Legacy data migration commands"""
    pass


@migrate.command("legacy-picks")
@with_appcontext
def legacy_picks():
    """Copy flat legacy picks into the per-week layout"""
    report = migration.migrate_legacy_picks()
    if report.affected:
        stats_service.recalculate_for_keys(report.affected)
    click.echo(
        f"✅ {report.migrated} migrated, {report.already_present} already present, "
        f"{report.skipped_missing_game} skipped (game missing)"
    )


@migrate.command()
@with_appcontext
def selections():
    """Rewrite home/away selections to team ids"""
    report = migration.normalize_selections()
    if report.affected:
        stats_service.recalculate_for_keys(report.affected)
    click.echo(f"✅ {report.selections_normalized} selections normalized")


@migrate.command("all")
@with_appcontext
def migrate_all():
    """Run every migration step"""
    report = migration.run_all()
    for key, value in report.to_dict().items():
        click.echo(f"  {key}: {value}")


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command()
@click.argument("username")
@click.option("--display-name", help="Display name")
@click.option("--admin", is_flag=True, help="Grant admin rights")
@with_appcontext
def create(username, display_name, admin):
    """Create an API user and print its token"""
    try:
        user = User(
            username=username,
            display_name=display_name,
            is_active=True,
            is_admin=admin,
            avatar_url=User.generate_avatar_url(username),
        )
        token = user.generate_api_token()
        db.session.add(user)
        db.session.commit()

        click.echo(f"✅ Created user '{username}'")
        click.echo(f"🔑 API token: {token}")

    except IntegrityError:
        db.session.rollback()
        click.echo(f"❌ User '{username}' already exists!")


@user.command()
@click.argument("username")
@with_appcontext
def token(username):
    """Issue a new API token (the old one stops working)"""
    user = User.query.filter_by(username=username).first()
    if not user:
        click.echo(f"❌ User '{username}' not found!")
        return

    new_token = user.generate_api_token()
    db.session.commit()
    click.echo(f"🔑 API token for {username}: {new_token}")


@user.command("make-admin")
@click.argument("username")
@with_appcontext
def make_admin(username):
    """Grant admin rights"""
    user = User.query.filter_by(username=username).first()
    if not user:
        click.echo(f"❌ User '{username}' not found!")
        return

    user.is_admin = True
    db.session.commit()
    click.echo(f"✅ {username} is now an admin")


@user.command("list")
@with_appcontext
def list_users():
    """List all users"""
    users = User.query.order_by(User.created_at.desc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        status = "🟢" if u.is_active else "🔴"
        role = "admin" if u.is_admin else "user"
        click.echo(f"  {status} {u.username} ({role}) - {u.name}")


# Scheduler Commands
@cli.group()
def scheduler():
    """Background scheduler commands"""
    pass


@scheduler.command("run")
@click.argument("job", type=click.Choice(["refresh", "stats"]))
def run_job(job):
    """Run one scheduler job once, outside its schedule"""
    success, message = scheduler_service.force_sync(job)
    click.echo(f"{'✅' if success else '❌'} {message}")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏈 Gridiron Picks Application Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    marker = SyncMarker.get(SyncMarker.LAST_GAME_UPDATE)
    if marker:
        click.echo(
            f"✅ Last refresh: {marker.timestamp.isoformat()} "
            f"(week {marker.week}, {marker.year})"
        )
    else:
        click.echo("⚠️  Last refresh: never")

    user_count = User.query.filter_by(is_active=True).count()
    click.echo(f"👥 Active Users: {user_count}")

    game_count = Game.query.count()
    final_count = Game.query.filter_by(state=GameState.FINAL).count()
    click.echo(f"🏈 Games: {final_count}/{game_count} final")

    pending = Pick.query.filter_by(locked=False).count()
    click.echo(f"📝 Unsettled picks: {pending}")


if __name__ == "__main__":
    with app.app_context():
        cli()
