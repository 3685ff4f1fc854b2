"""
Score refresh pipeline.

fetch week -> normalize -> game store sync -> reconcile newly final games
-> recompute affected aggregates. Every step is idempotent; the cooldown
marker debounces repeated runs.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from flask import current_app

from gridiron import db
from gridiron.models import Game, SyncMarker
from gridiron.services.reconciler import reconcile_game, unreconciled_final_games
from gridiron.services.stats_service import recalculate_for_keys
from gridiron.utils import league_calendar
from gridiron.utils.cache_utils import invalidate_model_cache
from gridiron.utils.data_sync import DataSync, sync_games

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    status: str
    week: int = None
    year: int = None
    season_type: int = None
    sync: dict = None
    reconciled: list = field(default_factory=list)
    users_updated: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "status": self.status,
            "week": self.week,
            "year": self.year,
            "season_type": self.season_type,
            "sync": self.sync,
            "reconciled": self.reconciled,
            "users_updated": self.users_updated,
            "started_at": self.started_at.isoformat(),
        }


def settle_games(game_ids):
    """Reconcile each game, then rebuild the aggregates they touched"""
    reconciled = []
    affected = set()

    for game_id in game_ids:
        outcome = reconcile_game(game_id)
        reconciled.append(outcome.to_dict())
        affected |= outcome.affected

    users_updated = recalculate_for_keys(affected) if affected else 0
    return reconciled, users_updated


def process_week(data_sync, year, week):
    """Sync one week from upstream and settle whatever finished"""
    sync_result = data_sync.sync_week(year, week)
    return _settle_after_sync(sync_result)


def process_events(events, year, week):
    """Same as process_week for events already fetched by the caller"""
    sync_result = sync_games(events, year, week)
    return _settle_after_sync(sync_result)


def _settle_after_sync(sync_result):
    # Also retry FINAL games whose picks a crashed run left unsettled
    to_settle = list(sync_result.newly_final)
    for game_id in unreconciled_final_games(sync_result.year, sync_result.week):
        if game_id not in to_settle:
            to_settle.append(game_id)

    reconciled, users_updated = settle_games(to_settle)
    invalidate_model_cache("Game")
    return sync_result, reconciled, users_updated


def run_refresh(force=False, data_sync=None, now=None):
    """Scheduled or on-demand refresh of the current league week

    Returns a RefreshResult with status "completed", "skipped" (cooldown) or
    "off_season". Upstream and database errors propagate to the caller; the
    cooldown marker is written only after a successful run.
    """
    app_config = current_app.config
    data_sync = data_sync or DataSync.from_config(app_config)
    now = now or datetime.now(timezone.utc)

    week, year, season_type = data_sync.fetch_current_week()
    result = RefreshResult(
        status="completed", week=week, year=year, season_type=season_type, started_at=now
    )

    if season_type not in (league_calendar.REGULAR_SEASON, league_calendar.POSTSEASON):
        logger.info(f"Not in regular or postseason (type: {season_type}), skipping update")
        result.status = "off_season"
        return result

    interval = app_config.get("SCORE_UPDATE_INTERVAL", 300)
    if not force and SyncMarker.is_recent(SyncMarker.LAST_GAME_UPDATE, interval, now=now):
        logger.info("Skipping scheduled update - was performed recently")
        result.status = "skipped"
        return result

    logger.info(f"Refreshing week {week}, year {year} (season type {season_type})")

    sync_result, reconciled, users_updated = process_week(data_sync, year, week)
    result.sync = sync_result.to_dict()
    result.reconciled = reconciled
    result.users_updated = users_updated

    SyncMarker.touch(SyncMarker.LAST_GAME_UPDATE, week=week, year=year, now=now)
    db.session.commit()

    logger.info(
        f"Refresh complete: {sync_result.written} games written, "
        f"{sync_result.skipped} malformed events skipped, "
        f"{len(reconciled)} games reconciled, {users_updated} users updated"
    )
    return result


def refresh_game(event_id, data_sync=None):
    """Refresh a single stored game from the summary endpoint"""
    game = db.session.get(Game, event_id)
    if game is None:
        return None

    data_sync = data_sync or DataSync.from_config(current_app.config)
    event = data_sync.fetch_event(event_id)
    return process_events([event], game.year, game.week)
