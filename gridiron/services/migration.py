"""
One-time schema upgrades for data written by earlier revisions.

- Legacy flat picks (users/{user}/picks/{game}) are copied into the
  per-season, per-week layout.
- Selections stored as "home"/"away" side tokens are rewritten to team ids
  and marked as version 2.
- Game rows holding a legacy status encoding ("pre"/"in"/"post",
  "scheduled"/"in_progress"/"completed") are rewritten to PRE/LIVE/FINAL.

Each step is safe to run more than once.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from gridiron import db
from gridiron.models import Game, GameState, LegacyPick, Pick, PickResult
from gridiron.models.pick import SELECTION_LEGACY, SELECTION_TEAM_ID
from gridiron.services.stats_service import recalculate_for_keys
from gridiron.utils.scoring import pick_outcome, resolve_selection

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    migrated: int = 0
    already_present: int = 0
    skipped_missing_game: int = 0
    selections_normalized: int = 0
    game_states_normalized: int = 0
    affected: set = field(default_factory=set)

    def to_dict(self):
        return {
            "migrated": self.migrated,
            "already_present": self.already_present,
            "skipped_missing_game": self.skipped_missing_game,
            "selections_normalized": self.selections_normalized,
            "game_states_normalized": self.game_states_normalized,
            "users_affected": len({key[0] for key in self.affected}),
        }


def normalize_game_states(report=None):
    report = report or MigrationReport()

    for game in Game.query.filter(Game.state.notin_(list(GameState.ORDER))).all():
        try:
            game.state = GameState.coerce(game.state)
        except ValueError:
            logger.warning(f"Game {game.id} has unknown state {game.state!r}, left as is")
            continue
        report.game_states_normalized += 1

    db.session.commit()
    return report


def migrate_legacy_picks(report=None, now=None):
    """Copy legacy flat picks into the hierarchical picks table"""
    report = report or MigrationReport()
    now = now or datetime.now(timezone.utc)

    for legacy in LegacyPick.query.order_by(LegacyPick.user_id).all():
        game = db.session.get(Game, legacy.game_id)
        if game is None:
            logger.info(f"Game {legacy.game_id} not found, skipping legacy pick {legacy.id}")
            report.skipped_missing_game += 1
            continue

        existing = Pick.query.filter_by(
            user_id=legacy.user_id, year=game.year, week=game.week, game_id=game.id
        ).first()
        if existing:
            report.already_present += 1
            continue

        result = (legacy.result or PickResult.PENDING).upper()
        if result not in (PickResult.WIN, PickResult.LOSS):
            result = PickResult.PENDING

        processed_at = None
        if result == PickResult.PENDING and game.is_final:
            outcome = pick_outcome(legacy.selected_team, game)
            if outcome is not None:
                result = outcome
                processed_at = now

        db.session.add(
            Pick(
                user_id=legacy.user_id,
                year=game.year,
                week=game.week,
                game_id=game.id,
                selected_team=legacy.selected_team,
                selection_version=SELECTION_LEGACY,
                result=result,
                locked=game.has_started(now),
                game_start_time=game.start_time,
                created_at=legacy.created_at or now,
                processed_at=processed_at,
            )
        )
        report.migrated += 1
        report.affected.add((legacy.user_id, game.year, game.week))

    db.session.commit()
    return report


def normalize_selections(report=None):
    """Rewrite side-token selections to team ids (version 1 -> 2)"""
    report = report or MigrationReport()

    for pick in Pick.query.filter_by(selection_version=SELECTION_LEGACY).all():
        game = pick.game
        if pick.is_side_token:
            if game is None:
                logger.info(f"Pick {pick.id} references unknown game {pick.game_id}, left as is")
                continue
            pick.selected_team = resolve_selection(
                pick.selected_team, game.home_team_id, game.away_team_id
            )
            report.selections_normalized += 1
            report.affected.add((pick.user_id, pick.year, pick.week))
        pick.selection_version = SELECTION_TEAM_ID

    db.session.commit()
    return report


def run_all():
    """Run every upgrade step, then rebuild the aggregates they touched"""
    report = MigrationReport()
    normalize_game_states(report)
    migrate_legacy_picks(report)
    normalize_selections(report)

    if report.affected:
        recalculate_for_keys(report.affected)

    logger.info(f"Migration finished: {report.to_dict()}")
    return report
