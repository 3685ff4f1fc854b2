"""
Pick reconciliation: settle every pick on a finished game as WIN or LOSS.

Safe to re-run. The result is a function of the stored game and the stored
selection only, so repeated runs (overlapping scheduler jobs, manual
refreshes) rewrite the same values.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from gridiron import db
from gridiron.models import Game, GameState, Pick, PickResult
from gridiron.utils.scoring import pick_outcome

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    game_id: str
    status: str = "reconciled"
    winner: str = None
    picks_updated: int = 0
    wins: int = 0
    losses: int = 0
    # (user_id, year, week) whose aggregates need recomputing
    affected: set = field(default_factory=set)

    def to_dict(self):
        return {
            "game_id": self.game_id,
            "status": self.status,
            "winner": self.winner,
            "picks_updated": self.picks_updated,
            "wins": self.wins,
            "losses": self.losses,
        }


def reconcile_game(game_id, now=None):
    """Reconcile all picks for one game in a single transaction

    status is one of: reconciled, missing, not_final, tie.
    """
    result = ReconcileResult(game_id=game_id)

    game = db.session.get(Game, game_id)
    if game is None:
        logger.warning(f"Cannot reconcile game {game_id}: game not found")
        result.status = "missing"
        return result

    if not game.is_final:
        result.status = "not_final"
        return result

    winner = game.winning_team_id
    if winner is None:
        logger.info(f"Game {game_id} ended in a tie, picks stay pending")
        result.status = "tie"
        for pick in Pick.get_for_game(game_id):
            result.affected.add((pick.user_id, pick.year, pick.week))
        return result

    result.winner = winner
    processed_at = now or datetime.now(timezone.utc)

    try:
        for pick in Pick.get_for_game(game_id):
            outcome = pick_outcome(pick.selected_team, game)

            pick.result = outcome
            pick.locked = True
            pick.processed_at = processed_at
            if pick.game_start_time is None:
                pick.game_start_time = game.start_time

            result.picks_updated += 1
            if outcome == PickResult.WIN:
                result.wins += 1
            else:
                result.losses += 1
            result.affected.add((pick.user_id, pick.year, pick.week))

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"Game {game_id} reconciled: winner {winner}, "
        f"{result.picks_updated} picks ({result.wins} won, {result.losses} lost)"
    )
    return result


def unreconciled_final_games(year, week):
    """FINAL games in a week that still have pending picks"""
    game_ids = (
        db.session.query(Pick.game_id)
        .join(Game, Game.id == Pick.game_id)
        .filter(
            Game.year == year,
            Game.week == week,
            Game.state == GameState.FINAL,
            Pick.result == PickResult.PENDING,
        )
        .distinct()
        .all()
    )
    return [row.game_id for row in game_ids]
