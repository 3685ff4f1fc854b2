import logging
from datetime import datetime, timezone
from functools import wraps

import requests
from flask import current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from gridiron import db, limiter
from gridiron.models import Game, Pick, User
from gridiron.models.pick import SIDE_TOKENS
from gridiron.routes.api import bp
from gridiron.services import stats_service
from gridiron.services.pipeline import run_refresh
from gridiron.services.scheduler_service import scheduler_service
from gridiron.utils import league_calendar
from gridiron.utils.cache_utils import cached_route, invalidate_model_cache
from gridiron.utils.data_sync import DataSync
from gridiron.utils.normalizer import normalize_events

logger = logging.getLogger(__name__)


def add_security_headers(f):
    """Add security headers to API responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if hasattr(response, "headers"):
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["X-XSS-Protection"] = "1; mode=block"
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
        return response

    return decorated_function


def _week_and_year():
    """Required week/year query arguments, or an error response"""
    week = request.args.get("week", type=int)
    year = request.args.get("year", type=int)

    if week is None or year is None:
        return None, None, (jsonify({"error": "week and year are required"}), 400)
    if not league_calendar.is_valid_week(week):
        return None, None, (jsonify({"error": f"Invalid week: {week}"}), 400)
    return week, year, None


def _current_season_year():
    return league_calendar.season_year_for(datetime.now(timezone.utc))


@bp.route("/current-week")
@cached_route(timeout=300, key_prefix="current_week")
def current_week():
    """Current league week, with the date-based fallback when upstream is down"""
    data_sync = DataSync.from_config(current_app.config)
    week, year, season_type = data_sync.fetch_current_week()
    return jsonify(
        {
            "week": week,
            "year": year,
            "seasonType": season_type,
            "weekName": league_calendar.week_name(week),
        }
    )


@bp.route("/games")
@cached_route(timeout=60, key_prefix="week_games")
def week_games():
    """Games for a week; unstored weeks are read from upstream without storing"""
    week, year, error = _week_and_year()
    if error:
        return error

    games = Game.get_games_for_week(year, week)
    if games:
        return jsonify(
            {"week": week, "year": year, "source": "store", "games": [g.to_dict() for g in games]}
        )

    try:
        events = DataSync.from_config(current_app.config).fetch_week_events(year, week)
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to fetch week {week}/{year} from upstream: {e}")
        return jsonify({"error": "Failed to fetch games from upstream"}), 500

    normalized, skipped = normalize_events(events)
    return jsonify(
        {
            "week": week,
            "year": year,
            "source": "upstream",
            "games": [g.to_dict() for g in normalized],
            "skipped": len(skipped),
        }
    )


@bp.route("/games/<game_id>")
def game_detail(game_id):
    game = db.session.get(Game, game_id)
    if game is None:
        return jsonify({"error": "Game not found"}), 404
    return jsonify(game.to_dict())


@bp.route("/picks", methods=["POST"])
@login_required
@limiter.limit("60 per minute")
@add_security_headers
def submit_pick():
    """Create or replace the caller's pick for one game"""
    data = request.get_json(silent=True) or {}
    game_id = data.get("gameId")
    selected_team = data.get("selectedTeam")

    if not game_id or not selected_team:
        return jsonify({"error": "gameId and selectedTeam are required"}), 400

    game = db.session.get(Game, str(game_id))
    if game is None:
        return jsonify({"error": "Game not found"}), 404

    selected_team = str(selected_team)
    if selected_team not in game.team_ids() and selected_team not in SIDE_TOKENS:
        return jsonify({"error": "Selected team is not playing in this game"}), 400

    try:
        pick, message = Pick.submit(current_user.id, game, selected_team)
        if pick is None:
            return jsonify({"error": message}), 403

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error saving pick for user {current_user.id}, game {game_id}: {e}")
        return jsonify({"error": "Failed to save pick"}), 500

    stats_service.recalculate_for_keys({(current_user.id, game.year, game.week)})
    return jsonify({"success": True, "message": message, "pick": pick.to_dict()})


@bp.route("/picks")
@login_required
@add_security_headers
def user_picks():
    """Get the caller's picks"""
    year = request.args.get("year", type=int) or _current_season_year()
    week = request.args.get("week", type=int)

    picks = Pick.get_for_user(current_user.id, year=year, week=week)
    return jsonify({"year": year, "week": week, "picks": [p.to_dict() for p in picks]})


@bp.route("/all-picks")
def all_picks():
    """Everyone's picks, revealed only for games that have started"""
    week, year, error = _week_and_year()
    if error:
        return error

    now = datetime.now(timezone.utc)
    games = [g for g in Game.get_games_for_week(year, week) if g.has_started(now)]

    users = {u.id: u for u in User.query.all()}
    result = []
    for game in games:
        picks = Pick.get_for_game(game.id)
        result.append(
            {
                "game": game.to_dict(),
                "picks": [
                    dict(
                        pick.to_dict(),
                        display_name=users[pick.user_id].name if pick.user_id in users else None,
                    )
                    for pick in picks
                ],
            }
        )

    return jsonify({"week": week, "year": year, "games": result})


@bp.route("/stats/<int:user_id>")
def user_stats(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        return jsonify({"error": "User not found"}), 404

    year = request.args.get("year", type=int) or _current_season_year()
    stats = stats_service.get_user_stats(user_id, year)
    stats["user"] = user.to_dict()
    return jsonify(stats)


@bp.route("/stats/recalculate", methods=["POST"])
@login_required
@add_security_headers
def recalculate_stats():
    """Rebuild aggregates for the caller, or for any user when admin"""
    data = request.get_json(silent=True) or {}
    user_id = data.get("userId", current_user.id)
    year = data.get("year")

    try:
        user_id = int(user_id)
        year = int(year) if year is not None else None
    except (TypeError, ValueError):
        return jsonify({"error": "userId and year must be integers"}), 400

    if user_id != current_user.id and not current_user.is_admin:
        return jsonify({"error": "Admin access required"}), 403

    if db.session.get(User, user_id) is None:
        return jsonify({"error": "User not found"}), 404

    try:
        weeks = stats_service.recalculate_user_stats(user_id, year)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Stats recalculation failed for user {user_id}: {e}")
        return jsonify({"error": "Failed to recalculate stats"}), 500

    invalidate_model_cache("Stats")
    return jsonify({"success": True, "user_id": user_id, "year": year, "weeks": weeks})


@bp.route("/refresh", methods=["POST"])
@login_required
@limiter.limit("10 per minute")
@add_security_headers
def refresh():
    """Immediate score refresh; bypasses the cooldown"""
    try:
        result = run_refresh(force=True)
    except requests.exceptions.RequestException as e:
        logger.error(f"Manual refresh failed, upstream unavailable: {e}")
        return jsonify({"error": "Failed to fetch data from upstream"}), 500
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Manual refresh failed, database error: {e}")
        return jsonify({"error": "Failed to store refreshed data"}), 500

    return jsonify(result.to_dict())


@bp.route("/leaderboard")
@cached_route(timeout=60, key_prefix="leaderboard")
def leaderboard():
    scope = request.args.get("scope", "season")
    year = request.args.get("year", type=int) or _current_season_year()
    week = request.args.get("week", type=int)

    if scope == "week" and week is None:
        return jsonify({"error": "week is required for the week leaderboard"}), 400

    try:
        standings = stats_service.get_leaderboard(scope=scope, year=year, week=week)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"scope": scope, "year": year, "week": week, "leaderboard": standings})


@bp.route("/scheduler/status")
@login_required
@add_security_headers
def scheduler_status():
    return jsonify(scheduler_service.get_status())
