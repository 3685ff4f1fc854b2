"""
Week, season and all-time statistics.

Aggregates are always rebuilt from the picks underneath them. There is no
incremental path: picks can be settled out of order or settled twice, and a
full recount is the only way to stay correct under both.
"""

import logging
from collections import Counter, defaultdict

from gridiron import db
from gridiron.models import Pick, PickResult, SeasonStats, User, WeekStats

logger = logging.getLogger(__name__)


def count_results(picks):
    """(wins, losses, pending) for a collection of picks"""
    counts = Counter(pick.result for pick in picks)
    wins = counts.get(PickResult.WIN, 0)
    losses = counts.get(PickResult.LOSS, 0)
    # Anything not settled, including rows never reconciled, is pending
    pending = len(picks) - wins - losses
    return wins, losses, pending


def _week_stats_row(user_id, year, week):
    row = WeekStats.query.filter_by(user_id=user_id, year=year, week=week).first()
    if row is None:
        row = WeekStats(user_id=user_id, year=year, week=week)
        db.session.add(row)
    return row


def _season_stats_row(user_id, year):
    row = SeasonStats.query.filter_by(user_id=user_id, year=year).first()
    if row is None:
        row = SeasonStats(user_id=user_id, year=year)
        db.session.add(row)
    return row


def recalculate_week_stats(user_id, year, week, commit=True):
    """Recount one user's week from its picks"""
    picks = Pick.get_for_user(user_id, year=year, week=week)
    wins, losses, pending = count_results(picks)

    row = _week_stats_row(user_id, year, week)
    row.wins = wins
    row.losses = losses
    row.pending = pending
    row.total = wins + losses + pending

    if commit:
        db.session.commit()
    return row


def recalculate_season_stats(user_id, year, commit=True):
    """Sum one user's week stats for a season"""
    db.session.flush()
    weeks = (
        WeekStats.query.filter_by(user_id=user_id, year=year)
        .order_by(WeekStats.week)
        .all()
    )

    total_wins = sum(w.wins for w in weeks)
    total_losses = sum(w.losses for w in weeks)

    row = _season_stats_row(user_id, year)
    row.total_wins = total_wins
    row.total_losses = total_losses
    row.total_games = total_wins + total_losses
    row.weekly_records = {str(w.week): w.record for w in weeks}

    if commit:
        db.session.commit()
    return row


def recalculate_for_keys(keys):
    """Recompute the given (user_id, year, week) weeks and their seasons

    Each user's aggregates are committed as one unit.
    """
    by_user = defaultdict(set)
    for user_id, year, week in keys:
        by_user[user_id].add((year, week))

    for user_id, weeks in by_user.items():
        try:
            for year, week in sorted(weeks):
                recalculate_week_stats(user_id, year, week, commit=False)
            for year in sorted({year for year, _ in weeks}):
                recalculate_season_stats(user_id, year, commit=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    return len(by_user)


def _known_weeks(user_id, year=None):
    """Weeks that have picks or an existing stats row for a user"""
    pick_query = db.session.query(Pick.year, Pick.week).filter(Pick.user_id == user_id)
    stats_query = db.session.query(WeekStats.year, WeekStats.week).filter(
        WeekStats.user_id == user_id
    )
    if year is not None:
        pick_query = pick_query.filter(Pick.year == year)
        stats_query = stats_query.filter(WeekStats.year == year)

    return set(pick_query.distinct().all()) | set(stats_query.distinct().all())


def recalculate_user_stats(user_id, year=None):
    """Rebuild every week and season aggregate for one user"""
    keys = {(user_id, y, w) for y, w in _known_weeks(user_id, year)}
    recalculate_for_keys(keys)
    logger.info(f"Recalculated stats for user {user_id} ({len(keys)} weeks)")
    return len(keys)


def recalculate_all_stats(year=None):
    """Rebuild aggregates for every user; returns number of users processed"""
    users = User.query.all()
    for user in users:
        recalculate_user_stats(user.id, year)
    return len(users)


def get_user_stats(user_id, year):
    season = SeasonStats.query.filter_by(user_id=user_id, year=year).first()
    weeks = (
        WeekStats.query.filter_by(user_id=user_id, year=year)
        .order_by(WeekStats.week)
        .all()
    )
    return {
        "user_id": user_id,
        "year": year,
        "season": season.to_dict() if season else None,
        "weeks": [w.to_dict() for w in weeks],
    }


def _win_percentage(wins, losses):
    decided = wins + losses
    return round(wins / decided * 100, 1) if decided else 0.0


def get_leaderboard(scope="season", year=None, week=None):
    """Standings for a week, a season or all time, best record first"""
    if scope == "week":
        rows = (
            db.session.query(User, WeekStats.wins, WeekStats.losses)
            .join(WeekStats, WeekStats.user_id == User.id)
            .filter(WeekStats.year == year, WeekStats.week == week)
            .all()
        )
    elif scope == "season":
        rows = (
            db.session.query(User, SeasonStats.total_wins, SeasonStats.total_losses)
            .join(SeasonStats, SeasonStats.user_id == User.id)
            .filter(SeasonStats.year == year)
            .all()
        )
    elif scope == "alltime":
        rows = (
            db.session.query(
                User,
                db.func.sum(SeasonStats.total_wins),
                db.func.sum(SeasonStats.total_losses),
            )
            .join(SeasonStats, SeasonStats.user_id == User.id)
            .group_by(User.id)
            .all()
        )
    else:
        raise ValueError(f"Unknown leaderboard scope: {scope}")

    leaderboard = []
    for user, wins, losses in rows:
        wins = int(wins or 0)
        losses = int(losses or 0)
        leaderboard.append(
            {
                "user_id": user.id,
                "display_name": user.name,
                "avatar_url": user.avatar_url,
                "wins": wins,
                "losses": losses,
                "win_percentage": _win_percentage(wins, losses),
            }
        )

    leaderboard.sort(key=lambda x: (x["wins"], x["win_percentage"]), reverse=True)
    return leaderboard
