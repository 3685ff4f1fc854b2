"""
League week bookkeeping.

Internal week numbers run 1-18 for the regular season and 19-22 for the
postseason. The scoreboard API numbers postseason weeks separately under
seasontype=3, with its week 4 reserved for the Pro Bowl break.
"""

import math
from datetime import datetime, timezone

REGULAR_SEASON = 2
POSTSEASON = 3

REGULAR_SEASON_WEEKS = 18
LAST_WEEK = 22

# internal week -> upstream postseason week
POSTSEASON_WEEKS = {
    19: 1,  # Wild Card
    20: 2,  # Divisional
    21: 3,  # Conference Championships
    22: 5,  # Super Bowl
}
UPSTREAM_POSTSEASON_WEEKS = {v: k for k, v in POSTSEASON_WEEKS.items()}

WEEK_NAMES = {
    19: "Wild Card",
    20: "Divisional Round",
    21: "Conference Championships",
    22: "Super Bowl",
}


def is_valid_week(week):
    return isinstance(week, int) and 1 <= week <= LAST_WEEK


def week_name(week):
    return WEEK_NAMES.get(week, f"Week {week}")


def to_upstream(week):
    """Internal week -> (seasontype, upstream week)"""
    if not is_valid_week(week):
        raise ValueError(f"Week must be between 1 and {LAST_WEEK}, got {week!r}")
    if week <= REGULAR_SEASON_WEEKS:
        return REGULAR_SEASON, week
    return POSTSEASON, POSTSEASON_WEEKS[week]


def from_upstream(season_type, upstream_week):
    """(seasontype, upstream week) -> internal week, None if unmapped"""
    if season_type == REGULAR_SEASON:
        if 1 <= upstream_week <= REGULAR_SEASON_WEEKS:
            return upstream_week
        return None
    if season_type == POSTSEASON:
        return UPSTREAM_POSTSEASON_WEEKS.get(upstream_week)
    return None


def season_year_for(now):
    """Seasons start in September; January/February belong to last year"""
    return now.year if now.month >= 8 else now.year - 1


def fallback_week(now=None):
    """Estimate (week, year) from the calendar when the feed gives no hint"""
    now = now or datetime.now(timezone.utc)
    year = season_year_for(now)
    start = datetime(year, 9, 1, tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    elapsed_days = (now - start).total_seconds() / 86400
    weeks = math.ceil(elapsed_days / 7) if elapsed_days > 0 else 1
    return min(max(weeks, 1), LAST_WEEK), year


def current_week_from_scoreboard(data, now=None):
    """Read (week, year, season_type) from a scoreboard payload

    Falls back to the calendar estimate for whatever the payload omits.
    """
    estimate_week, estimate_year = fallback_week(now)

    season = data.get("season") or {}
    week_info = data.get("week") or {}

    year = season.get("year") or estimate_year
    season_type = season.get("type") or REGULAR_SEASON

    week = None
    if week_info.get("number"):
        week = from_upstream(season_type, int(week_info["number"]))
    if week is None:
        week = estimate_week

    return week, int(year), int(season_type)
