from datetime import datetime, timezone

import pytest

from gridiron.utils import league_calendar as cal


@pytest.mark.parametrize(
    "week, upstream",
    [(1, (2, 1)), (18, (2, 18)), (19, (3, 1)), (20, (3, 2)), (21, (3, 3)), (22, (3, 5))],
)
def test_to_upstream(week, upstream):
    assert cal.to_upstream(week) == upstream


@pytest.mark.parametrize("week", [0, 23, -1, "3"])
def test_to_upstream_rejects_invalid_weeks(week):
    with pytest.raises(ValueError):
        cal.to_upstream(week)


def test_from_upstream_inverts_postseason_table():
    for week in range(1, cal.LAST_WEEK + 1):
        assert cal.from_upstream(*cal.to_upstream(week)) == week


def test_pro_bowl_week_is_unmapped():
    assert cal.from_upstream(cal.POSTSEASON, 4) is None


def test_preseason_is_unmapped():
    assert cal.from_upstream(1, 2) is None


def test_week_names():
    assert cal.week_name(5) == "Week 5"
    assert cal.week_name(22) == "Super Bowl"


@pytest.mark.parametrize(
    "now, expected",
    [
        (datetime(2025, 8, 20, tzinfo=timezone.utc), (1, 2025)),
        (datetime(2025, 9, 1, 12, tzinfo=timezone.utc), (1, 2025)),
        (datetime(2025, 9, 10, tzinfo=timezone.utc), (2, 2025)),
        (datetime(2025, 12, 25, tzinfo=timezone.utc), (17, 2025)),
        # January and February belong to the previous season, clamped at 22
        (datetime(2026, 2, 20, tzinfo=timezone.utc), (22, 2025)),
        (datetime(2026, 6, 1, tzinfo=timezone.utc), (22, 2025)),
    ],
)
def test_fallback_week(now, expected):
    assert cal.fallback_week(now) == expected


def test_current_week_from_scoreboard_regular_season():
    data = {"season": {"year": 2025, "type": 2}, "week": {"number": 6}}
    assert cal.current_week_from_scoreboard(data) == (6, 2025, 2)


def test_current_week_from_scoreboard_postseason():
    data = {"season": {"year": 2025, "type": 3}, "week": {"number": 5}}
    assert cal.current_week_from_scoreboard(data) == (22, 2025, 3)


def test_current_week_from_empty_payload_uses_calendar():
    now = datetime(2025, 9, 10, tzinfo=timezone.utc)
    assert cal.current_week_from_scoreboard({}, now) == (2, 2025, cal.REGULAR_SEASON)
