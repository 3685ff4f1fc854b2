"""Unit tests for scoreboard event normalization."""

from datetime import datetime, timezone

import pytest

from gridiron.models import GameState
from gridiron.utils.normalizer import (
    MalformedEventError,
    derive_state,
    normalize_event,
    normalize_events,
    period_label,
)
from tests.factories import final_event, live_event, make_event


@pytest.mark.parametrize(
    "status_type, expected",
    [
        ({"state": "pre", "completed": False}, GameState.PRE),
        ({"state": "in", "completed": False}, GameState.LIVE),
        ({"state": "post", "completed": True}, GameState.FINAL),
        # completed wins over whatever the state flag says
        ({"state": "pre", "completed": True}, GameState.FINAL),
        # anything that is not "pre" and not completed is live
        ({"state": "post", "completed": False}, GameState.LIVE),
        ({}, GameState.LIVE),
    ],
)
def test_derive_state(status_type, expected):
    assert derive_state(status_type) == expected


@pytest.mark.parametrize(
    "period, label",
    [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (5, "OT"), (6, "OT2"), (7, "OT3")],
)
def test_period_label(period, label):
    assert period_label(period) == label


def test_pre_game_shows_kickoff_in_display_timezone():
    game = normalize_event(make_event())

    assert game.event_id == "401547001"
    assert game.start_time == datetime(2025, 9, 7, 17, 0, tzinfo=timezone.utc)
    assert game.status.state == GameState.PRE
    assert game.status.display_text == "Sun, Sep 7, 1:00 PM"
    assert game.home.id == "13"
    assert game.away.id == "4"
    assert game.home.score is None


def test_live_game_shows_running_score_and_clock():
    game = normalize_event(live_event(home_score="10", away_score="7"))

    assert game.status.state == GameState.LIVE
    assert game.status.display_text == "7–10"
    assert game.status.detail == "2nd 5:32"
    assert game.home.score == 10
    assert game.away.score == 7


def test_live_game_in_overtime():
    event = make_event(home_score="20", away_score="20", state="in", period=5, clock="8:01")
    assert normalize_event(event).status.detail == "OT 8:01"


def test_live_game_without_clock_uses_short_detail():
    event = make_event(home_score="3", away_score="0", state="in", short_detail="Halftime")
    assert normalize_event(event).status.detail == "Halftime"


def test_live_game_period_sent_as_decimal_string():
    event = make_event(home_score="10", away_score="7", state="in", period="2.0", clock="5:32")
    assert normalize_event(event).status.detail == "2nd 5:32"


def test_live_game_with_unreadable_period_uses_short_detail():
    event = make_event(
        home_score="10", away_score="7", state="in", period="late", clock="5:32", short_detail="Q2 5:32"
    )
    assert normalize_event(event).status.detail == "Q2 5:32"


def test_final_game():
    game = normalize_event(final_event(home_score="24", away_score="27"))

    assert game.is_final
    assert game.status.display_text == "Final"
    assert game.status.detail == "27–24"


def test_status_may_live_on_competition():
    event = final_event()
    event["competitions"][0]["status"] = event.pop("status")

    assert normalize_event(event).status.state == GameState.FINAL


def test_record_and_score_parsing():
    event = make_event(home_score={"value": 17.0, "displayValue": "17"}, away_score="")
    event["competitions"][0]["competitors"][0]["records"] = [{"summary": "2-1"}]

    game = normalize_event(event)
    assert game.home.score == 17
    assert game.home.record == "2-1"
    assert game.away.score is None


class TestMalformedEvents:
    def test_missing_competitions(self):
        event = make_event()
        event["competitions"] = []
        with pytest.raises(MalformedEventError, match="missing competitions"):
            normalize_event(event)

    def test_missing_competitors(self):
        event = make_event()
        event["competitions"][0]["competitors"] = []
        with pytest.raises(MalformedEventError, match="missing competitors"):
            normalize_event(event)

    def test_two_home_competitors(self):
        event = make_event()
        event["competitions"][0]["competitors"][1]["homeAway"] = "home"
        with pytest.raises(MalformedEventError, match="home/away"):
            normalize_event(event)

    def test_competitor_without_team(self):
        event = make_event()
        del event["competitions"][0]["competitors"][0]["team"]
        with pytest.raises(MalformedEventError):
            normalize_event(event)

    def test_same_team_twice(self):
        event = make_event(home=("4", "Kansas City Chiefs"))
        with pytest.raises(MalformedEventError, match="same team"):
            normalize_event(event)

    def test_bad_date(self):
        with pytest.raises(MalformedEventError, match="bad date"):
            normalize_event(make_event(date="next sunday"))

    def test_non_string_date(self):
        with pytest.raises(MalformedEventError, match="bad date"):
            normalize_event(make_event(date=20250907))

    def test_missing_date(self):
        event = make_event()
        del event["date"]
        with pytest.raises(MalformedEventError, match="missing date"):
            normalize_event(event)


def test_batch_skips_malformed_events_and_keeps_the_rest():
    broken = make_event(event_id="bad")
    broken["competitions"] = []

    games, skipped = normalize_events([make_event(event_id="1"), broken, final_event(event_id="2")])

    assert [g.event_id for g in games] == ["1", "2"]
    assert skipped == [("bad", "missing competitions")]


def test_batch_survives_oddly_shaped_events():
    bad_date = make_event(event_id="bad-date", date=20250907)
    odd = make_event(event_id="odd")
    odd["competitions"][0]["competitors"] = "home,away"

    games, skipped = normalize_events([make_event(event_id="1"), bad_date, odd, None])

    assert [g.event_id for g in games] == ["1"]
    assert [event_id for event_id, _ in skipped] == ["bad-date", "odd", "unknown"]
