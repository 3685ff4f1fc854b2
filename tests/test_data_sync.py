from unittest.mock import MagicMock, patch

import pytest
import requests

from gridiron import db
from gridiron.models import Game, GameState
from gridiron.utils.data_sync import DataSync, rate_limit_decorator, sync_games
from tests.factories import final_event, live_event, make_event


def http_error(status, headers=None):
    response = MagicMock(status_code=status, headers=headers or {})
    return requests.exceptions.HTTPError(response=response)


class Flaky:
    def __init__(self, failures):
        self.failures = list(failures)
        self.calls = 0

    @rate_limit_decorator(max_retries=3, base_delay=0.01)
    def fetch(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return {"ok": True}


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("gridiron.utils.data_sync.time.sleep") as sleep:
        yield sleep


class TestRateLimitDecorator:
    def test_retries_server_errors_then_succeeds(self):
        client = Flaky([http_error(503), requests.exceptions.ConnectionError()])
        assert client.fetch() == {"ok": True}
        assert client.calls == 3

    def test_honours_retry_after(self, no_sleep):
        client = Flaky([http_error(429, {"Retry-After": "7"})])
        client.fetch()
        no_sleep.assert_called_once_with(7.0)

    def test_client_errors_are_not_retried(self):
        client = Flaky([http_error(404)])
        with pytest.raises(requests.exceptions.HTTPError):
            client.fetch()
        assert client.calls == 1

    def test_gives_up_after_max_retries(self):
        client = Flaky([requests.exceptions.Timeout()] * 3)
        with pytest.raises(requests.exceptions.Timeout):
            client.fetch()
        assert client.calls == 3


def mock_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestDataSyncRequests:
    def test_fetch_week_events_maps_postseason_weeks(self):
        data_sync = DataSync(api_base_url="https://example.test/nfl/")
        data_sync.session.get = MagicMock(return_value=mock_response({"events": [make_event()]}))

        events = data_sync.fetch_week_events(2025, 22)

        assert len(events) == 1
        url = data_sync.session.get.call_args.args[0]
        params = data_sync.session.get.call_args.kwargs["params"]
        assert url == "https://example.test/nfl/scoreboard"
        assert params == {"dates": 2025, "seasontype": 3, "week": 5}

    def test_fetch_current_week_reads_scoreboard(self):
        data_sync = DataSync()
        data_sync.session.get = MagicMock(
            return_value=mock_response(
                {"season": {"year": 2025, "type": 2}, "week": {"number": 9}}
            )
        )
        assert data_sync.fetch_current_week() == (9, 2025, 2)

    def test_fetch_current_week_falls_back_when_upstream_is_down(self):
        data_sync = DataSync()
        data_sync.session.get = MagicMock(side_effect=requests.exceptions.ConnectionError())

        week, year, season_type = data_sync.fetch_current_week()

        assert 1 <= week <= 22
        assert season_type == 2

    def test_fetch_event_reshapes_summary(self):
        event = final_event()
        competition = dict(event["competitions"][0], date=event["date"], status=event["status"])
        data_sync = DataSync()
        data_sync.session.get = MagicMock(
            return_value=mock_response({"header": {"id": "401547001", "competitions": [competition]}})
        )

        reshaped = data_sync.fetch_event("401547001")

        assert reshaped["id"] == "401547001"
        assert reshaped["date"] == event["date"]
        assert reshaped["status"]["type"]["completed"] is True


class TestSyncGames:
    def test_creates_games(self, app):
        result = sync_games([make_event(event_id="1"), make_event(event_id="2")], 2025, 1)

        assert result.written == 2
        assert Game.query.count() == 2
        assert db.session.get(Game, "1").state == GameState.PRE

    def test_unchanged_games_are_not_rewritten(self, app):
        sync_games([live_event()], 2025, 1)
        result = sync_games([live_event()], 2025, 1)

        assert result.written == 0
        assert result.unchanged == 1

    def test_score_change_is_written(self, app):
        sync_games([live_event(home_score="10")], 2025, 1)
        result = sync_games([live_event(home_score="17")], 2025, 1)

        assert result.written == 1
        assert db.session.get(Game, "401547001").home_score == 17

    def test_newly_final_reported_once(self, app):
        sync_games([live_event()], 2025, 1)

        first = sync_games([final_event()], 2025, 1)
        second = sync_games([final_event()], 2025, 1)

        assert first.newly_final == ["401547001"]
        assert second.newly_final == []

    def test_state_regression_is_ignored(self, app):
        sync_games([final_event()], 2025, 1)
        result = sync_games([live_event()], 2025, 1)

        assert result.regressions == 1
        game = db.session.get(Game, "401547001")
        assert game.state == GameState.FINAL
        assert game.home_score == 24

    def test_malformed_events_are_skipped(self, app):
        broken = make_event(event_id="bad")
        broken["competitions"][0]["competitors"] = []

        result = sync_games([broken, make_event(event_id="ok")], 2025, 3)

        assert result.skipped == 1
        assert result.written == 1
        assert db.session.get(Game, "ok").week == 3
