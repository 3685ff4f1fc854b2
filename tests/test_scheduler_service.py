from unittest.mock import patch

import pytest
import requests

from gridiron.services.pipeline import RefreshResult
from gridiron.services.scheduler_service import SchedulerService

SCHEDULER = "gridiron.services.scheduler_service"


@pytest.fixture
def service(app):
    service = SchedulerService()
    service.app = app
    return service


def completed(written=3):
    return RefreshResult(status="completed", week=1, year=2025, season_type=2, sync={"written": written})


def test_completed_run_is_counted(service):
    with patch(f"{SCHEDULER}.run_refresh", return_value=completed()) as run:
        result = service._refresh_scores()

    run.assert_called_once_with(force=False)
    assert result.status == "completed"
    stats = service.get_status()["stats"]
    assert stats["successful_syncs"] == 1
    assert stats["games_updated"] == 3
    assert stats["last_status"] == "completed"
    assert stats["last_sync"] is not None


def test_skipped_run_is_counted(service):
    with patch(f"{SCHEDULER}.run_refresh", return_value=RefreshResult(status="skipped")):
        service._refresh_scores()

    stats = service.sync_stats
    assert (stats["total_syncs"], stats["skipped_syncs"], stats["successful_syncs"]) == (1, 1, 0)


def test_upstream_failure_is_recorded(service):
    with patch(f"{SCHEDULER}.run_refresh", side_effect=requests.exceptions.ConnectionError("down")):
        assert service._refresh_scores() is None

    assert service.sync_stats["failed_syncs"] == 1
    assert service.sync_stats["last_error"] == "down"


def test_success_clears_last_error(service):
    with patch(f"{SCHEDULER}.run_refresh", side_effect=requests.exceptions.Timeout("slow")):
        service._refresh_scores()
    with patch(f"{SCHEDULER}.run_refresh", return_value=completed()):
        service._refresh_scores()

    assert service.sync_stats["last_error"] is None


def test_counters_reset(service):
    service.sync_stats["total_syncs"] = 10000
    service._update_stats("completed", games_updated=1)

    assert service.sync_stats["total_syncs"] == 0
    assert service.sync_stats["last_sync"] is not None


class TestForceSync:
    def test_refresh_bypasses_cooldown(self, service):
        with patch(f"{SCHEDULER}.run_refresh", return_value=completed()) as run:
            ok, message = service.force_sync("refresh")

        run.assert_called_once_with(force=True)
        assert ok is True
        assert message == "Manual refresh completed"

    def test_refresh_failure(self, service):
        with patch(f"{SCHEDULER}.run_refresh", side_effect=requests.exceptions.ConnectionError("down")):
            ok, message = service.force_sync("refresh")

        assert ok is False
        assert "down" in message

    def test_stats_rebuild(self, service):
        with patch(f"{SCHEDULER}.recalculate_all_stats", return_value=2) as rebuild:
            ok, _ = service.force_sync("stats")

        assert ok is True
        rebuild.assert_called_once()

    def test_unknown_type(self, service):
        with pytest.raises(ValueError):
            service.force_sync("weekly")


def test_jobs_listed_while_running(app):
    app.config["SCHEDULER_ENABLED"] = True
    service = SchedulerService()
    service.init_app(app)
    try:
        status = service.get_status()
        assert status["is_running"] is True
        assert {job["id"] for job in status["jobs"]} == {"refresh_scores", "rebuild_stats"}
    finally:
        service.stop()

    assert service.get_status()["jobs"] == []
