import logging
import time
from dataclasses import dataclass, field
from functools import wraps

import requests

from gridiron import db
from gridiron.models import Game, GameState
from gridiron.utils import league_calendar
from gridiron.utils.normalizer import normalize_events

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://site.api.espn.com/apis/site/v2/sports/football/nfl"


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(self, *args, **kwargs)

                except requests.exceptions.HTTPError as e:
                    status_code = e.response.status_code if e.response is not None else 0
                    if status_code == 429:
                        retry_after = e.response.headers.get("Retry-After")
                        delay = (
                            float(retry_after)
                            if retry_after and retry_after.isdigit()
                            else base_delay * (backoff_factor**attempt)
                        )
                    elif status_code >= 500:
                        delay = base_delay * (backoff_factor**attempt)
                    else:
                        # Client errors will not improve on retry
                        raise

                    if attempt == max_retries - 1:
                        raise
                    logger.warning(
                        f"HTTP {status_code}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    time.sleep(delay)

                except (
                    requests.exceptions.ConnectionError,
                    requests.exceptions.Timeout,
                ) as e:
                    if attempt == max_retries - 1:
                        raise
                    delay = base_delay * (backoff_factor**attempt)
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    time.sleep(delay)

            raise requests.exceptions.RetryError(f"Max retries ({max_retries}) exceeded")

        return wrapper

    return decorator


@dataclass
class SyncResult:
    """Outcome of one Game Store Sync pass"""

    year: int
    week: int
    fetched: int = 0
    written: int = 0
    unchanged: int = 0
    skipped: int = 0
    regressions: int = 0
    newly_final: list = field(default_factory=list)

    def to_dict(self):
        return {
            "year": self.year,
            "week": self.week,
            "fetched": self.fetched,
            "written": self.written,
            "unchanged": self.unchanged,
            "skipped": self.skipped,
            "regressions": self.regressions,
            "newly_final": list(self.newly_final),
        }


def needs_write(stored, normalized):
    """Diff-before-write: new game, score change or state change"""
    if stored is None:
        return True
    return (
        stored.home_score != normalized.home.score
        or stored.away_score != normalized.away.score
        or stored.state != normalized.status.state
    )


class DataSync:
    """
    Fetches scoreboard data from the upstream API and merges it into the
    games table, with client-side rate limiting and retries
    """

    def __init__(self, api_base_url=None, timeout=30):
        self.api_base_url = (api_base_url or DEFAULT_API_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "Gridiron-Picks/1.0"})

        # Rate limiting configuration
        self.request_count = 0
        self.last_request_time = 0
        self.min_request_interval = 0.5
        self.max_requests_per_minute = 60
        self.request_timestamps = []

    @classmethod
    def from_config(cls, app_config):
        return cls(
            api_base_url=app_config.get("NFL_API_BASE_URL"),
            timeout=app_config.get("API_REQUEST_TIMEOUT", 30),
        )

    def _enforce_rate_limit(self):
        """Enforce rate limiting before making requests"""
        current_time = time.time()

        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        if len(self.request_timestamps) >= self.max_requests_per_minute:
            sleep_time = 60 - (current_time - self.request_timestamps[0])
            if sleep_time > 0:
                logger.info(f"Rate limit reached. Sleeping for {sleep_time:.1f}s")
                time.sleep(sleep_time)
                self.request_timestamps = []

        time_since_last = current_time - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)

        self.last_request_time = time.time()
        self.request_timestamps.append(self.last_request_time)
        self.request_count += 1

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, path, params=None):
        """GET a JSON document from the upstream API"""
        self._enforce_rate_limit()

        url = f"{self.api_base_url}/{path.lstrip('/')}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        except requests.exceptions.Timeout:
            logger.warning(f"Request timeout for {url}")
            raise
        except requests.exceptions.ConnectionError:
            logger.warning(f"Connection error for {url}")
            raise
        except requests.exceptions.HTTPError as e:
            logger.warning(f"HTTP error {e.response.status_code}: {url}")
            raise

    def fetch_current_week(self):
        """(week, year, season_type) from the scoreboard, calendar fallback"""
        try:
            data = self._make_api_request("scoreboard", params={"limit": 1})
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not read current week from upstream: {e}")
            data = {}
        return league_calendar.current_week_from_scoreboard(data)

    def fetch_week_events(self, year, week):
        """Raw scoreboard events for one internal league week"""
        season_type, upstream_week = league_calendar.to_upstream(week)
        data = self._make_api_request(
            "scoreboard",
            params={"dates": year, "seasontype": season_type, "week": upstream_week},
        )
        return data.get("events", [])

    def fetch_event(self, event_id):
        """Single event from the summary endpoint, reshaped like a scoreboard event"""
        data = self._make_api_request("summary", params={"event": event_id})
        header = data.get("header", {})
        competition = (header.get("competitions") or [{}])[0]
        return {
            "id": header.get("id", event_id),
            "date": competition.get("date"),
            "competitions": [competition],
            "status": competition.get("status", {}),
        }

    def sync_week(self, year, week):
        """Fetch a week from upstream and merge it into the games table

        Upstream errors propagate; nothing is written in that case.
        """
        events = self.fetch_week_events(year, week)
        return sync_games(events, year, week)


def sync_games(events, year, week):
    """Game Store Sync for one batch of raw events

    Malformed events are skipped; all writes are committed together.
    """
    result = SyncResult(year=year, week=week, fetched=len(events))
    games, skipped = normalize_events(events)
    result.skipped = len(skipped)

    for normalized in games:
        stored = db.session.get(Game, normalized.event_id)
        previous_state = stored.state if stored else None

        if stored is not None and GameState.is_regression(
            stored.state, normalized.status.state
        ):
            logger.warning(
                f"Ignoring state regression for game {normalized.event_id}: "
                f"{stored.state} -> {normalized.status.state}"
            )
            result.regressions += 1
            continue

        if not needs_write(stored, normalized):
            result.unchanged += 1
            continue

        if stored is None:
            stored = Game(id=normalized.event_id, year=year, week=week)
            db.session.add(stored)

        stored.apply(normalized)
        stored.year = year
        stored.week = week
        result.written += 1

        if normalized.is_final and previous_state != GameState.FINAL:
            result.newly_final.append(normalized.event_id)

        if previous_state and previous_state != normalized.status.state:
            logger.info(
                f"Game {normalized.event_id} status changed from {previous_state} to {normalized.status.state}"
            )

    db.session.commit()

    logger.info(
        f"Synced week {week} {year}: {result.fetched} fetched, {result.written} written, "
        f"{result.unchanged} unchanged, {result.skipped} skipped"
    )
    return result
