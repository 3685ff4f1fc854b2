"""
Normalization of upstream scoreboard events into canonical game records.

The scoreboard payload is irregular: competitor ordering varies, scores are
strings or missing, and in-progress detail depends on what the feed sends at
that moment. Everything downstream works with NormalizedGame only.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

from gridiron.models.game import GameState
from gridiron.utils.timezone_utils import format_kickoff, parse_iso_datetime

logger = logging.getLogger(__name__)


class MalformedEventError(ValueError):
    """Raised for a single upstream event that cannot be normalized"""

    def __init__(self, event_id, reason):
        self.event_id = event_id
        self.reason = reason
        super().__init__(f"Invalid game data for event {event_id}: {reason}")


@dataclass
class Participant:
    id: str
    name: str
    logo: Optional[str] = None
    score: Optional[int] = None
    record: Optional[str] = None


@dataclass
class GameStatus:
    state: str
    display_text: str
    detail: Optional[str] = None


@dataclass
class NormalizedGame:
    event_id: str
    start_time: datetime
    home: Participant
    away: Participant
    status: GameStatus
    raw_date: str = field(default="", repr=False)

    @property
    def is_final(self):
        return self.status.state == GameState.FINAL

    def to_dict(self):
        """Same shape as Game.to_dict, for games that are not stored"""
        return {
            "id": self.event_id,
            "start_time": self.start_time.isoformat(),
            "home": asdict(self.home),
            "away": asdict(self.away),
            "status": asdict(self.status),
        }


def ordinal(n):
    """1 -> 1st, 2 -> 2nd, 11 -> 11th, 23 -> 23rd"""
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def period_label(period):
    """Quarter label; overtime periods are OT, OT2, OT3..."""
    if period <= 4:
        return ordinal(period)
    overtime = period - 4
    return "OT" if overtime == 1 else f"OT{overtime}"


def _parse_period(value):
    try:
        period = int(float(value))
    except (TypeError, ValueError):
        return None
    return period if period > 0 else None


def derive_state(status_type):
    if status_type.get("completed"):
        return GameState.FINAL
    if status_type.get("state") == "pre":
        return GameState.PRE
    return GameState.LIVE


def _parse_score(value):
    if value is None or value == "":
        return None
    # Summary endpoint sends {"value": 24.0, "displayValue": "24"} on some feeds
    if isinstance(value, dict):
        value = value.get("value", value.get("displayValue"))
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _participant(event_id, competitor):
    team = competitor.get("team")
    if not team or team.get("id") in (None, ""):
        raise MalformedEventError(event_id, "competitor without team id")

    records = competitor.get("records") or []
    record = records[0].get("summary") if records else None

    return Participant(
        id=str(team["id"]),
        name=team.get("displayName") or team.get("name") or team.get("abbreviation") or "",
        logo=team.get("logo"),
        score=_parse_score(competitor.get("score")),
        record=record,
    )


def _split_sides(event_id, competitors):
    home = [c for c in competitors if c.get("homeAway") == "home"]
    away = [c for c in competitors if c.get("homeAway") == "away"]

    if len(home) != 1 or len(away) != 1:
        raise MalformedEventError(event_id, "cannot resolve home/away competitors")

    return home[0], away[0]


def build_status(state, home, away, status, start_time):
    status_type = status.get("type") or {}
    away_score = away.score if away.score is not None else 0
    home_score = home.score if home.score is not None else 0

    if state == GameState.FINAL:
        return GameStatus(
            state=state, display_text="Final", detail=f"{away_score}–{home_score}"
        )

    if state == GameState.LIVE:
        detail = None
        period = _parse_period(status.get("period"))
        clock = status.get("displayClock")
        if period and clock:
            detail = f"{period_label(period)} {clock}"
        elif status_type.get("shortDetail"):
            detail = status_type["shortDetail"]
        return GameStatus(
            state=state, display_text=f"{away_score}–{home_score}", detail=detail
        )

    return GameStatus(state=state, display_text=format_kickoff(start_time))


def normalize_event(event):
    """Convert one raw scoreboard event into a NormalizedGame

    Raises MalformedEventError when the event cannot be mapped; callers skip
    the event and carry on with the rest of the batch.
    """
    event_id = str(event.get("id", "unknown"))

    competitions = event.get("competitions") or []
    if not competitions:
        raise MalformedEventError(event_id, "missing competitions")

    competitors = competitions[0].get("competitors") or []
    if not competitors:
        raise MalformedEventError(event_id, "missing competitors")

    home_raw, away_raw = _split_sides(event_id, competitors)
    home = _participant(event_id, home_raw)
    away = _participant(event_id, away_raw)

    if home.id == away.id:
        raise MalformedEventError(event_id, "home and away are the same team")

    raw_date = event.get("date")
    if raw_date is not None and not isinstance(raw_date, str):
        raise MalformedEventError(event_id, f"bad date {raw_date!r}")
    try:
        start_time = parse_iso_datetime(raw_date)
    except ValueError:
        raise MalformedEventError(event_id, f"bad date {raw_date!r}")
    if start_time is None:
        raise MalformedEventError(event_id, "missing date")

    # Status lives on the event for scoreboard and on the competition for summary
    status = event.get("status") or competitions[0].get("status") or {}
    state = derive_state(status.get("type") or {})

    return NormalizedGame(
        event_id=event_id,
        start_time=start_time,
        home=home,
        away=away,
        status=build_status(state, home, away, status, start_time),
        raw_date=raw_date,
    )


def normalize_events(events):
    """Normalize a batch, skipping malformed events

    Returns (games, skipped) where skipped is a list of (event_id, reason).
    """
    games = []
    skipped = []

    for event in events:
        try:
            games.append(normalize_event(event))
        except MalformedEventError as e:
            logger.warning(f"Skipping event: {e}")
            skipped.append((e.event_id, e.reason))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            event_id = str(event.get("id", "unknown")) if isinstance(event, dict) else "unknown"
            logger.warning(f"Skipping event {event_id}: unexpected shape ({e!r})")
            skipped.append((event_id, f"unexpected shape: {e}"))

    return games, skipped
