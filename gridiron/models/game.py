from datetime import datetime, timezone

from gridiron import db


class GameState:
    """Game lifecycle states, ordered PRE -> LIVE -> FINAL"""

    PRE = "PRE"
    LIVE = "LIVE"
    FINAL = "FINAL"

    ORDER = {PRE: 0, LIVE: 1, FINAL: 2}

    # Encodings written by earlier revisions of the games table
    LEGACY = {
        "pre": PRE,
        "scheduled": PRE,
        "in": LIVE,
        "in_progress": LIVE,
        "post": FINAL,
        "completed": FINAL,
        "final": FINAL,
    }

    @classmethod
    def coerce(cls, value):
        """Map a current or legacy state value to PRE/LIVE/FINAL"""
        if value in cls.ORDER:
            return value
        if isinstance(value, str) and value.lower() in cls.LEGACY:
            return cls.LEGACY[value.lower()]
        raise ValueError(f"Unknown game state: {value!r}")

    @classmethod
    def is_regression(cls, old, new):
        """True when moving from old to new would go backwards"""
        if old is None:
            return False
        return cls.ORDER[cls.coerce(new)] < cls.ORDER[cls.coerce(old)]


class Game(db.Model):
    __tablename__ = "games"

    # Upstream event id
    id = db.Column(db.String(50), primary_key=True)

    year = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)

    # Participants
    home_team_id = db.Column(db.String(20), nullable=False)
    home_name = db.Column(db.String(100), nullable=False)
    home_logo = db.Column(db.String(500))
    home_score = db.Column(db.Integer)
    home_record = db.Column(db.String(20))

    away_team_id = db.Column(db.String(20), nullable=False)
    away_name = db.Column(db.String(100), nullable=False)
    away_logo = db.Column(db.String(500))
    away_score = db.Column(db.Integer)
    away_record = db.Column(db.String(20))

    # Status
    state = db.Column(db.String(20), nullable=False, default=GameState.PRE)
    display_text = db.Column(db.String(100), nullable=False, default="")
    detail = db.Column(db.String(100))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    last_updated = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("idx_game_year_week", "year", "week"),
        db.Index("idx_game_start_time", "start_time"),
        db.CheckConstraint("home_team_id != away_team_id", name="different_teams"),
    )

    def __repr__(self):
        return f"<Game {self.id} {self.away_name} @ {self.home_name} Week {self.week}>"

    @property
    def is_final(self):
        return self.state == GameState.FINAL

    @property
    def winning_team_id(self):
        """Winner's team id (None if game not final or tie)"""
        if not self.is_final:
            return None

        from gridiron.utils.scoring import resolve_winner

        return resolve_winner(
            self.home_team_id, self.home_score, self.away_team_id, self.away_score
        )

    @property
    def is_tie(self):
        return self.is_final and self.winning_team_id is None

    def team_ids(self):
        return (self.home_team_id, self.away_team_id)

    def has_started(self, now=None):
        """Check if game has started (by state or by kickoff time)"""
        if self.state != GameState.PRE:
            return True
        if not self.start_time:
            return False

        now = now or datetime.now(timezone.utc)
        start_time = self.start_time

        # SQLite hands back naive datetimes; they are stored as UTC
        if start_time.tzinfo is None:
            start_time = start_time.replace(tzinfo=timezone.utc)

        return now >= start_time

    def is_pickable(self, now=None):
        """Check if game is available for picks (hasn't started yet)"""
        return not self.has_started(now)

    def apply(self, normalized):
        """Copy a normalized game record onto this row"""
        self.start_time = normalized.start_time
        self.home_team_id = normalized.home.id
        self.home_name = normalized.home.name
        self.home_logo = normalized.home.logo
        self.home_score = normalized.home.score
        self.home_record = normalized.home.record
        self.away_team_id = normalized.away.id
        self.away_name = normalized.away.name
        self.away_logo = normalized.away.logo
        self.away_score = normalized.away.score
        self.away_record = normalized.away.record
        self.state = normalized.status.state
        self.display_text = normalized.status.display_text
        self.detail = normalized.status.detail

    @staticmethod
    def get_games_for_week(year, week):
        """Get all games for a league week ordered by kickoff"""
        return (
            Game.query.filter_by(year=year, week=week)
            .order_by(Game.start_time)
            .all()
        )

    def to_dict(self):
        """Convert game to dictionary for API responses"""
        return {
            "id": self.id,
            "year": self.year,
            "week": self.week,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "home": {
                "id": self.home_team_id,
                "name": self.home_name,
                "logo": self.home_logo,
                "score": self.home_score,
                "record": self.home_record,
            },
            "away": {
                "id": self.away_team_id,
                "name": self.away_name,
                "logo": self.away_logo,
                "score": self.away_score,
                "record": self.away_record,
            },
            "status": {
                "state": self.state,
                "display_text": self.display_text,
                "detail": self.detail,
            },
            "winning_team_id": self.winning_team_id,
            "is_tie": self.is_tie,
            "is_pickable": self.is_pickable(),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }
