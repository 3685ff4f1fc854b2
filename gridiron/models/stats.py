from datetime import datetime, timezone

from gridiron import db


class WeekStats(db.Model):
    """users/{user}/seasons/{year}/weeks/{week} aggregate, derived from picks"""

    __tablename__ = "week_stats"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)

    wins = db.Column(db.Integer, nullable=False, default=0)
    losses = db.Column(db.Integer, nullable=False, default=0)
    pending = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False, default=0)

    last_updated = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "year", "week", name="unique_user_year_week"),
    )

    def __repr__(self):
        return f"<WeekStats user_id={self.user_id} {self.year}/{self.week} {self.wins}-{self.losses}-{self.pending}>"

    @property
    def record(self):
        return f"{self.wins}-{self.losses}"

    def to_dict(self):
        return {
            "week": self.week,
            "wins": self.wins,
            "losses": self.losses,
            "pending": self.pending,
            "total": self.total,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


class SeasonStats(db.Model):
    """users/{user}/seasons/{year} aggregate, derived from week stats"""

    __tablename__ = "season_stats"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    year = db.Column(db.Integer, nullable=False)

    total_wins = db.Column(db.Integer, nullable=False, default=0)
    total_losses = db.Column(db.Integer, nullable=False, default=0)
    total_games = db.Column(db.Integer, nullable=False, default=0)
    # {"1": "2-1", "2": "3-0", ...}
    weekly_records = db.Column(db.JSON, nullable=False, default=dict)

    last_updated = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "year", name="unique_user_year"),
    )

    def __repr__(self):
        return f"<SeasonStats user_id={self.user_id} {self.year} {self.total_wins}-{self.total_losses}>"

    @property
    def win_percentage(self):
        if not self.total_games:
            return 0.0
        return self.total_wins / self.total_games * 100

    def to_dict(self):
        return {
            "year": self.year,
            "total_wins": self.total_wins,
            "total_losses": self.total_losses,
            "total_games": self.total_games,
            "win_percentage": round(self.win_percentage, 1),
            "weekly_records": self.weekly_records or {},
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }
