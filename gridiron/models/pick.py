from datetime import datetime, timezone

from gridiron import db


class PickResult:
    WIN = "WIN"
    LOSS = "LOSS"
    PENDING = "PENDING"


# Side tokens stored by the first revision of the picks table
SIDE_TOKENS = ("home", "away")

SELECTION_LEGACY = 1
SELECTION_TEAM_ID = 2


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # users/{user_id}/seasons/{year}/weeks/{week}/picks/{game_id}
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)
    game_id = db.Column(db.String(50), nullable=False)

    selected_team = db.Column(db.String(20), nullable=False)
    selection_version = db.Column(
        db.Integer, nullable=False, default=SELECTION_TEAM_ID
    )

    result = db.Column(db.String(10), nullable=False, default=PickResult.PENDING)
    locked = db.Column(db.Boolean, nullable=False, default=False)
    game_start_time = db.Column(db.DateTime(timezone=True))
    processed_at = db.Column(db.DateTime(timezone=True))

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # No foreign key on game_id: a pick may outlive or precede its game row
    game = db.relationship(
        "Game",
        primaryjoin="foreign(Pick.game_id) == Game.id",
        viewonly=True,
        lazy="joined",
    )

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "year", "week", "game_id", name="unique_user_week_game_pick"
        ),
        db.Index("idx_pick_user_year_week", "user_id", "year", "week"),
        db.Index("idx_pick_game", "game_id"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} game_id={self.game_id} team={self.selected_team} {self.result}>"

    @property
    def is_side_token(self):
        return self.selected_team in SIDE_TOKENS

    @staticmethod
    def get_for_game(game_id):
        """All users' picks referencing one game"""
        return Pick.query.filter_by(game_id=game_id).order_by(Pick.user_id).all()

    @staticmethod
    def get_for_user(user_id, year=None, week=None):
        query = Pick.query.filter_by(user_id=user_id)
        if year is not None:
            query = query.filter_by(year=year)
        if week is not None:
            query = query.filter_by(week=week)
        return query.order_by(Pick.year, Pick.week, Pick.game_start_time).all()

    @staticmethod
    def submit(user_id, game, selected_team, now=None):
        """Create or replace a user's pick for a game

        Returns (pick, message); pick is None when the submission is refused.
        """
        if selected_team in SIDE_TOKENS:
            selected_team = (
                game.home_team_id if selected_team == "home" else game.away_team_id
            )

        if selected_team not in game.team_ids():
            return None, "Selected team is not playing in this game"

        existing = Pick.query.filter_by(
            user_id=user_id, year=game.year, week=game.week, game_id=game.id
        ).first()

        if existing and existing.locked:
            return None, "Pick is locked"

        if not game.is_pickable(now):
            return None, "Game has already started"

        if existing:
            existing.selected_team = selected_team
            existing.selection_version = SELECTION_TEAM_ID
            return existing, "Pick updated successfully"

        pick = Pick(
            user_id=user_id,
            year=game.year,
            week=game.week,
            game_id=game.id,
            selected_team=selected_team,
            selection_version=SELECTION_TEAM_ID,
            result=PickResult.PENDING,
            locked=False,
            game_start_time=game.start_time,
        )
        db.session.add(pick)
        return pick, "Pick created successfully"

    def to_dict(self):
        """Convert pick to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "game_id": self.game_id,
            "year": self.year,
            "week": self.week,
            "selected_team": self.selected_team,
            "result": self.result,
            "locked": self.locked,
            "game_start_time": (
                self.game_start_time.isoformat() if self.game_start_time else None
            ),
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
