from datetime import datetime, timezone

from gridiron import db


class LegacyPick(db.Model):
    """Flat users/{user}/picks/{game} layout kept only as a migration source"""

    __tablename__ = "legacy_picks"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    game_id = db.Column(db.String(50), nullable=False)
    selected_team = db.Column(db.String(20), nullable=False)
    result = db.Column(db.String(10))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("user_id", "game_id", name="unique_legacy_user_game"),
    )

    def __repr__(self):
        return f"<LegacyPick user_id={self.user_id} game_id={self.game_id}>"
