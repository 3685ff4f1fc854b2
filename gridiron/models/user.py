import hashlib
import secrets
from datetime import datetime, timezone

from flask_login import UserMixin

from gridiron import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(100))
    avatar_url = db.Column(db.String(500))

    # SHA-256 of the bearer token; the token itself is shown once on creation
    api_token_hash = db.Column(db.String(64), unique=True, index=True)

    is_active = db.Column(db.Boolean, default=True)
    is_admin = db.Column(db.Boolean, default=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    picks = db.relationship(
        "Pick", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    week_stats = db.relationship(
        "WeekStats", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    season_stats = db.relationship(
        "SeasonStats", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User {self.username}>"

    @staticmethod
    def generate_avatar_url(seed=None):
        """Generate an avatar URL using DiceBear API"""
        if seed is None:
            seed = secrets.token_urlsafe(16)
        return f"https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"

    @staticmethod
    def _hash_token(token):
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def generate_api_token(self):
        """Issue a new bearer token, replacing any previous one"""
        token = secrets.token_urlsafe(32)
        self.api_token_hash = self._hash_token(token)
        return token

    @staticmethod
    def verify_api_token(token):
        """Return the active user owning this bearer token, or None"""
        if not token:
            return None
        user = User.query.filter_by(api_token_hash=User._hash_token(token)).first()
        if user and user.is_active:
            return user
        return None

    @property
    def name(self):
        return self.display_name or self.username

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.name,
            "avatar_url": self.avatar_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
