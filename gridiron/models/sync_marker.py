from datetime import datetime, timedelta, timezone

from gridiron import db


class SyncMarker(db.Model):
    """Timestamp record used to debounce repeated refresh runs"""

    __tablename__ = "sync_markers"

    name = db.Column(db.String(50), primary_key=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)
    week = db.Column(db.Integer)
    year = db.Column(db.Integer)

    LAST_GAME_UPDATE = "last_game_update"

    def __repr__(self):
        return f"<SyncMarker {self.name} {self.timestamp}>"

    @staticmethod
    def get(name):
        return db.session.get(SyncMarker, name)

    @staticmethod
    def is_recent(name, interval_seconds, now=None):
        """True when the marker was written less than interval_seconds ago"""
        marker = SyncMarker.get(name)
        if not marker or not marker.timestamp:
            return False

        now = now or datetime.now(timezone.utc)
        timestamp = marker.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return now - timestamp < timedelta(seconds=interval_seconds)

    @staticmethod
    def touch(name, week=None, year=None, now=None):
        """Write the marker; caller commits"""
        marker = SyncMarker.get(name)
        if not marker:
            marker = SyncMarker(name=name)
            db.session.add(marker)

        marker.timestamp = now or datetime.now(timezone.utc)
        marker.week = week
        marker.year = year
        return marker

    def to_dict(self):
        return {
            "name": self.name,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "week": self.week,
            "year": self.year,
        }
