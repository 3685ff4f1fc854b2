"""
Timezone utility functions for the Gridiron Picks application
"""

from datetime import datetime, timezone

import pytz
from flask import current_app, has_app_context

DEFAULT_TIMEZONE = "America/New_York"


def get_app_timezone():
    """Get the application's configured timezone"""
    timezone_name = DEFAULT_TIMEZONE
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", DEFAULT_TIMEZONE)
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def parse_iso_datetime(value):
    """Parse an upstream ISO-8601 string ("2025-09-07T17:00Z") into aware UTC"""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    # If datetime is naive, assume it's UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(get_app_timezone())


def format_kickoff(dt):
    """Short kickoff string like "Sun, Sep 7, 1:00 PM" in the app timezone"""
    if dt is None:
        return "TBD"

    local = convert_to_app_timezone(dt)
    hour = local.hour % 12 or 12
    return f"{local:%a, %b} {local.day}, {hour}:{local:%M %p}"
