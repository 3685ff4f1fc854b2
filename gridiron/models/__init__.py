from gridiron import db  # noqa: F401 - imported for model imports

from .game import Game, GameState
from .legacy_pick import LegacyPick
from .pick import Pick, PickResult
from .stats import SeasonStats, WeekStats
from .sync_marker import SyncMarker
from .user import User

__all__ = [
    "User",
    "Game",
    "GameState",
    "Pick",
    "PickResult",
    "WeekStats",
    "SeasonStats",
    "SyncMarker",
    "LegacyPick",
]
