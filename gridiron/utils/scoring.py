"""
Scoring helpers for pick reconciliation.

Pure functions only: no database or network access happens here.
"""

from gridiron.models.pick import PickResult


def coerce_score(value):
    """Upstream scores arrive as ints, numeric strings or not at all; junk counts as 0"""
    if value is None or value == "":
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def resolve_winner(home_id, home_score, away_id, away_score):
    """Return the winning team id, or None on a tie"""
    home = coerce_score(home_score)
    away = coerce_score(away_score)

    if home > away:
        return home_id
    if away > home:
        return away_id
    return None


def resolve_selection(selected_team, home_id, away_id):
    """Translate a "home"/"away" side token to a team id; ids pass through"""
    if selected_team == "home":
        return home_id
    if selected_team == "away":
        return away_id
    return selected_team


def pick_outcome(selected_team, game):
    """WIN/LOSS for a selection against a final game, None when undecided"""
    winner = game.winning_team_id
    if winner is None:
        return None

    selection = resolve_selection(selected_team, game.home_team_id, game.away_team_id)
    return PickResult.WIN if selection == winner else PickResult.LOSS
