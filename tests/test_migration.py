from gridiron import db
from gridiron.models import Game, GameState, LegacyPick, Pick, PickResult, WeekStats
from gridiron.models.pick import SELECTION_LEGACY, SELECTION_TEAM_ID
from gridiron.services import migration
from tests.factories import add_game, add_pick


def add_legacy_pick(user, game_id, selected_team, result=None):
    legacy = LegacyPick(user_id=user.id, game_id=game_id, selected_team=selected_team, result=result)
    db.session.add(legacy)
    db.session.commit()
    return legacy


class TestLegacyPicks:
    def test_copies_into_week_layout(self, app, user):
        add_game(week=3, home_score=24, away_score=27, state=GameState.FINAL)
        add_legacy_pick(user, "401547001", "away", result="win")

        report = migration.migrate_legacy_picks()

        assert report.migrated == 1
        pick = Pick.query.one()
        assert (pick.year, pick.week, pick.game_id) == (2025, 3, "401547001")
        assert pick.selection_version == SELECTION_LEGACY
        assert pick.result == PickResult.WIN
        assert pick.locked is True

    def test_pick_on_finished_game_is_settled(self, app, user):
        # KC (id 4) at home beat BUF 27-24; the legacy pick never got a result
        add_game(home_id="4", away_id="13", home_score=27, away_score=24, state=GameState.FINAL)
        add_legacy_pick(user, "401547001", "home")

        migration.run_all()

        pick = Pick.query.one()
        assert pick.result == PickResult.WIN
        assert pick.locked is True
        assert pick.processed_at is not None
        week = WeekStats.query.filter_by(user_id=user.id).one()
        assert (week.wins, week.losses, week.pending) == (1, 0, 0)

    def test_pick_on_tied_game_stays_pending(self, app, user):
        add_game(home_score=17, away_score=17, state=GameState.FINAL)
        add_legacy_pick(user, "401547001", "13")

        migration.migrate_legacy_picks()

        assert Pick.query.one().result == PickResult.PENDING

    def test_missing_game_is_skipped_and_counted(self, app, user):
        add_legacy_pick(user, "gone", "13")

        report = migration.migrate_legacy_picks()

        assert report.skipped_missing_game == 1
        assert Pick.query.count() == 0

    def test_running_twice_does_not_duplicate(self, app, user):
        add_game()
        add_legacy_pick(user, "401547001", "13")

        migration.migrate_legacy_picks()
        second = migration.migrate_legacy_picks()

        assert second.migrated == 0
        assert second.already_present == 1
        assert Pick.query.count() == 1


class TestSelections:
    def test_side_tokens_become_team_ids(self, app, user, other_user):
        game = add_game()
        home = add_pick(user, game, "home", selection_version=SELECTION_LEGACY)
        away = add_pick(other_user, game, "away", selection_version=SELECTION_LEGACY)

        report = migration.normalize_selections()

        assert report.selections_normalized == 2
        assert db.session.get(Pick, home.id).selected_team == "13"
        assert db.session.get(Pick, away.id).selected_team == "4"
        assert db.session.get(Pick, away.id).selection_version == SELECTION_TEAM_ID

    def test_team_ids_are_only_re_tagged(self, app, user):
        pick = add_pick(user, add_game(), "4", selection_version=SELECTION_LEGACY)

        report = migration.normalize_selections()

        assert report.selections_normalized == 0
        pick = db.session.get(Pick, pick.id)
        assert pick.selected_team == "4"
        assert pick.selection_version == SELECTION_TEAM_ID

    def test_idempotent(self, app, user):
        add_pick(user, add_game(), "home", selection_version=SELECTION_LEGACY)

        migration.normalize_selections()
        second = migration.normalize_selections()

        assert second.selections_normalized == 0
        assert Pick.query.one().selected_team == "13"


def test_legacy_game_states_are_rewritten(app):
    game = add_game()
    game.state = "in_progress"
    db.session.commit()

    report = migration.normalize_game_states()

    assert report.game_states_normalized == 1
    assert db.session.get(Game, "401547001").state == GameState.LIVE


def test_run_all_rebuilds_stats(app, user):
    add_game(home_score=24, away_score=27, state=GameState.FINAL)
    add_legacy_pick(user, "401547001", "away", result="WIN")

    report = migration.run_all()

    assert report.to_dict()["migrated"] == 1
    assert report.to_dict()["selections_normalized"] == 1
    assert WeekStats.query.filter_by(user_id=user.id).one().wins == 1
