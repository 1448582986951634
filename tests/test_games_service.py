from datetime import timedelta

import pytest

from ysba_ticker.models import GameRecord, RawGameRow
from ysba_ticker.services.games_service import (
    GamesService,
    is_played,
    is_upcoming,
    parse_score,
    process_schedule,
    split_team_text,
)
from tests.helpers import local

PHOENIX = "(511113) Richmond Hill Phoenix 9U DS"
HAWKS = "(511112) Newmarket Hawks 9U DS"


def game(home="511112", away="511113", date=None, completed=False, home_score=None, away_score=None, text=""):
    return GameRecord(
        date=date,
        date_text=text,
        time_text="",
        home_team=f"Team {home}",
        home_code=home,
        away_team=f"Team {away}",
        away_code=away,
        home_score=home_score,
        away_score=away_score,
        completed=completed,
        venue="",
        score_text="",
    )


@pytest.fixture
def service():
    return GamesService(tz_name="America/Toronto")


class TestParsing:
    def test_split_team_text(self):
        assert split_team_text(PHOENIX) == ("511113", "Richmond Hill Phoenix 9U DS")
        assert split_team_text("Richmond Hill") == (None, "Richmond Hill")
        assert split_team_text("") == (None, "")

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("9-18", (9, 18, True)),
            (" 3 - 3 ", (3, 3, True)),
            ("-", (None, None, False)),
            ("", (None, None, False)),
            ("Rained Out", (None, None, False)),
        ],
    )
    def test_parse_score(self, text, expected):
        assert parse_score(text) == expected


class TestNormalizeGame:
    def test_completed_game_scores_are_visitor_first(self, service):
        raw = RawGameRow(
            date_text="Sat, May 3",
            time_text="7:00 PM",
            division="9U",
            tier="Select",
            away_text=PHOENIX,
            home_text=HAWKS,
            venue="Fairy Lake",
            score_text="9-18",
        )

        g = service.normalize_game(raw, now=local(2025, 5, 1))

        assert (g.away_code, g.home_code) == ("511113", "511112")
        assert g.away_team == "Richmond Hill Phoenix 9U DS"
        assert g.home_team == "Newmarket Hawks 9U DS"
        assert (g.away_score, g.home_score) == (9, 18)
        assert g.completed is True
        assert g.venue == "Fairy Lake"

    def test_current_year_is_injected_and_time_combined(self, service):
        raw = RawGameRow(date_text="Sat, May 3", time_text="7:00 PM", away_text=PHOENIX, home_text=HAWKS)

        g = service.normalize_game(raw, now=local(2025, 5, 1))

        assert g.date == local(2025, 5, 3, 19, 0)
        assert g.date_text == "Sat, May 3"

    def test_unusable_time_keeps_date(self, service):
        raw = RawGameRow(date_text="May 3", time_text="TBA", away_text=PHOENIX, home_text=HAWKS)

        g = service.normalize_game(raw, now=local(2025, 5, 1))

        assert g.date == local(2025, 5, 3)

    def test_explicit_year_is_kept(self, service):
        raw = RawGameRow(date_text="May 3, 2024", away_text=PHOENIX, home_text=HAWKS)

        g = service.normalize_game(raw, now=local(2025, 5, 1))

        assert g.date.year == 2024

    def test_date_far_in_past_rolls_into_next_year(self, service):
        raw = RawGameRow(date_text="Apr 12", away_text=PHOENIX, home_text=HAWKS)

        g = service.normalize_game(raw, now=local(2025, 12, 15))

        assert g.date == local(2026, 4, 12)

    def test_recent_past_date_stays_in_current_year(self, service):
        raw = RawGameRow(date_text="Sat, May 3", away_text=PHOENIX, home_text=HAWKS, score_text="9-18")

        g = service.normalize_game(raw, now=local(2025, 6, 1))

        assert g.date == local(2025, 5, 3)

    def test_unparsable_date_keeps_game(self, service):
        raw = RawGameRow(date_text="TBD", away_text=PHOENIX, home_text=HAWKS, score_text="-")

        g = service.normalize_game(raw, now=local(2025, 5, 1))

        assert g is not None
        assert g.date is None
        assert g.date_text == "TBD"
        assert g.completed is False

    def test_empty_date_keeps_game(self, service):
        raw = RawGameRow.from_cells(["", "", "9U", "Select", PHOENIX, HAWKS, "Fairy Lake", ""])

        g = service.normalize_game(raw, now=local(2025, 5, 1))

        assert g is not None
        assert g.date is None
        assert g.venue == "Fairy Lake"

    def test_missing_code_is_discarded(self, service):
        raw = RawGameRow(date_text="May 3", away_text="Richmond Hill", home_text=HAWKS)

        assert service.normalize_game(raw) is None

    def test_normalize_games_drops_uncoded_rows(self, service):
        rows = [
            RawGameRow(date_text="May 3", away_text=PHOENIX, home_text=HAWKS),
            RawGameRow(date_text="May 4", away_text="Bye", home_text=HAWKS),
        ]

        out = service.normalize_games(rows, now=local(2025, 5, 1))

        assert len(out) == 1


class TestClassification:
    def test_completed_game_with_future_date_is_played(self):
        now = local(2025, 6, 1, 12)
        g = game(date=now + timedelta(days=30), completed=True, home_score=1, away_score=2)

        assert is_played(g, now) is True
        assert is_upcoming(g, now) is False

    def test_game_one_second_ahead_is_upcoming(self):
        now = local(2025, 6, 1, 12)
        g = game(date=now + timedelta(seconds=1))

        assert is_upcoming(g, now) is True
        assert is_played(g, now) is False

    def test_past_uncompleted_game_is_played(self):
        now = local(2025, 6, 1, 12)
        g = game(date=now - timedelta(hours=3))

        assert is_played(g, now) is True

    def test_undated_game_is_neither(self):
        now = local(2025, 6, 1, 12)
        g = game(date=None)

        assert is_played(g, now) is False
        assert is_upcoming(g, now) is False


class TestProcessSchedule:
    def test_both_teams_get_the_game_from_their_side(self, service):
        now = local(2025, 6, 1, 12)
        g = game(home="511112", away="511113", date=local(2025, 5, 3, 19), completed=True, home_score=18, away_score=9)

        schedules = service.process_schedule([g], now=now)

        phoenix = schedules["511113"].all_games[0]
        hawks = schedules["511112"].all_games[0]
        assert (phoenix.is_home, phoenix.team_score, phoenix.opponent_score, phoenix.result) == (False, 9, 18, "L")
        assert (hawks.is_home, hawks.team_score, hawks.opponent_score, hawks.result) == (True, 18, 9, "W")
        assert phoenix.opponent_code == "511112"

    def test_played_and_upcoming_partition_dated_games(self, service):
        now = local(2025, 6, 1, 12)
        games = [
            game(date=local(2025, 6, 10)),
            game(date=local(2025, 5, 10), completed=True, home_score=3, away_score=3),
            game(date=None, text="TBD"),
            game(date=local(2025, 5, 20)),
        ]

        s = service.process_schedule(games, now=now)["511113"]

        assert len(s.all_games) == 4
        assert [x.game.date for x in s.played_games] == [local(2025, 5, 10), local(2025, 5, 20)]
        assert [x.game.date for x in s.upcoming_games] == [local(2025, 6, 10)]
        assert s.played_games[0].result == "T"
        assert s.generated_at == now

    def test_sorted_by_date_with_undated_last_in_input_order(self, service):
        now = local(2025, 6, 1, 12)
        games = [
            game(date=None, text="first undated"),
            game(date=local(2025, 6, 9)),
            game(date=None, text="second undated"),
            game(date=local(2025, 5, 2)),
        ]

        s = service.process_schedule(games, now=now)["511113"]

        assert [x.game.date_text for x in s.all_games[2:]] == ["first undated", "second undated"]
        assert [x.game.date for x in s.all_games[:2]] == [local(2025, 5, 2), local(2025, 6, 9)]

    def test_only_teams_present_get_schedules(self, service):
        schedules = service.process_schedule([game(home="511108", away="511113")], now=local(2025, 6, 1))

        assert set(schedules) == {"511108", "511113"}

    def test_module_level_shortcut(self):
        schedules = process_schedule([game()], now=local(2025, 6, 1))

        assert set(schedules) == {"511112", "511113"}

    def test_empty_schedule(self, service):
        s = service.empty_schedule("999999", now=local(2025, 6, 1))

        assert s.team_code == "999999"
        assert s.all_games == () and s.played_games == () and s.upcoming_games == ()


def test_undated_completed_game_reaches_both_team_schedules(service):
    raw = RawGameRow(date_text="", away_text=PHOENIX, home_text=HAWKS, venue="Field 3", score_text="9-18")
    now = local(2025, 6, 1, 12)

    g = service.normalize_game(raw, now=now)
    schedules = service.process_schedule([g], now=now)

    assert (g.away_score, g.home_score, g.completed) == (9, 18, True)
    [phoenix] = schedules["511113"].played_games
    assert (phoenix.is_home, phoenix.team_score, phoenix.opponent_score) == (False, 9, 18)
    assert schedules["511112"].played_games[0].result == "W"
