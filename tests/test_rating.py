"""Unit tests for the ELO helpers."""

import pytest

from rating import (
    DEFAULT_ELO,
    calculate_elo_change,
    expected_score,
    k_factor,
    team_average_elo,
)


class TestExpectedScore:
    def test_equal_ratings_are_even(self):
        assert expected_score(1200, 1200) == pytest.approx(0.5)

    def test_four_hundred_points_is_ten_to_one(self):
        assert expected_score(1600, 1200) == pytest.approx(10 / 11)
        assert expected_score(1200, 1600) == pytest.approx(1 / 11)

    def test_symmetric(self):
        assert expected_score(1350, 1210) + expected_score(1210, 1350) == pytest.approx(1.0)


class TestKFactor:
    def test_new_players_are_provisional(self):
        assert k_factor(1200, 0) == 40
        assert k_factor(2500, 29) == 40

    def test_established_players(self):
        assert k_factor(1200, 30) == 32
        assert k_factor(2399, 100) == 32

    def test_top_rated_players(self):
        assert k_factor(2400, 30) == 20


class TestCalculateEloChange:
    def test_win_against_equal_rating(self):
        """Half of K for an even match"""
        assert calculate_elo_change(1200, 1200, True, matches_played=0) == 20
        assert calculate_elo_change(1200, 1200, True, matches_played=50) == 16

    def test_loss_against_equal_rating(self):
        assert calculate_elo_change(1200, 1200, False, matches_played=0) == -20
        assert calculate_elo_change(1200, 1200, False, matches_played=50) == -16

    def test_upset_moves_more_than_expected_win(self):
        upset = calculate_elo_change(1200, 1600, True, matches_played=50)
        expected = calculate_elo_change(1600, 1200, True, matches_played=50)
        assert upset == 29
        assert expected == 3

    def test_missing_ratings_use_default(self):
        assert calculate_elo_change(None, None, True) == calculate_elo_change(DEFAULT_ELO, DEFAULT_ELO, True)

    def test_result_is_an_integer(self):
        assert isinstance(calculate_elo_change(1234, 1301, False, 12), int)


class TestTeamAverage:
    def test_average(self):
        assert team_average_elo([1200, 1400]) == 1300

    def test_missing_rating_counts_as_default(self):
        assert team_average_elo([None, 1400]) == 1300

    def test_empty_team_rejected(self):
        with pytest.raises(ValueError):
            team_average_elo([])
