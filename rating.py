"""ELO rating helpers shared by tournament completion and individual matches."""

import math
from typing import Iterable, Optional

DEFAULT_ELO = 1200
DEFAULT_K = 32
PROVISIONAL_K = 40
MASTER_K = 20
PROVISIONAL_MATCHES = 30
MASTER_RATING = 2400


def expected_score(player_elo: float, opponent_elo: float) -> float:
    """Probability that the player beats the opponent."""
    return 1 / (1 + math.pow(10, (opponent_elo - player_elo) / 400))


def k_factor(player_elo: float, matches_played: int = 0) -> int:
    """New players move fastest, top-rated players slowest."""
    if (matches_played or 0) < PROVISIONAL_MATCHES:
        return PROVISIONAL_K
    if player_elo >= MASTER_RATING:
        return MASTER_K
    return DEFAULT_K


def _round_half_up(value: float) -> int:
    # Same tie-breaking as JavaScript Math.round so stored deltas stay stable.
    return int(math.floor(value + 0.5))


def calculate_elo_change(
    player_elo: Optional[float],
    opponent_elo: Optional[float],
    won: bool,
    matches_played: int = 0,
) -> int:
    """Return the signed rating delta for one player after one match."""
    player_elo = DEFAULT_ELO if player_elo is None else player_elo
    opponent_elo = DEFAULT_ELO if opponent_elo is None else opponent_elo

    k = k_factor(player_elo, matches_played)
    actual = 1 if won else 0
    return _round_half_up(k * (actual - expected_score(player_elo, opponent_elo)))


def team_average_elo(elos: Iterable[Optional[float]]) -> float:
    values = [DEFAULT_ELO if elo is None else elo for elo in elos]
    if not values:
        raise ValueError('A team needs at least one player')
    return sum(values) / len(values)
