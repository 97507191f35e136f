"""Interpretation of match format strings and the scores entered against them.

A format is free text picked from a dropdown ("Best of 3 to 11",
"2 games to 15", "best-of-5"). It is parsed into a :class:`MatchFormat`
which drives how many game rows the score form shows and how the winner
is derived:

* ``fixed`` formats play every game and compare total points
  (a single game simply compares its score);
* ``bestOf`` formats stop as soon as one side has won a majority of games.

Scores are lists of ``[side1_points, side2_points]`` pairs, one per game.
"""

import re
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

FIXED = 'fixed'
BEST_OF = 'bestOf'

FORMAT_OPTIONS = (
    '1 game to 21',
    '2 games to 15',
    '3 games to 11',
    'Best of 3 to 11',
    'Best of 3 to 15',
    'Best of 5 to 11',
    'Best of 5 to 15',
    'Best of 7 to 11',
)

INDIVIDUAL_FORMAT_OPTIONS = ('best-of-1', 'best-of-3', 'best-of-5')

DEFAULT_FORMAT = FORMAT_OPTIONS[0]
DEFAULT_BEST_OF_POINTS = 11
FIXED_POINTS_BY_GAMES = {1: 21, 2: 15}
FIXED_POINTS_FALLBACK = 11

_BEST_OF_RE = re.compile(r'^best of (\d+)')
_GAMES_RE = re.compile(r'(\d+) games?\b')
_POINTS_RE = re.compile(r'\bto (\d+)')

Scores = Sequence[Sequence[int]]


@dataclass(frozen=True)
class MatchFormat:
    kind: str
    games: int
    points_to_win: int
    games_to_win: Optional[int] = None

    @property
    def is_best_of(self) -> bool:
        return self.kind == BEST_OF

    @property
    def label(self) -> str:
        if self.is_best_of:
            return f'Best of {self.games} to {self.points_to_win}'
        noun = 'game' if self.games == 1 else 'games'
        return f'{self.games} {noun} to {self.points_to_win}'


def normalize_format(text: Optional[str]) -> str:
    if not text:
        return ''
    cleaned = re.sub(r'[-_]+', ' ', text.lower())
    return ' '.join(cleaned.split())


def parse_match_format(text: Optional[str], points_per_game: Optional[int] = None) -> MatchFormat:
    """Turn a human readable format into game and win rules."""
    fmt = normalize_format(text)

    best_of = _BEST_OF_RE.match(fmt)
    points = _POINTS_RE.search(fmt)

    if best_of:
        games = max(int(best_of.group(1)), 1)
        points_to_win = int(points.group(1)) if points else DEFAULT_BEST_OF_POINTS
        if points_per_game:
            points_to_win = int(points_per_game)
        return MatchFormat(
            kind=BEST_OF,
            games=games,
            points_to_win=points_to_win,
            games_to_win=games // 2 + 1,
        )

    games_match = _GAMES_RE.search(fmt)
    games = max(int(games_match.group(1)), 1) if games_match else 1
    if points:
        points_to_win = int(points.group(1))
    else:
        points_to_win = FIXED_POINTS_BY_GAMES.get(games, FIXED_POINTS_FALLBACK)
    if points_per_game:
        points_to_win = int(points_per_game)
    return MatchFormat(kind=FIXED, games=games, points_to_win=points_to_win)


def games_won(scores: Scores) -> Tuple[int, int]:
    side1 = side2 = 0
    for first, second in scores:
        if first > second:
            side1 += 1
        elif second > first:
            side2 += 1
    return side1, side2


def determine_winner(fmt: MatchFormat, scores: Scores) -> Optional[int]:
    """Return 1 or 2 for the winning side, or None while undecided."""
    if not scores:
        return None

    if fmt.kind == FIXED:
        if len(scores) < fmt.games:
            return None
        if fmt.games == 1:
            first, second = scores[0]
        else:
            first = sum(score[0] for score in scores)
            second = sum(score[1] for score in scores)
        if first == second:
            return None
        return 1 if first > second else 2

    side1, side2 = games_won(scores)
    if side1 >= fmt.games_to_win:
        return 1
    if side2 >= fmt.games_to_win:
        return 2
    return None


def validate_scores(fmt: MatchFormat, scores: Scores, require_winner: bool = True) -> None:
    """Raise ValueError when the scores cannot stand for this format."""
    if not scores:
        raise ValueError('Enter at least one game score.')

    for index, score in enumerate(scores, start=1):
        if len(score) != 2:
            raise ValueError(f'Game {index} needs a score for both sides.')
        for value in score:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f'Game {index} scores must be whole numbers.')
            if value < 0:
                raise ValueError(f'Game {index} scores cannot be negative.')

    if len(scores) > fmt.games:
        raise ValueError(f'This format allows at most {fmt.games} game(s).')

    if fmt.kind == FIXED:
        if require_winner and len(scores) != fmt.games:
            raise ValueError(f'Enter scores for all {fmt.games} game(s).')
    else:
        side1 = side2 = 0
        for index, (first, second) in enumerate(scores, start=1):
            if side1 >= fmt.games_to_win or side2 >= fmt.games_to_win:
                raise ValueError(f'Game {index} was entered after the match was already decided.')
            if first == second:
                raise ValueError(f'Game {index} cannot end in a tie.')
            if first > second:
                side1 += 1
            else:
                side2 += 1

    if require_winner and determine_winner(fmt, scores) is None:
        raise ValueError('These scores do not decide a winner.')


def needs_another_game(fmt: MatchFormat, scores: Scores) -> bool:
    if fmt.kind != BEST_OF:
        return False
    if len(scores) >= fmt.games:
        return False
    return determine_winner(fmt, scores) is None


def initial_game_count(fmt: MatchFormat) -> int:
    """Rows to show on an empty score form."""
    if fmt.kind == BEST_OF:
        return fmt.games_to_win
    return fmt.games


def score_form_rows(fmt: MatchFormat, scores: Scores) -> int:
    """Rows for a partly played match: the opening games plus one more while undecided."""
    rows = max(initial_game_count(fmt), len(scores))
    if len(scores) >= rows and needs_another_game(fmt, scores):
        rows += 1
    return rows


def scores_from_form(form: Mapping[str, str], max_games: int) -> List[List[int]]:
    """Collect ``game{n}_side1`` / ``game{n}_side2`` fields, skipping blank games."""
    scores: List[List[int]] = []
    for number in range(1, max_games + 1):
        first = (form.get(f'game{number}_side1') or '').strip()
        second = (form.get(f'game{number}_side2') or '').strip()
        if not first and not second:
            continue
        if not first or not second:
            raise ValueError(f'Game {number} needs a score for both sides.')
        try:
            scores.append([int(first), int(second)])
        except ValueError:
            raise ValueError(f'Game {number} scores must be whole numbers.') from None
    return scores


def score_display(scores: Optional[Scores], flip: bool = False) -> str:
    if not scores:
        return '-'
    if flip:
        return ', '.join(f'{second}-{first}' for first, second in scores)
    return ', '.join(f'{first}-{second}' for first, second in scores)
