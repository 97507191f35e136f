"""Skill-balanced group generation for tournament play."""

import math
import string
from typing import Callable, Iterable, List, Sequence, Tuple, TypeVar

from rating import DEFAULT_ELO

T = TypeVar('T')


def _default_rating(participant) -> float:
    if isinstance(participant, dict):
        value = participant.get('elo')
    else:
        value = getattr(participant, 'elo', None)
    return DEFAULT_ELO if value is None else value


def generate_groups(
    participants: Iterable[T],
    group_size: int = 4,
    rating: Callable[[T], float] = _default_rating,
) -> List[List[T]]:
    """Split participants into ceil(n / group_size) groups using a snake draft.

    Participants are ranked by rating (highest first) and dealt out across the
    groups forwards, then backwards, then forwards again, so every group gets a
    comparable spread of strong and weak players. Group sizes never differ by
    more than one.
    """
    if group_size < 1:
        raise ValueError('Group size must be at least 1')

    ranked = sorted(participants, key=rating, reverse=True)
    if not ranked:
        return []

    group_count = math.ceil(len(ranked) / group_size)
    groups: List[List[T]] = [[] for _ in range(group_count)]

    for position, participant in enumerate(ranked):
        round_index, offset = divmod(position, group_count)
        if round_index % 2 == 0:
            target = offset
        else:
            target = group_count - 1 - offset
        groups[target].append(participant)

    return groups


def group_label(index: int) -> str:
    """Group A, Group B, ... Group Z, Group AA, ..."""
    letters = string.ascii_uppercase
    name = ''
    index += 1
    while index:
        index, remainder = divmod(index - 1, len(letters))
        name = letters[remainder] + name
    return f'Group {name}'


def round_robin_pairs(members: Sequence[T]) -> List[Tuple[T, T]]:
    """Every unordered pairing of the group exactly once."""
    pairs: List[Tuple[T, T]] = []
    for i in range(len(members)):
        for j in range(i + 1, len(members)):
            pairs.append((members[i], members[j]))
    return pairs


def group_rating_spread(
    group: Sequence[T], rating: Callable[[T], float] = _default_rating
) -> Tuple[float, float]:
    if not group:
        return (0, 0)
    values = [rating(member) for member in group]
    return (max(values), min(values))
