from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .scoring import round_total

CURRENT_ROUND_KEY = 'current'


@dataclass
class Standing:
    player: str
    total: int = 0
    rounds: Dict[Union[int, str], int] = field(default_factory=dict)

    def to_dict(self):
        return {
            'player': self.player,
            'total': self.total,
            'rounds': {str(k): v for k, v in self.rounds.items()},
        }


def _round_answers(record: Any) -> Mapping[str, Any]:
    if isinstance(record, Mapping):
        return record.get('answers') or {}
    return getattr(record, 'answers', None) or {}


def aggregate(round_history: Iterable[Any],
              current_scored_answers: Optional[Mapping[str, Any]],
              participant_names: Iterable[str]) -> List[Standing]:
    """Fold closed rounds (and an optional in-progress round) into standings.

    Rounds are keyed by their index in ``round_history``; the in-progress round
    is keyed ``'current'``. Players who only appear in history or in the
    current answers are kept. Sorted by total, descending; ties keep the order
    in which players were first seen (names first, then history, then current).
    """
    standings: Dict[str, Standing] = {}

    def standing_for(player):
        if player not in standings:
            standings[player] = Standing(player=player)
        return standings[player]

    for name in participant_names or []:
        standing_for(name)

    for index, record in enumerate(round_history or []):
        for player, slot in _round_answers(record).items():
            points = round_total(slot)
            entry = standing_for(player)
            entry.rounds[index] = points
            entry.total += points

    if current_scored_answers:
        for player, slot in current_scored_answers.items():
            points = round_total(slot)
            entry = standing_for(player)
            entry.rounds[CURRENT_ROUND_KEY] = points
            entry.total += points

    return sorted(standings.values(), key=lambda s: s.total, reverse=True)


def player_total(round_history: Iterable[Any], player: str) -> int:
    """Cumulative points for one player across closed rounds only."""
    return sum(round_total(_round_answers(record).get(player) or {}) for record in round_history or [])
