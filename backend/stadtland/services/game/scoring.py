from collections import OrderedDict
from typing import Any, Dict, Iterable, Mapping

from .model import answer_text, category_entries

SOLE_CONTRIBUTOR_POINTS = 10
UNIQUE_POINTS = 20
SHARED_POINTS = 5


def score(all_answers: Mapping[str, Mapping[str, Any]], categories: Iterable[str]) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """Score one round of answers.

    Per category, independently:
    - nobody gave a non-blank answer: 0 for everyone
    - the snapshot holds a single player: 10 for a non-blank answer
    - otherwise: 20 for an answer nobody else gave, 5 for each player
      sharing an answer; a blank answer from another player still makes
      the field contested

    Answers are compared after trimming, case-sensitively. Returns
    ``{player: {category: {'value': original_text, 'points': n}}}`` for every
    player in ``all_answers`` and every category. Never raises.
    """
    categories = list(categories or [])
    all_answers = all_answers or {}
    result: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for player, slot in all_answers.items():
        result[player] = {
            category: {'value': answer_text(slot, category), 'points': 0}
            for category in categories
        }

    for category in categories:
        groups: 'OrderedDict[str, list]' = OrderedDict()
        for player, slot in all_answers.items():
            text = answer_text(slot, category).strip()
            if text:
                groups.setdefault(text, []).append(player)

        if not groups:
            continue
        if len(all_answers) == 1:
            only_player = next(iter(groups.values()))[0]
            result[only_player][category]['points'] = SOLE_CONTRIBUTOR_POINTS
            continue
        for members in groups.values():
            points = UNIQUE_POINTS if len(members) == 1 else SHARED_POINTS
            for player in members:
                result[player][category]['points'] = points
    return result


def round_total(scored_slot: Mapping[str, Any]) -> int:
    """Sum the points in one player's scored answers, ignoring metadata fields."""
    total = 0
    for _category, entry in category_entries(scored_slot):
        points = entry.get('points')
        if isinstance(points, (int, float)) and not isinstance(points, bool):
            total += points
    return total
