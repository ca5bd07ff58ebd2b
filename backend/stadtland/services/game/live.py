from typing import Any, Dict, Optional

from .leaderboard import aggregate
from .model import Session
from .scoring import score


def live_view(session: Optional[Session]) -> Dict[str, Any]:
    """Read-only view pushed to clients on every change.

    The in-progress round only counts towards standings while it is still
    in progress; once ended it is part of ``roundHistory``.
    """
    if session is None:
        return {'session': None, 'scoredAnswers': {}, 'standings': [], 'submissions': None}
    scored = score(session.answers, session.categories)
    current = scored if session.round_in_progress else None
    standings = aggregate([r.to_dict() for r in session.round_history], current, list(session.players))
    submitted = [name for name in session.players if name in session.answers]
    return {
        'session': session.to_document(),
        'scoredAnswers': scored,
        'standings': [s.to_dict() for s in standings],
        'submissions': {
            'submitted': len(submitted),
            'players': len(session.players),
            'names': submitted,
        },
    }
