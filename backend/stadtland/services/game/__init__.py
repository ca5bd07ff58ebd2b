"""Game domain services: session lifecycle, scoring and standings.

This package contains pure(ish) domain logic that is driven by HTTP routes
and socket handlers, keeping transport concerns separated from core game
mechanics. Only the state machine touches a session store.
"""

from .errors import GameError
from .leaderboard import aggregate
from .live import live_view
from .scoring import score
from .state_machine import SessionStateMachine

__all__ = ['GameError', 'SessionStateMachine', 'aggregate', 'live_view', 'score']
