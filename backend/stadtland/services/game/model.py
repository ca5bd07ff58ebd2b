"""Session document model and validated value types."""

import string
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .errors import InvalidCategories, InvalidName


ALPHABET = string.ascii_uppercase
CODE_ALPHABET = string.ascii_uppercase
CODE_LENGTH = 6
MAX_PLAYERS = 6
MAX_CATEGORIES = 10
MAX_NAME_LENGTH = 15
DEFAULT_CATEGORIES = ['Stadt', 'Land', 'Fluss', 'Name', 'Tier', 'Beruf']

# Field-path reserved characters; names and labels become path segments.
RESERVED_CHARS = set('.$#[]/')

WAITING = 'waiting'
PLAYING = 'playing'
PAUSED = 'paused'
ROUND_END = 'roundEnd'
STATUSES = (WAITING, PLAYING, PAUSED, ROUND_END)

# Non-category key stamped on every answer slot.
SUBMITTED_AT = 'submittedAt'


class ParticipantName(str):
    """Display name, trimmed; unique within a session, case-sensitive."""

    max_length = MAX_NAME_LENGTH

    def __new__(cls, value, max_length: Optional[int] = None):
        if not isinstance(value, str):
            raise InvalidName('Player name must be text', name=value)
        trimmed = value.strip()
        limit = max_length or cls.max_length
        if not trimmed:
            raise InvalidName('Player name is required', name=value)
        if len(trimmed) > limit:
            raise InvalidName(f'Player name is limited to {limit} characters', name=value)
        if RESERVED_CHARS.intersection(trimmed):
            raise InvalidName('Player name contains a reserved character', name=value)
        return super().__new__(cls, trimmed)


class CategoryName(str):
    """Category label, trimmed and non-empty."""

    def __new__(cls, value):
        if not isinstance(value, str) or not value.strip():
            raise InvalidCategories('Category names must be non-empty', category=value)
        trimmed = value.strip()
        if RESERVED_CHARS.intersection(trimmed) or trimmed == SUBMITTED_AT:
            raise InvalidCategories('Category name contains a reserved character', category=value)
        return super().__new__(cls, trimmed)


def validate_categories(values: Iterable[Any], max_categories: int = MAX_CATEGORIES) -> List[str]:
    """Build an ordered list of distinct CategoryName values."""
    if isinstance(values, str) or values is None:
        raise InvalidCategories('Categories must be a list', field='categories')
    labels = [CategoryName(v) for v in values]
    if len(labels) > max_categories:
        raise InvalidCategories(f'At most {max_categories} categories are allowed',
                                field='categories', count=len(labels))
    seen = set()
    for label in labels:
        if label in seen:
            raise InvalidCategories('Categories must be distinct', field='categories', category=str(label))
        seen.add(label)
    return [str(label) for label in labels]


@dataclass
class Player:
    is_host: bool = False
    joined_at: Optional[float] = None

    def to_dict(self):
        return {'isHost': self.is_host, 'joinedAt': self.joined_at}

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(is_host=bool(data.get('isHost')), joined_at=data.get('joinedAt'))


@dataclass
class RoundRecord:
    round_number: int
    letter: Optional[str]
    categories: List[str]
    answers: Dict[str, Dict[str, Any]]
    ended_at: Optional[float] = None

    def to_dict(self):
        return {
            'roundNumber': self.round_number,
            'letter': self.letter,
            'categories': list(self.categories),
            'answers': self.answers,
            'endedAt': self.ended_at,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            round_number=int(data.get('roundNumber') or 0),
            letter=data.get('letter'),
            categories=list(data.get('categories') or []),
            answers=dict(data.get('answers') or {}),
            ended_at=data.get('endedAt'),
        )


@dataclass
class Session:
    """Typed view over one session document.

    The store holds plain documents; the state machine reads them through this
    class and writes field patches back, never whole Session objects (except
    at creation).
    """

    code: str
    host: str
    players: Dict[str, Player] = field(default_factory=dict)
    categories: List[str] = field(default_factory=list)
    status: str = WAITING
    current_letter: Optional[str] = None
    current_round: int = 0
    used_letters: List[str] = field(default_factory=list)
    answers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    round_history: List[RoundRecord] = field(default_factory=list)
    created_at: Optional[float] = None
    round_start_time: Optional[float] = None
    paused_by: Optional[str] = None
    paused_at: Optional[float] = None
    version: int = 0

    def is_host(self, name) -> bool:
        return name is not None and name == self.host and name in self.players

    def is_member(self, name) -> bool:
        return name in self.players

    def available_letters(self) -> List[str]:
        used = set(self.used_letters)
        return [letter for letter in ALPHABET if letter not in used]

    @property
    def round_in_progress(self) -> bool:
        return self.status in (PLAYING, PAUSED)

    def to_document(self) -> Dict[str, Any]:
        doc = {
            'code': self.code,
            'host': self.host,
            'players': {name: p.to_dict() for name, p in self.players.items()},
            'categories': list(self.categories),
            'status': self.status,
            'currentRound': self.current_round,
            'usedLetters': list(self.used_letters),
            'roundHistory': [r.to_dict() for r in self.round_history],
            'createdAt': self.created_at,
            'version': self.version,
        }
        optional = {
            'currentLetter': self.current_letter,
            'answers': self.answers or None,
            'roundStartTime': self.round_start_time,
            'pausedBy': self.paused_by,
            'pausedAt': self.paused_at,
        }
        doc.update({k: v for k, v in optional.items() if v is not None})
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> 'Session':
        return cls(
            code=doc['code'],
            host=doc.get('host'),
            players={name: Player.from_dict(p) for name, p in (doc.get('players') or {}).items()},
            categories=list(doc.get('categories') or []),
            status=doc.get('status') or WAITING,
            current_letter=doc.get('currentLetter'),
            current_round=int(doc.get('currentRound') or 0),
            used_letters=list(doc.get('usedLetters') or []),
            answers=dict(doc.get('answers') or {}),
            round_history=[RoundRecord.from_dict(r) for r in (doc.get('roundHistory') or [])],
            created_at=doc.get('createdAt'),
            round_start_time=doc.get('roundStartTime'),
            paused_by=doc.get('pausedBy'),
            paused_at=doc.get('pausedAt'),
            version=int(doc.get('version') or 0),
        )


def category_entries(answer_slot: Optional[Dict[str, Any]]):
    """Yield (category, entry) pairs from one player's slot, skipping metadata."""
    for key, entry in (answer_slot or {}).items():
        if key == SUBMITTED_AT or not isinstance(entry, dict):
            continue
        yield key, entry


def answer_text(answer_slot: Optional[Dict[str, Any]], category: str) -> str:
    entry = (answer_slot or {}).get(category)
    if isinstance(entry, dict):
        value = entry.get('value')
    else:
        value = entry
    return value if isinstance(value, str) else ''
