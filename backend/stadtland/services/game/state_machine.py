"""Session lifecycle: lobby -> playing <-> paused -> roundEnd -> lobby/playing.

Every command reads the current document, validates state and authority,
and only then issues a single atomic patch to the store. A rejected command
raises a GameError and writes nothing.

Concurrency: there are no cross-patch transactions. Two host commands racing
on the same session both validate against what they read and the last patch
wins; ``version`` is bumped on lifecycle and membership writes but is not
checked. Answer submissions write only the submitter's own slot.
"""

import functools
import logging
import random
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import (
    AlphabetExhausted,
    AlreadyExists,
    DuplicateCodeExhausted,
    GameError,
    InvalidLetter,
    InvalidStateForOperation,
    LetterAlreadyUsed,
    NameTaken,
    NotAMember,
    NotAuthorized,
    NotFound,
    SessionFull,
)
from .leaderboard import aggregate, player_total
from .live import live_view
from .model import (
    ALPHABET,
    CODE_ALPHABET,
    CODE_LENGTH,
    DEFAULT_CATEGORIES,
    MAX_CATEGORIES,
    MAX_NAME_LENGTH,
    MAX_PLAYERS,
    PAUSED,
    PLAYING,
    ROUND_END,
    SUBMITTED_AT,
    WAITING,
    ParticipantName,
    Player,
    RoundRecord,
    Session,
    answer_text,
    validate_categories,
)
from .scoring import score

logger = logging.getLogger(__name__)


def normalize_code(code) -> str:
    if not isinstance(code, str) or not code.strip():
        raise NotFound('Session code is required', session_code=code)
    return code.strip().upper()


def _command(action):
    """Log the outcome of a state-machine command; rejections are re-raised."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except GameError as exc:
                if func.__name__ == 'create_session':
                    code = None
                else:
                    code = args[0] if args else kwargs.get('code')
                logger.info(f"[rejected] action={action} session={code} kind={exc.kind} details={exc.details}")
                raise
        return wrapper
    return decorator


class SessionStateMachine:
    def __init__(self, store, default_categories: Optional[Iterable[str]] = None,
                 max_players: int = MAX_PLAYERS, max_categories: int = MAX_CATEGORIES,
                 code_length: int = CODE_LENGTH, code_attempts: int = 50,
                 max_name_length: int = MAX_NAME_LENGTH, rng: Optional[random.Random] = None,
                 clock=time.time):
        self.store = store
        self.max_players = max_players
        self.max_categories = max_categories
        self.code_length = code_length
        self.code_attempts = code_attempts
        self.max_name_length = max_name_length
        self.default_categories = validate_categories(
            DEFAULT_CATEGORIES if default_categories is None else default_categories,
            max_categories,
        )
        self.rng = rng or random.SystemRandom()
        self.clock = clock

    # --- helpers --------------------------------------------------------
    def _load(self, code) -> Session:
        return Session.from_document(self.store.read(normalize_code(code)))

    def _name(self, name) -> str:
        return str(ParticipantName(name, self.max_name_length))

    @staticmethod
    def _key(name):
        return name.strip() if isinstance(name, str) else name

    def _require_host(self, session: Session, requester, action: str) -> None:
        if not session.is_host(self._key(requester)):
            raise NotAuthorized(f'Only the host may {action}', requester=requester, host=session.host)

    def _require_member(self, session: Session, name) -> str:
        key = self._key(name)
        if not isinstance(key, str) or not session.is_member(key):
            raise NotAMember(name=name)
        return key

    @staticmethod
    def _require_status(session: Session, allowed, operation: str) -> None:
        if session.status not in allowed:
            raise InvalidStateForOperation(
                f'{operation} is not allowed while the session is {session.status}',
                operation=operation, status=session.status,
            )

    def _commit(self, session: Session, fields: Dict[str, Any]) -> None:
        fields = dict(fields)
        fields['version'] = session.version + 1
        self.store.patch(session.code, fields)

    def generate_code(self) -> str:
        return ''.join(self.rng.choice(CODE_ALPHABET) for _ in range(self.code_length))

    # --- lobby ----------------------------------------------------------
    @_command('createSession')
    def create_session(self, host_name) -> str:
        """Create a session with ``host_name`` as sole player and host; returns its code."""
        name = self._name(host_name)
        now = self.clock()
        for _attempt in range(self.code_attempts):
            code = self.generate_code()
            if self.store.exists(code):
                logger.info(f"[code-collision] session={code}")
                continue
            session = Session(
                code=code,
                host=name,
                players={name: Player(is_host=True, joined_at=now)},
                categories=list(self.default_categories),
                created_at=now,
            )
            try:
                self.store.write_new(code, session.to_document())
            except AlreadyExists:
                logger.info(f"[code-collision] session={code} lost race")
                continue
            logger.info(f"[create] session={code} host={name}")
            return code
        raise DuplicateCodeExhausted(attempts=self.code_attempts)

    @_command('joinSession')
    def join_session(self, code, name) -> Session:
        session = self._load(code)
        key = self._key(name)
        if isinstance(key, str) and key in session.players:
            raise NameTaken(name=key)
        if len(session.players) >= self.max_players:
            raise SessionFull(max_players=self.max_players, players=len(session.players))
        name = self._name(name)
        self._commit(session, {
            f'players/{name}': Player(is_host=False, joined_at=self.clock()).to_dict(),
        })
        logger.info(f"[join] session={session.code} player={name} players={len(session.players) + 1}")
        return self._load(session.code)

    def _remove_player(self, session: Session, name: str) -> bool:
        remaining = [p for p in session.players if p != name]
        if not remaining:
            self.store.delete_document(session.code)
            logger.info(f"[delete] session={session.code} last player {name} left")
            return True
        fields = {f'players/{name}': None, f'answers/{name}': None}
        if session.host == name or session.host not in remaining:
            new_host = remaining[0]
            fields['host'] = new_host
            fields[f'players/{new_host}/isHost'] = True
            logger.info(f"[host-transfer] session={session.code} from={name} to={new_host}")
        self._commit(session, fields)
        return False

    @_command('leaveSession')
    def leave_session(self, code, name) -> bool:
        """Remove ``name``; returns True when this deleted the session."""
        session = self._load(code)
        name = self._require_member(session, name)
        deleted = self._remove_player(session, name)
        logger.info(f"[leave] session={session.code} player={name}")
        return deleted

    @_command('kickPlayer')
    def kick_player(self, code, target, requester) -> bool:
        session = self._load(code)
        self._require_host(session, requester, 'remove players')
        target = self._require_member(session, target)
        deleted = self._remove_player(session, target)
        logger.info(f"[kick] session={session.code} player={target} by={requester}")
        return deleted

    @_command('updateCategories')
    def update_categories(self, code, categories, requester) -> List[str]:
        session = self._load(code)
        self._require_host(session, requester, 'change categories')
        labels = validate_categories(categories, self.max_categories)
        self._commit(session, {'categories': labels})
        logger.info(f"[categories] session={session.code} count={len(labels)}")
        return labels

    # --- rounds ---------------------------------------------------------
    def _pick_letter(self, session: Session, explicit_letter) -> str:
        if explicit_letter is not None:
            letter = explicit_letter.strip().upper() if isinstance(explicit_letter, str) else ''
            if len(letter) != 1 or letter not in ALPHABET:
                raise InvalidLetter(letter=explicit_letter)
            if letter in session.used_letters:
                raise LetterAlreadyUsed(letter=letter)
            return letter
        available = session.available_letters()
        if not available:
            raise AlphabetExhausted(used_letters=len(session.used_letters))
        return self.rng.choice(available)

    @_command('startRound')
    def start_round(self, code, requester, explicit_letter=None) -> str:
        """Start the next round and return its letter."""
        session = self._load(code)
        self._require_host(session, requester, 'start a round')
        self._require_status(session, (WAITING, ROUND_END), 'startRound')
        letter = self._pick_letter(session, explicit_letter)
        round_number = session.current_round + 1
        self._commit(session, {
            'status': PLAYING,
            'currentLetter': letter,
            'currentRound': round_number,
            'roundStartTime': self.clock(),
            'usedLetters': session.used_letters + [letter],
            'answers': None,
            'pausedBy': None,
            'pausedAt': None,
        })
        logger.info(f"[round-start] session={session.code} round={round_number} letter={letter}")
        return letter

    @_command('pauseRound')
    def pause_round(self, code, requester) -> None:
        session = self._load(code)
        self._require_status(session, (PLAYING,), 'pauseRound')
        name = self._require_member(session, requester)
        self._commit(session, {'status': PAUSED, 'pausedBy': name, 'pausedAt': self.clock()})
        logger.info(f"[pause] session={session.code} round={session.current_round} by={name}")

    @_command('resumeRound')
    def resume_round(self, code, requester) -> None:
        session = self._load(code)
        self._require_host(session, requester, 'resume the round')
        self._require_status(session, (PAUSED,), 'resumeRound')
        self._commit(session, {'status': PLAYING, 'pausedBy': None, 'pausedAt': None})
        logger.info(f"[resume] session={session.code} round={session.current_round}")

    @_command('submitAnswers')
    def submit_answers(self, code, participant, answers_by_category: Mapping[str, Any]) -> Dict[str, Any]:
        """Replace ``participant``'s whole answer slot for the current round.

        Values may be ``{'value': text}`` or plain text; keys that are not
        current categories are dropped. Resubmitting overwrites.
        """
        session = self._load(code)
        self._require_status(session, (PLAYING,), 'submitAnswers')
        name = self._require_member(session, participant)
        answers_by_category = answers_by_category or {}
        slot: Dict[str, Any] = {
            category: {'value': answer_text(answers_by_category, category)}
            for category in session.categories
            if category in answers_by_category
        }
        slot[SUBMITTED_AT] = self.clock()
        self.store.write_field(session.code, f'answers/{name}', slot)
        logger.info(f"[answers] session={session.code} round={session.current_round} player={name}")
        return slot

    @_command('endRound')
    def end_round(self, code, requester) -> RoundRecord:
        """Score the current answers and append them to the round history."""
        session = self._load(code)
        self._require_host(session, requester, 'end the round')
        self._require_status(session, (PLAYING, PAUSED), 'endRound')
        scored = score(session.answers, session.categories)
        for player, slot in session.answers.items():
            if SUBMITTED_AT in (slot or {}):
                scored[player][SUBMITTED_AT] = slot[SUBMITTED_AT]
        record = RoundRecord(
            round_number=session.current_round,
            letter=session.current_letter,
            categories=list(session.categories),
            answers=scored,
            ended_at=self.clock(),
        )
        history = [r.to_dict() for r in session.round_history] + [record.to_dict()]
        self._commit(session, {
            'status': ROUND_END,
            'roundHistory': history,
            'pausedBy': None,
            'pausedAt': None,
        })
        logger.info(f"[round-end] session={session.code} round={record.round_number} answers={len(scored)}")
        return record

    @_command('returnToLobby')
    def return_to_lobby(self, code, requester) -> None:
        session = self._load(code)
        self._require_host(session, requester, 'return to the lobby')
        self._require_status(session, (ROUND_END, PLAYING, PAUSED), 'returnToLobby')
        self._commit(session, {
            'status': WAITING,
            'currentLetter': None,
            'answers': None,
            'roundStartTime': None,
            'pausedBy': None,
            'pausedAt': None,
        })
        logger.info(f"[lobby] session={session.code} after round={session.current_round}")

    # --- queries --------------------------------------------------------
    def get_session(self, code) -> Session:
        return self._load(code)

    def view(self, code) -> Dict[str, Any]:
        return live_view(self._load(code))

    def standings(self, code):
        session = self._load(code)
        current = score(session.answers, session.categories) if session.round_in_progress else None
        return aggregate([r.to_dict() for r in session.round_history], current, list(session.players))

    def player_total(self, code, name) -> int:
        session = self._load(code)
        return player_total([r.to_dict() for r in session.round_history], self._key(name))
