"""Typed errors raised by the session core.

Every error is local to the one requested operation: it is raised before any
write is issued (or, for StoreUnavailable, by the store itself) and leaves the
session document unchanged. Each carries a stable ``kind`` plus the offending
field/name so callers can render a specific message.
"""

from typing import Any, Dict, Optional


class GameError(Exception):
    kind = 'GameError'
    status_code = 400
    default_message = 'Game error'

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {'error': self.message, 'kind': self.kind}
        payload.update(self.details)
        return payload

    def __repr__(self):
        return f"{type(self).__name__}({self.message!r}, {self.details!r})"


class NotFound(GameError):
    kind = 'NotFound'
    status_code = 404
    default_message = 'Session not found'


class NotAuthorized(GameError):
    kind = 'NotAuthorized'
    status_code = 403
    default_message = 'Only the host may do that'


class NotAMember(GameError):
    kind = 'NotAMember'
    status_code = 403
    default_message = 'Player is not in this session'


class NameTaken(GameError):
    kind = 'NameTaken'
    status_code = 409
    default_message = 'Player name already taken'


class SessionFull(GameError):
    kind = 'SessionFull'
    status_code = 409
    default_message = 'Session is full'


class InvalidName(GameError):
    kind = 'InvalidName'
    status_code = 400
    default_message = 'Invalid player name'


class InvalidCategories(GameError):
    kind = 'InvalidCategories'
    status_code = 400
    default_message = 'Invalid categories'


class InvalidLetter(GameError):
    kind = 'InvalidLetter'
    status_code = 400
    default_message = 'Letter must be a single character A-Z'


class LetterAlreadyUsed(GameError):
    kind = 'LetterAlreadyUsed'
    status_code = 409
    default_message = 'Letter has already been used'


class AlphabetExhausted(GameError):
    kind = 'AlphabetExhausted'
    status_code = 409
    default_message = 'All letters have been used'


class InvalidStateForOperation(GameError):
    kind = 'InvalidStateForOperation'
    status_code = 409
    default_message = 'Not allowed in the current session state'


class AlreadyExists(GameError):
    kind = 'AlreadyExists'
    status_code = 409
    default_message = 'Session already exists'


class DuplicateCodeExhausted(GameError):
    kind = 'DuplicateCodeExhausted'
    status_code = 503
    default_message = 'Could not allocate a free session code'


class StoreUnavailable(GameError):
    kind = 'StoreUnavailable'
    status_code = 503
    default_message = 'Session store unavailable'
