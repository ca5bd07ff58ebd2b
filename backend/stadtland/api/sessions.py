from flask import Blueprint, jsonify, request, current_app
from stadtland import socketio
from stadtland.services.game.errors import GameError, NotFound
from stadtland.services.game.state_machine import normalize_code


sessions = Blueprint('sessions', __name__)


def _machine():
    return current_app.extensions['session_machine']


def _room(code: str) -> str:
    return f"session:{code}"


def _broadcast(code: str) -> None:
    """Push the fresh live view (or session_ended) to everyone in the room."""
    try:
        payload = _machine().view(code)
    except NotFound:
        socketio.emit('session_ended', {'session_code': code}, to=_room(code), namespace='/ws')
        return
    except GameError as exc:
        current_app.logger.warning(f"[broadcast-skip] session={code} kind={exc.kind}")
        return
    payload['session_code'] = code
    socketio.emit('state_update', payload, to=_room(code), namespace='/ws')


def _missing(data, *fields):
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        return jsonify({'error': f"Missing required field(s): {', '.join(missing)}"}), 400
    return None


@sessions.errorhandler(GameError)
def handle_game_error(exc: GameError):
    return jsonify(exc.to_dict()), exc.status_code


@sessions.route('/create', methods=['POST'])
def create_session():
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'name')
    if error:
        return error
    code = _machine().create_session(data['name'])
    view = _machine().view(code)
    return jsonify({
        'message': 'New session created!',
        'session_code': code,
        **view,
    }), 201


@sessions.route('/join', methods=['POST'])
def join_session():
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'session_code', 'name')
    if error:
        return error
    code = normalize_code(data['session_code'])
    _machine().join_session(code, data['name'])
    _broadcast(code)
    return jsonify({'session_code': code, **_machine().view(code)}), 201


@sessions.route('/<string:session_code>/leave', methods=['POST'])
def leave_session(session_code):
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'name')
    if error:
        return error
    code = normalize_code(session_code)
    deleted = _machine().leave_session(code, data['name'])
    _broadcast(code)
    return jsonify({'session_code': code, 'deleted': deleted})


@sessions.route('/<string:session_code>/kick', methods=['POST'])
def kick_player(session_code):
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'name', 'requester')
    if error:
        return error
    code = normalize_code(session_code)
    deleted = _machine().kick_player(code, data['name'], data['requester'])
    _broadcast(code)
    return jsonify({'session_code': code, 'deleted': deleted})


@sessions.route('/<string:session_code>/categories', methods=['PUT'])
def update_categories(session_code):
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'requester')
    if error:
        return error
    if not isinstance(data.get('categories'), list):
        return jsonify({'error': 'categories must be a list'}), 400
    code = normalize_code(session_code)
    _machine().update_categories(code, data['categories'], data['requester'])
    _broadcast(code)
    return jsonify(_machine().view(code))


@sessions.route('/<string:session_code>/start', methods=['POST'])
def start_round(session_code):
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'requester')
    if error:
        return error
    letter = data.get('letter')
    if isinstance(letter, str) and not letter.strip():
        letter = None
    code = normalize_code(session_code)
    _machine().start_round(code, data['requester'], letter)
    _broadcast(code)
    return jsonify(_machine().view(code))


@sessions.route('/<string:session_code>/pause', methods=['POST'])
def pause_round(session_code):
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'name')
    if error:
        return error
    code = normalize_code(session_code)
    _machine().pause_round(code, data['name'])
    _broadcast(code)
    return jsonify(_machine().view(code))


@sessions.route('/<string:session_code>/resume', methods=['POST'])
def resume_round(session_code):
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'requester')
    if error:
        return error
    code = normalize_code(session_code)
    _machine().resume_round(code, data['requester'])
    _broadcast(code)
    return jsonify(_machine().view(code))


@sessions.route('/<string:session_code>/answers', methods=['POST'])
def submit_answers(session_code):
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'name')
    if error:
        return error
    if not isinstance(data.get('answers'), dict):
        return jsonify({'error': 'answers must be an object keyed by category'}), 400
    code = normalize_code(session_code)
    _machine().submit_answers(code, data['name'], data['answers'])
    _broadcast(code)
    return jsonify({'message': 'Answers submitted'})


@sessions.route('/<string:session_code>/end', methods=['POST'])
def end_round(session_code):
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'requester')
    if error:
        return error
    code = normalize_code(session_code)
    record = _machine().end_round(code, data['requester'])
    _broadcast(code)
    payload = _machine().view(code)
    payload['round'] = record.to_dict()
    return jsonify(payload)


@sessions.route('/<string:session_code>/lobby', methods=['POST'])
def return_to_lobby(session_code):
    data = request.get_json(silent=True) or {}
    error = _missing(data, 'requester')
    if error:
        return error
    code = normalize_code(session_code)
    _machine().return_to_lobby(code, data['requester'])
    _broadcast(code)
    return jsonify(_machine().view(code))


@sessions.route('/<string:session_code>/state', methods=['GET'])
def get_state(session_code):
    return jsonify(_machine().view(normalize_code(session_code)))


@sessions.route('/<string:session_code>/scores', methods=['GET'])
def get_scores(session_code):
    standings = _machine().standings(normalize_code(session_code))
    return jsonify([s.to_dict() for s in standings])


@sessions.route('/<string:session_code>/scores/<string:name>', methods=['GET'])
def get_player_score(session_code, name):
    code = normalize_code(session_code)
    return jsonify({'player': name, 'total': _machine().player_total(code, name)})
