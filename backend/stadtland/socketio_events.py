from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from typing import Dict, Any

from stadtland.services.game.errors import GameError, NotFound
from stadtland.services.game.live import live_view
from stadtland.services.game.state_machine import normalize_code


_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _current_view(code: str) -> Dict[str, Any]:
    machine = current_app.extensions['session_machine']
    try:
        payload = machine.view(code)
    except NotFound:
        payload = live_view(None)
    payload['session_code'] = code
    return payload


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*_args):
    # Dropping a socket never removes the participant; only leave/kick do.
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if ctx:
        current_app.logger.info(f"[ws-disconnect] session={ctx.get('session_code')} player={ctx.get('name')}")


def handle_join_session(data):
    session_code = (data or {}).get('session_code')
    if not isinstance(session_code, str) or not session_code.strip():
        emit('error', {'message': 'session_code is required'})
        return
    code = normalize_code(session_code)
    room = f"session:{code}"
    join_room(room)
    _sid_to_ctx[_get_sid()] = {'session_code': code, 'name': (data or {}).get('name')}
    emit('joined', {'room': room})
    # Subscribers always get the current value first
    try:
        emit('state_update', _current_view(code))
    except GameError as exc:
        emit('error', exc.to_dict())


def handle_leave_session(data):
    session_code = (data or {}).get('session_code')
    if not isinstance(session_code, str) or not session_code.strip():
        emit('error', {'message': 'session_code is required'})
        return
    room = f"session:{normalize_code(session_code)}"
    leave_room(room)
    _sid_to_ctx.pop(_get_sid(), None)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from stadtland import socketio

    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_session', handle_join_session, namespace=namespace)
        socketio.on_event('leave_session', handle_leave_session, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
