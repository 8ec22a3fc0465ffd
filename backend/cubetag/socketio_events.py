import functools

from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit

from cubetag import socketio, WS_NAMESPACE
from cubetag.errors import ClientProtocolError
from cubetag.services.game.movement import parse_position
from cubetag.services.game.sessions import GUEST, Registered


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _authority():
    return current_app.extensions['cubetag']


def _account_ref():
    if current_user and current_user.is_authenticated:
        return Registered(current_user.username)
    return GUEST


def _field(data, key):
    if not isinstance(data, dict) or key not in data:
        raise ClientProtocolError(f'{key} is required')
    return data[key]


def _drop_protocol_errors(handler):
    """Late or malformed messages are dropped, never answered."""
    @functools.wraps(handler)
    def wrapper(*args):
        try:
            return handler(*args)
        except ClientProtocolError as exc:
            current_app.logger.debug(f"[protocol] {handler.__name__} from {_get_sid()}: {exc}")
    return wrapper


def handle_connect():
    emit('connected', {'message': f'Connected to {WS_NAMESPACE}'})
    _authority().connect(_get_sid())


def handle_disconnect(*args):
    _authority().disconnect(_get_sid())


def handle_join_game(data=None):
    _authority().join(_get_sid(), _account_ref())


def handle_leave_game(data=None):
    _authority().leave(_get_sid())


@_drop_protocol_errors
def handle_move(data):
    x, y = parse_position(data)
    _authority().move(_get_sid(), x, y)


@_drop_protocol_errors
def handle_tag_player(data):
    target_id = _field(data, 'target_id')
    if not isinstance(target_id, str):
        raise ClientProtocolError('target_id must be a string')
    _authority().tag(_get_sid(), target_id)


@_drop_protocol_errors
def handle_change_background(data):
    _authority().change_background(_get_sid(), _field(data, 'image'))


@_drop_protocol_errors
def handle_change_cosmetic(data):
    _authority().change_cosmetic(_get_sid(), _field(data, 'color'))


@_drop_protocol_errors
def handle_redeem_code(data):
    _authority().redeem_code(_get_sid(), _field(data, 'code'))


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=WS_NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=WS_NAMESPACE)
    socketio.on_event('join_game', handle_join_game, namespace=WS_NAMESPACE)
    socketio.on_event('leave_game', handle_leave_game, namespace=WS_NAMESPACE)
    socketio.on_event('move', handle_move, namespace=WS_NAMESPACE)
    socketio.on_event('tag_player', handle_tag_player, namespace=WS_NAMESPACE)
    socketio.on_event('change_background', handle_change_background, namespace=WS_NAMESPACE)
    socketio.on_event('change_cosmetic', handle_change_cosmetic, namespace=WS_NAMESPACE)
    socketio.on_event('redeem_code', handle_redeem_code, namespace=WS_NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=WS_NAMESPACE)
