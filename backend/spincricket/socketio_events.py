from flask import current_app, request
from flask_socketio import emit, join_room, leave_room
from typing import Dict, Any
from spincricket import engine, rooms, socketio
from spincricket.exceptions import AuthorizationError, CapacityError, GameError
from spincricket.models import FINISHED, MAX_PLAYERS, SETTING_FIELD, WAITING


_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _track(room_id: str, player_id: str) -> None:
    previous = _sid_to_ctx.get(_get_sid())
    if previous and previous['room_id'] != room_id:
        leave_room(previous['room_id'])
    join_room(room_id)
    _sid_to_ctx[_get_sid()] = {'room_id': room_id, 'player_id': player_id}


def _reject(exc: GameError) -> None:
    """Report a failed action to the socket that sent it, and nobody else."""
    current_app.logger.info(f"[rejected] sid={_get_sid()} {type(exc).__name__}: {exc}")
    emit('action_rejected', {'error': type(exc).__name__, 'message': str(exc)})


def _require(data, *keys):
    data = data if isinstance(data, dict) else {}
    missing = [k for k in keys if data.get(k) in (None, '')]
    if missing:
        emit('error', {'message': f"{', '.join(missing)} required"})
        return None
    return data


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # The match is left alone so the player can rejoin and pick it up again
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    if ctx in _sid_to_ctx.values():
        # Already back on another socket
        return
    rooms.set_connected(ctx['player_id'], False)
    current_app.logger.info(f"[disconnect] room={ctx['room_id']} player={ctx['player_id']}")
    if rooms.close_if_abandoned(ctx['room_id']):
        current_app.logger.info(f"[room-abandoned] room={ctx['room_id']}")
        return
    emit('player_left', {'player_id': ctx['player_id'], 'reason': 'disconnected'}, to=ctx['room_id'])


def handle_create_room(data):
    data = _require(data, 'player_id')
    if data is None:
        return
    player_id = data['player_id']
    try:
        room = rooms.create_room(player_id)
    except GameError as exc:
        _reject(exc)
        return
    try:
        engine.initialize(player_id, room.id)
    except GameError as exc:
        rooms.delete_room(room.id)
        _reject(exc)
        return
    _track(room.id, player_id)
    current_app.logger.info(f"[room-created] room={room.id} player={player_id}")
    emit('room_created', {'room_id': room.id})


def handle_join_room(data):
    data = _require(data, 'room_id', 'player_id')
    if data is None:
        return
    room_id, player_id = data['room_id'], data['player_id']
    room = rooms.get_room(room_id)
    if not room:
        emit('room_not_found', {'room_id': room_id})
        return

    match = engine.query(room_id)
    existing = room.find_player(player_id)
    try:
        if existing or (match and player_id in match.players):
            # Rejoin: hand back the latest snapshot, nothing else changes
            if not existing:
                existing = rooms.add_player(player_id, room_id)
            rooms.set_connected(player_id, True)
            _track(room_id, player_id)
            current_app.logger.info(f"[rejoin] room={room_id} player={player_id}")
            emit('player_joined', {'match': match.to_dict() if match else None, 'player': existing.to_dict()})
            return

        if match and len(match.players) >= MAX_PLAYERS:
            raise CapacityError(f"Room {room_id} is full")
        player = rooms.add_player(player_id, room_id)
        try:
            match = engine.admit_second_player(player_id, room_id)
        except GameError:
            rooms.remove_player(player_id, room_id)
            raise
    except CapacityError:
        emit('room_full', {'room_id': room_id})
        return
    except GameError as exc:
        _reject(exc)
        return

    _track(room_id, player_id)
    current_app.logger.info(f"[join] room={room_id} player={player_id}")
    emit('player_joined', {'match': match.to_dict(), 'player': player.to_dict()})

    if len(match.players) == MAX_PLAYERS and match.phase == WAITING:
        match = engine.start(room_id)
        current_app.logger.info(f"[game-started] room={room_id} bowler={match.bowler}")
        emit('game_started', match.to_dict(), to=room_id)


def handle_leave_room(data):
    data = _require(data, 'room_id')
    if data is None:
        return
    room_id = data['room_id']
    # Only the player bound to this socket can leave, and only their own room
    ctx = _sid_to_ctx.get(_get_sid())
    if not ctx or ctx['room_id'] != room_id or data.get('player_id') not in (None, ctx['player_id']):
        _reject(AuthorizationError(f"This connection is not seated in room {room_id}"))
        return
    player_id = ctx['player_id']
    leave_room(room_id)
    _sid_to_ctx.pop(_get_sid(), None)
    rooms.remove_player(player_id, room_id)
    emit('left', {'room_id': room_id})
    emit('player_left', {'player_id': player_id, 'reason': 'left'}, to=room_id)
    current_app.logger.info(f"[leave] room={room_id} player={player_id}")


def handle_rotate_pie(data):
    """Relay the bowler's live field rotation to the batsman; no state change."""
    data = _require(data, 'room_id', 'player_id')
    if data is None:
        return
    room_id, player_id = data['room_id'], data['player_id']
    match = engine.query(room_id)
    if match is None:
        emit('room_not_found', {'room_id': room_id})
        return
    if match.phase != SETTING_FIELD or match.bowler != player_id:
        return
    emit('rotation_update', {'player_id': player_id, 'rotation': data.get('rotation')},
         to=room_id, include_self=False)


def handle_field_set(data):
    data = _require(data, 'room_id', 'player_id', 'rotation')
    if data is None:
        return
    room_id = data['room_id']
    try:
        match = engine.submit_field_rotation(data['player_id'], room_id, data['rotation'])
    except GameError as exc:
        _reject(exc)
        return
    current_app.logger.info(f"[field-set] room={room_id} innings={match.innings} ball={match.current_ball}")
    emit('play_shot', match.to_dict(), to=room_id)


def handle_shot_played(data):
    data = _require(data, 'room_id', 'player_id')
    if data is None:
        return
    room_id = data['room_id']
    try:
        match = engine.submit_shot_choice(data['player_id'], room_id, data.get('choice'))
    except GameError as exc:
        _reject(exc)
        return

    if match.phase == FINISHED:
        current_app.logger.info(f"[game-ended] room={room_id} runs={match.runs} result={match.result}")
        emit('game_ended', match.to_dict(), to=room_id)
        return
    current_app.logger.info(
        f"[delivery] room={room_id} innings={match.innings} next_ball={match.current_ball} runs={match.runs}"
    )
    emit('set_field', match.to_dict(), to=room_id)


def handle_ping(data):
    emit('pong', data or {})


_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'create_room': handle_create_room,
    'join_room': handle_join_room,
    'leave_room': handle_leave_room,
    'rotate_pie': handle_rotate_pie,
    'field_set': handle_field_set,
    'shot_played': handle_shot_played,
    'ping': handle_ping,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for event, handler in _HANDLERS.items():
        socketio.on_event(event, handler, namespace='/ws')

    if testing:
        for event, handler in _HANDLERS.items():
            socketio.on_event(event, handler, namespace='/')
