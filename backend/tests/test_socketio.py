from spincricket import engine, rooms


def drain(client):
    """Collect received events as {name: [first arg, ...]}."""
    events = {}
    for pkt in client.get_received('/ws'):
        events.setdefault(pkt['name'], []).append(pkt['args'][0] if pkt['args'] else None)
    return events


def open_match(host, guest):
    host.emit('create_room', {'player_id': 'P1'}, namespace='/ws')
    room_id = drain(host)['room_created'][0]['room_id']
    guest.emit('join_room', {'room_id': room_id, 'player_id': 'P2'}, namespace='/ws')
    return room_id


def play_ball(bowler_client, batsman_client, room_id, choice):
    match = engine.query(room_id)
    bowler_client.emit('field_set', {'room_id': room_id, 'player_id': match.bowler, 'rotation': 1.0}, namespace='/ws')
    batsman_client.emit('shot_played', {'room_id': room_id, 'player_id': match.batsman, 'choice': choice}, namespace='/ws')


def test_socket_connect_and_ping(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    events = drain(sio_client)
    assert 'connected' in events
    assert events['pong'] == [{'n': 1}]


def test_create_room_requires_player_id(sio_client):
    drain(sio_client)
    sio_client.emit('create_room', {}, namespace='/ws')
    events = drain(sio_client)
    assert 'player_id' in events['error'][0]['message']
    assert rooms.all_rooms() == []


def test_join_starts_game_for_both(sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)

    guest_events = drain(guest)
    joined = guest_events['player_joined'][0]
    assert joined['player']['id'] == 'P2'
    assert joined['match']['players'] == ['P1', 'P2']
    assert guest_events['game_started'][0]['phase'] == 'setting_field'

    host_events = drain(sio_client)
    started = host_events['game_started'][0]
    assert started['bowler'] == 'P1'
    assert started['room_id'] == room_id


def test_scenario_a_over_sockets(sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)
    drain(sio_client)
    drain(guest)

    sio_client.emit('field_set', {'room_id': room_id, 'player_id': 'P1', 'rotation': 1.2}, namespace='/ws')
    assert drain(guest)['play_shot'][0]['phase'] == 'batting'
    assert drain(sio_client)['play_shot'][0]['pending_rotation'] == 1.2

    guest.emit('shot_played', {'room_id': room_id, 'player_id': 'P2', 'choice': '4'}, namespace='/ws')
    state = drain(sio_client)['set_field'][0]
    assert state['runs'] == [4, 0]
    assert state['phase'] == 'setting_field'
    assert state['current_ball'] == 2
    assert drain(guest)['set_field'][0]['delivery_history'][0]['batsman_choice'] == '4'


def test_rejection_only_reaches_sender(sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)
    drain(sio_client)
    drain(guest)

    guest.emit('field_set', {'room_id': room_id, 'player_id': 'P2', 'rotation': 0.3}, namespace='/ws')
    guest_events = drain(guest)
    assert guest_events['action_rejected'][0]['error'] == 'AuthorizationError'
    assert drain(sio_client) == {}
    assert engine.query(room_id).phase == 'setting_field'

    sio_client.emit('field_set', {'room_id': room_id, 'player_id': 'P1', 'rotation': 0.3}, namespace='/ws')
    drain(sio_client)
    drain(guest)
    guest.emit('shot_played', {'room_id': room_id, 'player_id': 'P2', 'choice': '7'}, namespace='/ws')
    assert drain(guest)['action_rejected'][0]['error'] == 'ValidationError'
    assert drain(sio_client) == {}
    assert engine.query(room_id).delivery_history == []


def test_room_full_and_not_found(sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)
    third = make_sio_client()
    drain(third)
    third.emit('join_room', {'room_id': room_id, 'player_id': 'P3'}, namespace='/ws')
    assert drain(third)['room_full'][0]['room_id'] == room_id
    assert engine.query(room_id).players == ['P1', 'P2']

    third.emit('join_room', {'room_id': 'missing', 'player_id': 'P3'}, namespace='/ws')
    assert 'room_not_found' in drain(third)


def test_rotation_preview_goes_to_batsman_only(sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)
    drain(sio_client)
    drain(guest)

    sio_client.emit('rotate_pie', {'room_id': room_id, 'player_id': 'P1', 'rotation': 2.5}, namespace='/ws')
    assert drain(guest)['rotation_update'] == [{'player_id': 'P1', 'rotation': 2.5}]
    assert drain(sio_client) == {}
    assert engine.query(room_id).pending_rotation is None


def test_disconnect_keeps_match_and_rejoin_gets_snapshot(flask_app, sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)
    play_ball(sio_client, guest, room_id, '6')
    drain(sio_client)
    drain(guest)

    guest.disconnect(namespace='/ws')
    assert rooms.get_player('P2').connected is False
    assert drain(sio_client)['player_left'][0] == {'player_id': 'P2', 'reason': 'disconnected'}
    assert engine.query(room_id).runs == [6, 0]

    back = make_sio_client()
    drain(back)
    back.emit('join_room', {'room_id': room_id, 'player_id': 'P2'}, namespace='/ws')
    snapshot = drain(back)['player_joined'][0]['match']
    assert snapshot['runs'] == [6, 0]
    assert snapshot['current_ball'] == 2
    assert snapshot['phase'] == 'setting_field'
    assert rooms.get_player('P2').connected is True
    assert 'game_started' not in drain(sio_client)


def test_full_match_ends_with_game_ended(sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)
    # Three wickets per innings finish both innings quickly
    for _ in range(6):
        play_ball(sio_client, guest, room_id, 'W')
    ended = drain(sio_client)['game_ended'][0]
    assert ended['phase'] == 'finished'
    assert ended['wickets'] == [3, 3]
    assert ended['result']['outcome'] == 'tie'
    assert 'game_ended' in drain(guest)


def test_leaving_last_player_tears_down_match(sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)
    drain(sio_client)

    guest.emit('leave_room', {'room_id': room_id, 'player_id': 'P2'}, namespace='/ws')
    assert drain(sio_client)['player_left'][0] == {'player_id': 'P2', 'reason': 'left'}
    assert engine.query(room_id) is not None

    sio_client.emit('leave_room', {'room_id': room_id, 'player_id': 'P1'}, namespace='/ws')
    assert rooms.get_room(room_id) is None
    assert engine.query(room_id) is None


def test_cannot_leave_on_behalf_of_another_player(sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)
    drain(sio_client)
    drain(guest)

    guest.emit('leave_room', {'room_id': room_id, 'player_id': 'P1'}, namespace='/ws')
    assert drain(guest)['action_rejected'][0]['error'] == 'AuthorizationError'
    assert drain(sio_client) == {}
    assert [p.id for p in rooms.get_room(room_id).players] == ['P1', 'P2']

    stranger = make_sio_client()
    drain(stranger)
    stranger.emit('leave_room', {'room_id': room_id}, namespace='/ws')
    assert drain(stranger)['action_rejected'][0]['error'] == 'AuthorizationError'
    assert [p.id for p in rooms.get_room(room_id).players] == ['P1', 'P2']


def test_leave_only_touches_the_named_room(sio_client):
    sio_client.emit('create_room', {'player_id': 'P1'}, namespace='/ws')
    first = drain(sio_client)['room_created'][0]['room_id']
    sio_client.emit('create_room', {'player_id': 'P1'}, namespace='/ws')
    second = drain(sio_client)['room_created'][0]['room_id']

    # The first room was vacated when the second was opened
    assert rooms.get_room(first) is None
    assert engine.query(first) is None

    sio_client.emit('leave_room', {'room_id': first}, namespace='/ws')
    assert drain(sio_client)['action_rejected'][0]['error'] == 'AuthorizationError'
    assert rooms.get_room(second) is not None
    assert engine.query(second) is not None


def test_room_reclaimed_when_everyone_disconnects(sio_client, make_sio_client):
    guest = make_sio_client()
    room_id = open_match(sio_client, guest)
    play_ball(sio_client, guest, room_id, '2')

    guest.disconnect(namespace='/ws')
    assert rooms.get_room(room_id) is not None
    assert engine.query(room_id).runs == [2, 0]

    sio_client.disconnect(namespace='/ws')
    assert rooms.get_room(room_id) is None
    assert engine.query(room_id) is None


def test_create_room_rolls_back_when_match_cannot_start(sio_client, monkeypatch):
    from spincricket.exceptions import DuplicateRoomError

    def refuse(player_id, room_id):
        raise DuplicateRoomError(room_id)

    monkeypatch.setattr(engine, 'initialize', refuse)
    drain(sio_client)
    sio_client.emit('create_room', {'player_id': 'P1'}, namespace='/ws')
    events = drain(sio_client)
    assert events['action_rejected'][0]['error'] == 'DuplicateRoomError'
    assert 'room_created' not in events
    assert rooms.all_rooms() == []
    assert rooms.room_of('P1') is None
