def _events(sio_client, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in sio_client.get_received() if pkt['name'] == name]


def _create(sio_factory, name='Ana'):
    host = sio_factory()
    host.emit('create_room', {'playerName': name})
    joined = _events(host, 'room_joined')
    assert len(joined) == 1
    return host, joined[0]['roomId']


def test_create_room_acks_with_state(sio_factory):
    host = sio_factory()
    host.emit('create_room', {'playerName': 'Ana'})

    received = host.get_received()
    joined = [pkt for pkt in received if pkt['name'] == 'room_joined']
    assert len(joined) == 1
    state = joined[0]['args'][0]['gameState']
    assert state['phase'] == 'LOBBY'
    assert state['players'][0]['isHost'] is True


def test_join_broadcasts_room_update(sio_factory):
    host, code = _create(sio_factory)

    guest = sio_factory()
    guest.emit('join_room', {'roomId': code.lower(), 'playerName': 'Ben'})

    assert _events(guest, 'room_joined')[0]['roomId'] == code
    updates = _events(host, 'room_update')
    assert [p['name'] for p in updates[-1]['players']] == ['Ana', 'Ben']


def test_join_unknown_room_reports_error(sio_factory):
    guest = sio_factory()
    guest.emit('join_room', {'roomId': 'QQQQ', 'playerName': 'Ben'})
    assert _events(guest, 'error') == [{'code': 'room_not_found', 'message': 'Room not found'}]


def test_join_without_code_reports_error(sio_factory):
    guest = sio_factory()
    guest.emit('join_room', {'playerName': 'Ben'})
    assert _events(guest, 'error')[0]['code'] == 'invalid_payload'


def test_start_without_enough_players(sio_factory):
    host, code = _create(sio_factory)
    host.emit('start_game', {'roomId': code})
    assert _events(host, 'error')[0]['code'] == 'not_enough_players'


def test_roles_are_sent_privately(sio_factory, scheduler, flask_app):
    host, code = _create(sio_factory)
    guests = []
    for name in ('Ben', 'Caro'):
        guest = sio_factory()
        guest.emit('join_room', {'roomId': code, 'playerName': name})
        guests.append(guest)
    clients = [host] + guests
    for c in clients:
        c.get_received()

    host.emit('start_game', {'roomId': code})
    scheduler.advance(flask_app.config['COUNTDOWN_SEC'])

    roles = []
    for c in clients:
        payloads = [p for p in _events(c, 'your_role') if p is not None]
        assert len(payloads) == 1
        roles.append(payloads[0])

    assert sorted(r['role'] for r in roles) == ['IMPOSTOR', 'INNOCENT', 'INNOCENT']
    target = {r['targetIndex'] for r in roles if r['role'] == 'INNOCENT'}
    assert len(target) == 1
    assert next(r for r in roles if r['role'] == 'IMPOSTOR')['targetIndex'] is None


def test_host_disconnect_in_lobby_promotes_guest(sio_factory):
    host, code = _create(sio_factory)
    guest = sio_factory()
    guest.emit('join_room', {'roomId': code, 'playerName': 'Ben'})
    guest.get_received()

    host.disconnect()

    update = _events(guest, 'room_update')[-1]
    assert [p['name'] for p in update['players']] == ['Ben']
    assert update['players'][0]['isHost'] is True


def test_leave_room_acks(sio_factory, flask_app):
    host, code = _create(sio_factory)
    host.emit('leave_room', {})
    assert _events(host, 'room_left') == [{'roomId': code}]
    assert flask_app.extensions['impostor'].get_room(code) is None
