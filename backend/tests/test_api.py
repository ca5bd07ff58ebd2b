def _create(client, name='Alice'):
    res = client.post('/api/sessions/create', json={'name': name})
    assert res.status_code == 201
    return res.get_json()['session_code']


def _join(client, code, name):
    return client.post('/api/sessions/join', json={'session_code': code, 'name': name})


def test_index_and_health(client):
    assert client.get('/').status_code == 200
    health = client.get('/health').get_json()
    assert health['store'] == 'SqlSessionStore'
    assert health['sessions'] == 0
    _create(client)
    assert client.get('/health').get_json()['sessions'] == 1


def test_create_session(client):
    res = client.post('/api/sessions/create', json={'name': 'Alice'})
    assert res.status_code == 201
    data = res.get_json()
    assert len(data['session_code']) == 6
    assert data['session']['host'] == 'Alice'
    assert data['session']['status'] == 'waiting'


def test_create_requires_name(client):
    res = client.post('/api/sessions/create', json={})
    assert res.status_code == 400
    assert 'name' in res.get_json()['error']


def test_join_and_state(client):
    code = _create(client)
    # join with a lower-case code as typed by a player
    res = _join(client, code.lower(), 'Bob')
    assert res.status_code == 201
    assert res.get_json()['session_code'] == code
    res = client.get(f'/api/sessions/{code}/state')
    assert res.status_code == 200
    state = res.get_json()
    assert set(state['session']['players']) == {'Alice', 'Bob'}
    assert state['submissions'] == {'submitted': 0, 'players': 2, 'names': []}


def test_join_errors(client):
    res = _join(client, 'NOPE12', 'Bob')
    assert res.status_code == 404
    assert res.get_json()['kind'] == 'NotFound'

    code = _create(client)
    res = _join(client, code, 'Alice')
    assert res.status_code == 409
    assert res.get_json() == {'error': 'Player name already taken', 'kind': 'NameTaken', 'name': 'Alice'}

    for name in ['Bob', 'Cara', 'Dan', 'Eve', 'Finn']:
        assert _join(client, code, name).status_code == 201
    res = _join(client, code, 'Gus')
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'SessionFull'
    players = client.get(f'/api/sessions/{code}/state').get_json()['session']['players']
    assert 'Gus' not in players and len(players) == 6


def test_full_round_flow(client):
    code = _create(client)
    _join(client, code, 'Bob')

    res = client.put(f'/api/sessions/{code}/categories',
                     json={'categories': ['City', 'Country'], 'requester': 'Alice'})
    assert res.status_code == 200
    assert res.get_json()['session']['categories'] == ['City', 'Country']

    started = client.post(f'/api/sessions/{code}/start', json={'requester': 'Alice', 'letter': 'b'}).get_json()
    assert started['session']['status'] == 'playing'
    assert started['session']['currentLetter'] == 'B'
    assert started['session']['currentRound'] == 1

    assert client.post(f'/api/sessions/{code}/answers', json={
        'name': 'Alice', 'answers': {'City': {'value': 'Berlin'}, 'Country': {'value': 'Brazil'}},
    }).status_code == 200
    assert client.post(f'/api/sessions/{code}/answers', json={
        'name': 'Bob', 'answers': {'City': {'value': 'Berlin'}, 'Country': {'value': ''}},
    }).status_code == 200

    paused = client.post(f'/api/sessions/{code}/pause', json={'name': 'Bob'}).get_json()
    assert paused['session']['status'] == 'paused'
    assert paused['session']['pausedBy'] == 'Bob'
    res = client.post(f'/api/sessions/{code}/resume', json={'requester': 'Bob'})
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NotAuthorized'
    resumed = client.post(f'/api/sessions/{code}/resume', json={'requester': 'Alice'}).get_json()
    assert resumed['session']['status'] == 'playing'

    live = client.get(f'/api/sessions/{code}/state').get_json()
    assert live['scoredAnswers']['Alice']['Country']['points'] == 20
    assert live['standings'][0] == {'player': 'Alice', 'total': 25, 'rounds': {'current': 25}}

    ended = client.post(f'/api/sessions/{code}/end', json={'requester': 'Alice'}).get_json()
    assert ended['session']['status'] == 'roundEnd'
    assert ended['round']['roundNumber'] == 1
    assert ended['round']['answers']['Bob']['City'] == {'value': 'Berlin', 'points': 5}
    assert ended['standings'] == [
        {'player': 'Alice', 'total': 25, 'rounds': {'0': 25}},
        {'player': 'Bob', 'total': 5, 'rounds': {'0': 5}},
    ]

    res = client.post(f'/api/sessions/{code}/answers', json={'name': 'Bob', 'answers': {'City': 'Bonn'}})
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'InvalidStateForOperation'

    assert client.get(f'/api/sessions/{code}/scores/Alice').get_json() == {'player': 'Alice', 'total': 25}
    scores = client.get(f'/api/sessions/{code}/scores').get_json()
    assert [s['player'] for s in scores] == ['Alice', 'Bob']

    lobby = client.post(f'/api/sessions/{code}/lobby', json={'requester': 'Alice'}).get_json()
    assert lobby['session']['status'] == 'waiting'
    assert 'currentLetter' not in lobby['session']

    res = client.post(f'/api/sessions/{code}/start', json={'requester': 'Alice', 'letter': 'B'})
    assert res.status_code == 409
    assert res.get_json() == {'error': 'Letter has already been used', 'kind': 'LetterAlreadyUsed', 'letter': 'B'}
    res = client.post(f'/api/sessions/{code}/start', json={'requester': 'Alice', 'letter': '??'})
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'InvalidLetter'
    second = client.post(f'/api/sessions/{code}/start', json={'requester': 'Alice', 'letter': ''}).get_json()
    assert second['session']['currentLetter'] != 'B'
    assert second['session']['usedLetters'][0] == 'B'


def test_category_validation(client):
    code = _create(client)
    res = client.put(f'/api/sessions/{code}/categories',
                     json={'categories': [f'C{i}' for i in range(11)], 'requester': 'Alice'})
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'InvalidCategories'
    res = client.put(f'/api/sessions/{code}/categories', json={'categories': 'City', 'requester': 'Alice'})
    assert res.status_code == 400


def test_kick_and_leave(client):
    code = _create(client)
    _join(client, code, 'Bob')
    _join(client, code, 'Cara')

    res = client.post(f'/api/sessions/{code}/kick', json={'name': 'Cara', 'requester': 'Bob'})
    assert res.status_code == 403
    res = client.post(f'/api/sessions/{code}/kick', json={'name': 'Cara', 'requester': 'Alice'})
    assert res.get_json() == {'session_code': code, 'deleted': False}

    res = client.post(f'/api/sessions/{code}/leave', json={'name': 'Alice'})
    assert res.get_json()['deleted'] is False
    state = client.get(f'/api/sessions/{code}/state').get_json()
    assert state['session']['host'] == 'Bob'
    assert state['session']['players']['Bob']['isHost'] is True

    res = client.post(f'/api/sessions/{code}/leave', json={'name': 'Alice'})
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NotAMember'

    res = client.post(f'/api/sessions/{code}/leave', json={'name': 'Bob'})
    assert res.get_json()['deleted'] is True
    assert client.get(f'/api/sessions/{code}/state').status_code == 404


def test_non_text_names_are_rejected(client):
    code = _create(client)
    _join(client, code, 'Bob')

    res = client.post(f'/api/sessions/{code}/leave', json={'name': ['Alice']})
    assert res.status_code == 403
    assert res.get_json() == {'error': 'Player is not in this session', 'kind': 'NotAMember', 'name': ['Alice']}
    res = client.post(f'/api/sessions/{code}/kick', json={'name': {'x': 1}, 'requester': 'Alice'})
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NotAMember'

    client.post(f'/api/sessions/{code}/start', json={'requester': 'Alice'})
    res = client.post(f'/api/sessions/{code}/pause', json={'name': {'x': 1}})
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NotAMember'
    res = client.post(f'/api/sessions/{code}/answers', json={'name': ['Bob'], 'answers': {}})
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NotAMember'

    state = client.get(f'/api/sessions/{code}/state').get_json()['session']
    assert state['status'] == 'playing'
    assert set(state['players']) == {'Alice', 'Bob'}
