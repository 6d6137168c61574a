import pytest

RECORDS = [
    ('/subjects', {'name': 'Secret subject'}, {'name': 'Renamed'}),
    ('/activities', {'title': 'Secret exam', 'date': '2026-09-09'}, {'title': 'Renamed'}),
    ('/notes', {'content': 'my diary'}, {'content': 'overwritten'}),
    ('/pomodoros', {'minutes': 25, 'completed_at': '2026-09-09T10:00:00Z'}, {'minutes': 5}),
]


@pytest.mark.parametrize('path,payload,change', RECORDS)
def test_records_are_invisible_to_other_users(client, make_user, path, payload, change):
    owner, intruder = make_user(), make_user()
    created = client.post(path, json=payload, headers=owner)
    assert created.status_code == 201
    rid = created.json()['id']

    assert client.get(path, headers=intruder).json() == []
    for method, kwargs in (('get', {}), ('patch', {'json': change}), ('delete', {})):
        r = client.request(method.upper(), f'{path}/{rid}', headers=intruder, **kwargs)
        assert r.status_code == 404
        assert r.json()['error'] == 'NotFoundError'
        assert str(payload) not in r.text

    # the owner still sees the untouched record
    mine = client.get(f'{path}/{rid}', headers=owner)
    assert mine.status_code == 200
    for field, value in payload.items():
        if field != 'completed_at':
            assert mine.json()[field] == value


@pytest.mark.parametrize('path,payload,_change', RECORDS)
def test_owner_id_is_stamped_from_token(client, make_user, path, payload, _change):
    headers = make_user()
    me = client.get('/auth/me', headers=headers).json()
    forged = dict(payload, owner_id=me['id'] + 1000)
    created = client.post(path, json=forged, headers=headers)
    assert created.status_code == 201
    assert created.json()['owner_id'] == me['id']
