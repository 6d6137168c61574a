from app import repositories
from app.config import settings


def test_subject_crud_flow(client, make_user):
    headers = make_user()
    r = client.post('/subjects', json={'name': 'Calculus', 'color': '#ff8800', 'workload': 60}, headers=headers)
    assert r.status_code == 201
    subject = r.json()
    assert subject['absences'] == 0
    assert subject['color'] == '#ff8800'

    listed = client.get('/subjects', headers=headers).json()
    assert [s['id'] for s in listed] == [subject['id']]

    upd = client.patch(f"/subjects/{subject['id']}", json={'absences': 2}, headers=headers)
    assert upd.status_code == 200
    assert upd.json()['absences'] == 2
    assert upd.json()['name'] == 'Calculus'
    assert upd.json()['workload'] == 60

    assert client.delete(f"/subjects/{subject['id']}", headers=headers).status_code == 204
    assert client.get(f"/subjects/{subject['id']}", headers=headers).status_code == 404
    assert client.delete(f"/subjects/{subject['id']}", headers=headers).status_code == 404


def test_subject_requires_name(client, make_user):
    headers = make_user()
    assert client.post('/subjects', json={'color': '#fff'}, headers=headers).status_code == 422
    assert client.post('/subjects', json={'name': '   '}, headers=headers).status_code == 422


def test_subject_rejects_malformed_fields(client, make_user):
    headers = make_user()
    assert client.post('/subjects', json={'name': 'Art', 'color': 'orange'}, headers=headers).status_code == 422
    assert client.post('/subjects', json={'name': 'Art', 'absences': -1}, headers=headers).status_code == 422


def test_subject_update_cannot_clear_name(client, make_user):
    headers = make_user()
    sid = client.post('/subjects', json={'name': 'Chemistry'}, headers=headers).json()['id']
    r = client.patch(f'/subjects/{sid}', json={'name': None}, headers=headers)
    assert r.status_code == 422
    assert r.json()['error'] == 'ValidationError'
    assert client.get(f'/subjects/{sid}', headers=headers).json()['name'] == 'Chemistry'


def test_subject_activities_listing(client, make_user):
    headers = make_user()
    sid = client.post('/subjects', json={'name': 'Biology'}, headers=headers).json()['id']
    linked = client.post('/activities', json={'title': 'Lab report', 'date': '2026-11-02', 'subject_id': sid}, headers=headers)
    assert linked.status_code == 201
    client.post('/activities', json={'title': 'Unrelated', 'date': '2026-11-02'}, headers=headers)
    r = client.get(f'/subjects/{sid}/activities', headers=headers)
    assert r.status_code == 200
    assert [a['id'] for a in r.json()] == [linked.json()['id']]
    assert client.get('/subjects/999999/activities', headers=headers).status_code == 404


def _subject_with_activity(client, headers):
    sid = client.post('/subjects', json={'name': 'History'}, headers=headers).json()['id']
    aid = client.post('/activities', json={'title': 'Essay', 'date': '2026-12-01', 'subject_id': sid}, headers=headers).json()['id']
    return sid, aid


def test_delete_subject_nullifies_activities_by_default(client, make_user):
    assert settings.SUBJECT_DELETE_POLICY == 'nullify'
    headers = make_user()
    sid, aid = _subject_with_activity(client, headers)
    assert client.delete(f'/subjects/{sid}', headers=headers).status_code == 204
    activity = client.get(f'/activities/{aid}', headers=headers)
    assert activity.status_code == 200
    assert activity.json()['subject_id'] is None


def test_delete_subject_cascade_policy(client, make_user, monkeypatch):
    monkeypatch.setattr(settings, 'SUBJECT_DELETE_POLICY', 'cascade')
    headers = make_user()
    sid, aid = _subject_with_activity(client, headers)
    assert client.delete(f'/subjects/{sid}', headers=headers).status_code == 204
    assert client.get(f'/activities/{aid}', headers=headers).status_code == 404


def test_delete_subject_reject_policy(client, make_user, monkeypatch):
    monkeypatch.setattr(settings, 'SUBJECT_DELETE_POLICY', 'reject')
    headers = make_user()
    sid, aid = _subject_with_activity(client, headers)
    r = client.delete(f'/subjects/{sid}', headers=headers)
    assert r.status_code == 409
    assert r.json()['error'] == 'ConflictError'
    assert client.get(f'/subjects/{sid}', headers=headers).status_code == 200
    # once the activity is gone the subject can be deleted
    assert client.delete(f'/activities/{aid}', headers=headers).status_code == 204
    assert client.delete(f'/subjects/{sid}', headers=headers).status_code == 204


def test_reject_policy_reports_late_linked_activity_as_conflict(client, make_user, monkeypatch):
    monkeypatch.setattr(settings, 'SUBJECT_DELETE_POLICY', 'reject')
    # the activity count looks empty, but the row is still linked when the delete commits
    monkeypatch.setattr(repositories.ActivityRepository, 'count_for_subject', lambda self, subject_id: 0)
    headers = make_user()
    sid, aid = _subject_with_activity(client, headers)
    r = client.delete(f'/subjects/{sid}', headers=headers)
    assert r.status_code == 409
    assert r.json()['error'] == 'ConflictError'
    assert client.get(f'/subjects/{sid}', headers=headers).status_code == 200
    assert client.get(f'/activities/{aid}', headers=headers).json()['subject_id'] == sid


def test_subject_list_pagination(client, make_user):
    headers = make_user()
    ids = [client.post('/subjects', json={'name': f'S{i}'}, headers=headers).json()['id'] for i in range(5)]
    page = client.get('/subjects', params={'limit': 2, 'offset': 2}, headers=headers).json()
    assert [s['id'] for s in page] == ids[2:4]
    assert client.get('/subjects', params={'limit': 0}, headers=headers).status_code == 422
