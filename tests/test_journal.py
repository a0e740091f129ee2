from datetime import datetime

import pytz


def test_create_entry_for_a_date(client):
    resp = client.post('/api/journal', json={'entry': 'Good day', 'date': '2024-03-01'})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['date'] == '2024-03-01'
    assert body['entry'] == 'Good day'


def test_duplicate_date_is_a_conflict(client):
    assert client.post('/api/journal', json={'entry': 'first', 'date': '2024-03-01'}).status_code == 201
    resp = client.post('/api/journal', json={'entry': 'second', 'date': '2024-03-01'})
    assert resp.status_code == 409
    assert len(client.get('/api/journal').get_json()) == 1


def test_timestamp_dates_collapse_to_the_same_day(client):
    assert client.post('/api/journal', json={'entry': 'am', 'date': '2024-03-01T08:00:00Z'}).status_code == 201
    assert client.post('/api/journal', json={'entry': 'pm', 'date': '2024-03-01T20:00:00Z'}).status_code == 409


def test_same_date_for_different_users_is_allowed(make_client):
    first = make_client()
    second = make_client()
    assert first.post('/api/journal', json={'entry': 'a', 'date': '2024-03-01'}).status_code == 201
    assert second.post('/api/journal', json={'entry': 'b', 'date': '2024-03-01'}).status_code == 201


def test_date_defaults_to_today(client):
    resp = client.post('/api/journal', json={'entry': 'today'})
    assert resp.status_code == 201
    assert resp.get_json()['date'] == datetime.now(pytz.UTC).date().isoformat()


def test_entry_is_required_and_date_must_parse(client):
    assert client.post('/api/journal', json={'date': '2024-03-01'}).status_code == 400
    assert client.post('/api/journal', json={'entry': 'x', 'date': 'yesterday'}).status_code == 400


def test_list_is_newest_date_first(client):
    client.post('/api/journal', json={'entry': 'a', 'date': '2024-03-01'})
    client.post('/api/journal', json={'entry': 'b', 'date': '2024-03-03'})
    client.post('/api/journal', json={'entry': 'c', 'date': '2024-03-02'})
    dates = [e['date'] for e in client.get('/api/journal').get_json()]
    assert dates == ['2024-03-03', '2024-03-02', '2024-03-01']


def test_update_changes_only_the_entry_text(client):
    entry = client.post('/api/journal', json={'entry': 'draft', 'date': '2024-03-01'}).get_json()
    resp = client.put(f"/api/journal/{entry['id']}", json={'entry': 'final', 'date': '2030-01-01'})
    assert resp.status_code == 200
    assert resp.get_json()['entry'] == 'final'
    assert resp.get_json()['date'] == '2024-03-01'


def test_delete_and_ownership(make_client):
    owner = make_client()
    intruder = make_client()
    entry = owner.post('/api/journal', json={'entry': 'mine', 'date': '2024-03-01'}).get_json()

    assert intruder.put(f"/api/journal/{entry['id']}", json={'entry': 'x'}).status_code == 403
    assert intruder.delete(f"/api/journal/{entry['id']}").status_code == 403
    assert owner.delete(f"/api/journal/{entry['id']}").get_json() == {'id': entry['id']}
    assert owner.delete(f"/api/journal/{entry['id']}").status_code == 404
