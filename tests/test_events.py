import threading
from datetime import datetime, timedelta

import pytz


def _iso(dt):
    return dt.strftime('%Y-%m-%dT%H:%M:%SZ')


def _event(title='Event', start='2024-01-01T10:00:00Z', end='2024-01-01T11:00:00Z', **extra):
    payload = {'title': title, 'startDate': start, 'endDate': end}
    payload.update(extra)
    return payload


def _create(client, **kwargs):
    resp = client.post('/api/events', json=_event(**kwargs))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def test_create_event_defaults(client):
    event = _create(client)
    assert event['startDate'] == '2024-01-01T10:00:00Z'
    assert event['endDate'] == '2024-01-01T11:00:00Z'
    assert event['allDay'] is False
    assert event['type'] == 'event'
    assert event['priority'] == 'medium'
    assert event['color'] == '#4f46e5'
    assert event['recurring'] == {'enabled': False}
    assert event['reminders'] == [{'type': 'push', 'time': 15, 'sent': False}]
    assert event['isOverdue'] is True


def test_explicit_empty_reminders_are_kept(client):
    event = _create(client, reminders=[])
    assert event['reminders'] == []


def test_overlapping_event_is_rejected_with_conflicts(client):
    first = _create(client, title='A')
    resp = client.post('/api/events', json=_event(
        title='B', start='2024-01-01T10:30:00Z', end='2024-01-01T11:30:00Z'
    ))
    assert resp.status_code == 409
    body = resp.get_json()
    assert body['conflicts'] == [{'id': first['id'], 'title': 'A'}]
    assert len(client.get('/api/events').get_json()) == 1


def test_adjacent_events_do_not_conflict(client):
    _create(client, title='A')
    _create(client, title='B', start='2024-01-01T11:00:00Z', end='2024-01-01T12:00:00Z')
    _create(client, title='C', start='2024-01-01T09:00:00Z', end='2024-01-01T10:00:00Z')


def test_all_day_events_are_exempt_from_conflicts(client):
    _create(client, title='Timed')
    _create(client, title='Holiday', start='2024-01-01T00:00:00Z', end='2024-01-02T00:00:00Z', allDay=True)
    # a timed event over an all-day one is also fine
    _create(client, title='Late', start='2024-01-01T15:00:00Z', end='2024-01-01T16:00:00Z')


def test_conflicts_are_per_user(make_client):
    first = make_client()
    second = make_client()
    _create(first)
    _create(second)


def test_start_must_precede_end(client):
    resp = client.post('/api/events', json=_event(start='2024-01-01T11:00:00Z', end='2024-01-01T11:00:00Z'))
    assert resp.status_code == 400
    resp = client.post('/api/events', json=_event(start='2024-01-01T12:00:00Z', end='2024-01-01T11:00:00Z'))
    assert resp.status_code == 400


def test_create_requires_title_and_dates(client):
    assert client.post('/api/events', json={'startDate': '2024-01-01T10:00:00Z',
                                            'endDate': '2024-01-01T11:00:00Z'}).status_code == 400
    assert client.post('/api/events', json={'title': 'x', 'startDate': '2024-01-01T10:00:00Z'}).status_code == 400
    assert client.post('/api/events', json=_event(start='whenever')).status_code == 400
    assert client.post('/api/events', json=_event(type='party')).status_code == 400


def test_update_ignores_the_event_itself(client):
    event = _create(client)
    resp = client.put(f"/api/events/{event['id']}", json={'endDate': '2024-01-01T11:30:00Z'})
    assert resp.status_code == 200
    assert resp.get_json()['endDate'] == '2024-01-01T11:30:00Z'


def test_update_into_another_event_conflicts(client):
    first = _create(client, title='A')
    second = _create(client, title='B', start='2024-01-01T12:00:00Z', end='2024-01-01T13:00:00Z')
    resp = client.put(f"/api/events/{second['id']}", json={'startDate': '2024-01-01T10:45:00Z'})
    assert resp.status_code == 409
    assert resp.get_json()['conflicts'] == [{'id': first['id'], 'title': 'A'}]
    unchanged = client.get(f"/api/events/{second['id']}").get_json()
    assert unchanged['startDate'] == '2024-01-01T12:00:00Z'


def test_update_checks_merged_range(client):
    event = _create(client)
    resp = client.put(f"/api/events/{event['id']}", json={'startDate': '2024-01-01T12:00:00Z'})
    assert resp.status_code == 400


def test_update_without_timing_skips_conflict_check(client):
    event = _create(client)
    resp = client.put(f"/api/events/{event['id']}", json={'title': 'Renamed', 'tags': 'x,y'})
    assert resp.status_code == 200
    assert resp.get_json()['tags'] == ['x', 'y']


def test_list_by_range_and_filters(client):
    _create(client, title='Jan', type='meeting', tags='work')
    _create(client, title='Feb', start='2024-02-10T10:00:00Z', end='2024-02-10T11:00:00Z', tags='home')
    _create(client, title='Late Feb', start='2024-02-29T22:00:00Z', end='2024-02-29T23:00:00Z', priority='high')

    titles = lambda qs: [e['title'] for e in client.get('/api/events' + qs).get_json()]
    assert titles('') == ['Jan', 'Feb', 'Late Feb']
    assert titles('?start=2024-02-01&end=2024-02-29') == ['Feb', 'Late Feb']
    assert titles('?type=meeting') == ['Jan']
    assert titles('?priority=high') == ['Late Feb']
    assert titles('?tags=home,work') == ['Jan', 'Feb']
    assert client.get('/api/events?start=2024-02-10&end=2024-02-01').status_code == 400
    assert client.get('/api/events?start=garbage').status_code == 400


def test_today_and_upcoming(client):
    now = datetime.now(pytz.UTC).replace(microsecond=0)
    _create(client, title='Past', start='2020-01-01T10:00:00Z', end='2020-01-01T11:00:00Z')
    _create(client, title='Ongoing', start=_iso(now - timedelta(minutes=30)), end=_iso(now + timedelta(minutes=30)))
    later = _create(client, title='Next week', start=_iso(now + timedelta(days=7)),
                    end=_iso(now + timedelta(days=7, hours=1)))
    _create(client, title='Next month', start=_iso(now + timedelta(days=30)),
            end=_iso(now + timedelta(days=30, hours=1)))

    today = [e['title'] for e in client.get('/api/events/today').get_json()]
    assert today == ['Ongoing']

    upcoming = client.get('/api/events/upcoming').get_json()
    assert [e['title'] for e in upcoming] == ['Next week', 'Next month']
    assert upcoming[0]['isUpcoming'] is True

    limited = client.get('/api/events/upcoming?limit=1').get_json()
    assert [e['id'] for e in limited] == [later['id']]
    assert len(client.get('/api/events/upcoming?limit=0').get_json()) == 1


def test_stats(client):
    now = datetime.now(pytz.UTC).replace(microsecond=0)
    _create(client, title='Soon', type='meeting', start=_iso(now + timedelta(hours=1)),
            end=_iso(now + timedelta(hours=2)))
    _create(client, title='Ancient', start='2001-01-01T10:00:00Z', end='2001-01-01T11:00:00Z')

    stats = client.get('/api/events/stats?period=week').get_json()
    assert stats['period'] == 'week'
    assert stats['upcomingEvents'] == 1
    assert stats['totalEvents'] == 1
    assert stats['typeStats'].get('event') is None
    assert stats['typeStats']['meeting'] == 1

    assert client.get('/api/events/stats?period=decade').get_json()['period'] == 'month'


def test_search(client):
    _create(client, title='Standup', location='Room 1')
    _create(client, title='Dentist', start='2024-01-02T10:00:00Z', end='2024-01-02T11:00:00Z',
            notes='bring the room key', tags='health')
    _create(client, title='Lunch', start='2024-01-03T10:00:00Z', end='2024-01-03T11:00:00Z')

    found = lambda qs: [e['title'] for e in client.get('/api/events/search' + qs).get_json()]
    assert found('?q=room') == ['Standup', 'Dentist']
    assert found('?q=room&tags=health') == ['Dentist']
    assert found('?q=nothing') == []


def test_search_treats_wildcards_literally(client):
    _create(client, title='Standup')
    _create(client, title='Q3_review', start='2024-01-02T10:00:00Z', end='2024-01-02T11:00:00Z')
    found = lambda qs: [e['title'] for e in client.get('/api/events/search' + qs).get_json()]
    assert found('?q=_') == ['Q3_review']
    assert found('?q=%25') == []


def test_bulk_delete_only_removes_own_events(make_client):
    owner = make_client()
    other = make_client()
    mine = _create(owner)
    theirs = _create(other)

    resp = owner.delete('/api/events/bulk/delete', json={'eventIds': [mine['id'], theirs['id']]})
    assert resp.status_code == 200
    assert resp.get_json()['deletedCount'] == 1
    assert owner.get('/api/events').get_json() == []
    assert other.get(f"/api/events/{theirs['id']}").status_code == 200
    assert owner.delete('/api/events/bulk/delete', json={'eventIds': []}).status_code == 400


def test_related_items_must_be_owned(make_client):
    owner = make_client()
    other = make_client()
    note = owner.post('/api/notes', json={'title': 'n', 'content': 'c'}).get_json()
    resp = other.post('/api/events', json=_event(relatedNote=note['id']))
    assert resp.status_code == 403

    event = _create(owner, relatedNote=note['id'])
    assert event['relatedNote'] == {'id': note['id'], 'title': 'n'}
    owner.delete(f"/api/notes/{note['id']}")
    assert owner.get(f"/api/events/{event['id']}").get_json()['relatedNote'] is None


def test_other_users_event_is_forbidden(make_client):
    owner = make_client()
    other = make_client()
    event = _create(owner)
    assert other.get(f"/api/events/{event['id']}").status_code == 403
    assert other.put(f"/api/events/{event['id']}", json={'title': 'x'}).status_code == 403
    assert other.delete(f"/api/events/{event['id']}").status_code == 403
    assert owner.delete(f"/api/events/{event['id']}").status_code == 200


def test_range_end_at_the_end_of_the_calendar_is_rejected(client):
    resp = client.get('/api/events?end=9999-12-31')
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid date'}


def test_concurrent_overlapping_creates_admit_exactly_one(client, app):
    workers = 4
    barrier = threading.Barrier(workers)
    statuses = []

    def create(index):
        worker = app.test_client(use_cookies=False)
        barrier.wait()
        resp = worker.post(
            '/api/events',
            json=_event(title=f'Race {index}'),
            headers={'Authorization': f'Bearer {client.token}'},
        )
        statuses.append(resp.status_code)

    threads = [threading.Thread(target=create, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(statuses) == [201] + [409] * (workers - 1)
    assert len(client.get('/api/events').get_json()) == 1
