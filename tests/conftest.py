import os

os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['DEFAULT_TIMEZONE'] = 'UTC'
os.environ['SECRET_KEY'] = 'test-secret-key'

import pytest

from app import app as flask_app
from models import db


@pytest.fixture
def app():
    flask_app.config['TESTING'] = True
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_client(app):
    """Return a factory that registers a user and hands back a client carrying their cookie."""
    counter = {'n': 0}

    def _make(name=None, email=None, password='secret-pass'):
        counter['n'] += 1
        client = app.test_client()
        resp = client.post('/api/register', json={
            'name': name or f"user{counter['n']}",
            'email': email or f"user{counter['n']}@example.com",
            'password': password,
        })
        assert resp.status_code == 201
        client.user = resp.get_json()['user']
        client.token = resp.get_json()['token']
        return client

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
