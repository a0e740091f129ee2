"""Registration, login and session routes."""
from flask import jsonify, request

from services.auth_service import (
    authenticate,
    clear_token_cookie,
    issue_token,
    owner_view,
    register_user,
    set_token_cookie,
)
from services.validation_service import json_object


def _auth_response(user, status=200):
    token = issue_token(user)
    response = jsonify({'user': user.to_dict(), 'token': token})
    response.status_code = status
    return set_token_cookie(response, token)


def register():
    data = json_object(request.get_json(silent=True))
    user = register_user(data.get('name'), data.get('email'), data.get('password'))
    return _auth_response(user, status=201)


def login():
    data = json_object(request.get_json(silent=True))
    user = authenticate(data.get('email'), data.get('password'))
    return _auth_response(user)


def logout():
    return clear_token_cookie(jsonify({'success': True}))


@owner_view
def current_user_info(user):
    return jsonify({'user': user.to_dict()})
