"""Signed-token authentication: issue, verify, and resolve the request's user."""
from functools import wraps

from flask import current_app, jsonify
from flask_login import LoginManager, current_user, login_required
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError

from models import db, User
from services.errors import ConflictError, UnauthenticatedError, ValidationError

TOKEN_COOKIE = 'token'
TOKEN_SALT = 'auth-token'

login_manager = LoginManager()


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def issue_token(user):
    return _serializer().dumps({'id': user.id})


def verify_token(token):
    """Return the user id a token was issued for, or None when it is invalid or expired."""
    try:
        data = _serializer().loads(token, max_age=current_app.config['TOKEN_MAX_AGE'])
    except SignatureExpired:
        current_app.logger.info("Rejected expired auth token")
        return None
    except BadSignature:
        current_app.logger.warning("Rejected auth token with bad signature")
        return None
    if not isinstance(data, dict):
        return None
    return data.get('id')


def token_from_request(req):
    # Cookie first, then the Authorization header
    token = req.cookies.get(TOKEN_COOKIE)
    if token:
        return token
    header = req.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip() or None
    return None


@login_manager.request_loader
def load_user_from_request(req):
    token = token_from_request(req)
    if not token:
        return None
    user_id = verify_token(token)
    if user_id is None:
        return None
    return db.session.get(User, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Not authorized, missing or invalid token'}), 401


def owner_view(view):
    """Require a resolved user and pass it to the view as its first argument."""
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        return view(current_user._get_current_object(), *args, **kwargs)
    return wrapped


def set_token_cookie(response, token):
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=current_app.config['TOKEN_MAX_AGE'],
        httponly=True,
        secure=current_app.config.get('TOKEN_COOKIE_SECURE', False),
        samesite='Lax',
    )
    return response


def clear_token_cookie(response):
    response.delete_cookie(TOKEN_COOKIE, samesite='Lax')
    return response


def email_taken(email):
    return User.query.filter_by(email=email).first() is not None


def register_user(name, email, password):
    name = (name or '').strip()
    email = (email or '').strip().lower()
    if not name or not email or not password:
        raise ValidationError("Please provide name, email, and password")
    if '@' not in email:
        raise ValidationError("Please provide a valid email address")
    if email_taken(email):
        raise ConflictError("User with this email already exists")

    user = User(username=name, email=email)
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent registration claimed the unique email first
        db.session.rollback()
        current_app.logger.warning("Duplicate registration for %s", email)
        raise ConflictError("User with this email already exists")
    current_app.logger.info("Registered user %s", user.id)
    return user


def authenticate(email, password):
    email = (email or '').strip().lower()
    if not email or not password:
        raise ValidationError("Please provide email and password")
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        current_app.logger.warning("Failed login attempt for %s", email)
        raise UnauthenticatedError("Invalid email or password")
    current_app.logger.info("User %s logged in", user.id)
    return user
