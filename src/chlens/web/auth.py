"""Session handling for the web API."""
from dataclasses import dataclass
from functools import wraps
from typing import Any, Dict, Optional
from flask import jsonify, session

from ..errors import ApiError

SESSION_USER_KEY = 'user'


@dataclass
class Session:
    """Authentication state of the current request."""
    is_logged_in: bool
    user: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"isLoggedIn": self.is_logged_in, "user": self.user}


def get_session() -> Session:
    user = session.get(SESSION_USER_KEY)
    if not user or not user.get('username'):
        return Session(is_logged_in=False)
    return Session(is_logged_in=True, user={'username': user['username']})


def login_user(username: str):
    session.clear()
    session[SESSION_USER_KEY] = {'username': username}


def logout_user():
    session.clear()


def login_required(view):
    """Reject the request with AUTH_REQUIRED when no user is logged in."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        current = get_session()
        if not current.is_logged_in or not current.user:
            error = ApiError.auth_required()
            return jsonify(error.envelope()), error.status
        return view(*args, **kwargs)
    return wrapper
