from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

from flask import Flask, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.constants import LOGOUT_COOKIE_SECONDS, SESSION_COOKIE_NAME
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, DomainError

logger = logging.getLogger(__name__)

CONTAINER_KEY = "bug_tracker"


def get_container():
    return current_app.extensions[CONTAINER_KEY]


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def base_url() -> str:
    return request.host_url.rstrip("/")


def _token_from_request() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header.split(" ", 1)[1].strip() or None
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if cookie and cookie != "none":
        return cookie
    return None


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _token_from_request()
        if not token:
            raise AuthenticationError("Not authorized to access this route")
        g.current_user = get_container().auth_service.resolve_session(token)
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    """Must be stacked under ``login_required``."""
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = g.current_user
            if user.role.value not in allowed:
                raise AuthorizationError(f"User role {user.role.value} is not authorized to access this route")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def optional_user():
    """Current user if the request carries a valid session, else None."""
    token = _token_from_request()
    if not token:
        return None
    try:
        return get_container().auth_service.resolve_session(token)
    except AuthenticationError:
        return None


def set_session_cookie(response, token: str):
    days = int(current_app.config.get("AUTH_COOKIE_DAYS", 30))
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        expires=datetime.now(timezone.utc) + timedelta(days=days),
        httponly=True,
        samesite="Lax",
        secure=bool(current_app.config.get("AUTH_COOKIE_SECURE", False)),
    )
    return response


def clear_session_cookie(response):
    response.set_cookie(
        SESSION_COOKIE_NAME,
        "none",
        expires=datetime.now(timezone.utc) + timedelta(seconds=LOGOUT_COOKIE_SECONDS),
        httponly=True,
        samesite="Lax",
        secure=bool(current_app.config.get("AUTH_COOKIE_SECURE", False)),
    )
    return response


def session_response(result, status: int = 200):
    """JSON body with the session token, plus the token as an HttpOnly cookie."""
    response = jsonify({"success": True, "token": result.token, "data": result.user.to_public_dict()})
    response.status_code = status
    return set_session_cookie(response, result.token)


def _error_body(status: int, code: str, message: str):
    return jsonify({"success": False, "status": status, "code": code, "message": message}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if e.status_code >= 500:
            logger.error("%s on %s %s: %s", type(e).__name__, request.method, request.path, e)
        return _error_body(e.status_code, e.code, str(e) or e.code)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return _error_body(e.code or 500, "http_error", e.description or e.name)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        message = str(e) if app.config.get("DEBUG") else "Internal Server Error"
        return _error_body(500, "server_error", message)
