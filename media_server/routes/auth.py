"""Shared-secret authentication for media_server"""

import hmac

from flask import Blueprint, Response, jsonify, request

from media_server.config import get_settings
from media_server.errors import AuthenticationError
from media_server.services.log_service import get_log_service

auth_bp = Blueprint("auth", __name__)


def _matches(candidate: str) -> bool:
    expected = get_settings().auth_code
    return bool(expected) and hmac.compare_digest(candidate.encode(), expected.encode())


def require_token() -> tuple[Response, int] | None:
    """``before_request`` guard: reject requests without ``Bearer <code>``."""
    if request.method == "OPTIONS":  # CORS preflight carries no credentials
        return None
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not _matches(token):
        err = AuthenticationError()
        return jsonify({"error": err.message}), err.status_code
    return None


@auth_bp.route("", methods=["POST"])
def login() -> tuple[Response, int]:
    """Exchange the access code for a bearer token.

    Request body:
        code: The shared access code

    Returns:
        JSON with success and token, or 401
    """
    data = request.get_json(silent=True) or {}
    code = str(data.get("code", ""))
    log = get_log_service()

    if not _matches(code):
        log.warning("auth", "login_failed", "Rejected access code", {"remote": request.remote_addr})
        return jsonify({"error": "Invalid code"}), 401

    log.info("auth", "login_succeeded", "Access code accepted", {"remote": request.remote_addr})
    return jsonify({"success": True, "token": get_settings().auth_code}), 200
