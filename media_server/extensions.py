"""HTTP-level protections for media_server: CORS, rate limiting, security headers."""

import logging

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import TooManyRequests

from media_server.config import Settings

logger = logging.getLogger(__name__)

# Added to every response unless a view already set them. Content-Security-Policy
# is left unset.
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Cross-Origin-Opener-Policy": "same-origin",
}


def init_extensions(app: Flask, settings: Settings) -> Limiter:
    """Attach CORS, the per-address rate limiter and security headers to ``app``.

    Returns:
        The app's Limiter, so callers can exempt blueprints or tighten routes
    """
    CORS(app)

    limiter = Limiter(
        get_remote_address,
        app=app,
        default_limits=[settings.rate_limit],
        storage_uri=settings.rate_limit_storage,
    )

    @app.errorhandler(429)
    def rate_limit_exceeded(e: TooManyRequests) -> tuple[Response, int]:
        logger.warning("Rate limit exceeded for %s on %s", request.remote_addr, request.path)
        return jsonify({"error": "Too many requests, please try again later"}), 429

    @app.after_request
    def add_security_headers(response: Response) -> Response:
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    return limiter
