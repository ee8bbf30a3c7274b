"""Static routes for media_server: stored media and the built client bundle."""

import os

from flask import Blueprint, Response, abort, send_from_directory

from media_server.config import get_settings

main_bp = Blueprint("main", __name__)

# Path to the production client build
CLIENT_DIST = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    "client",
    "build",
)


@main_bp.route("/media/<path:filename>")
def serve_media(filename: str) -> Response:
    """Serve a stored media file (send_from_directory refuses traversal)."""
    return send_from_directory(get_settings().media_root, filename)


@main_bp.route("/")
def serve_index() -> Response:
    """Serve the client's index.html when a build is present."""
    if not os.path.isfile(os.path.join(CLIENT_DIST, "index.html")):
        abort(404)
    return send_from_directory(CLIENT_DIST, "index.html")


@main_bp.route("/<path:path>")
def serve_client(path: str) -> Response:
    """Serve a client build asset, or index.html for client-side routes.

    Unknown ``api/`` paths stay 404 so API typos are not answered with HTML.
    """
    if path == "api" or path.startswith("api/"):
        abort(404)
    if os.path.isfile(os.path.join(CLIENT_DIST, path)):
        return send_from_directory(CLIENT_DIST, path)
    return serve_index()
