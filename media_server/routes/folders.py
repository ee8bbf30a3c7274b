"""Folder browsing API routes for media_server"""

from flask import Blueprint, Response, jsonify, request

from media_server.config import get_settings
from media_server.errors import MediaServerError
from media_server.routes.auth import require_token
from media_server.services.folder_store import FolderStore

folders_bp = Blueprint("folders", __name__)
folders_bp.before_request(require_token)


@folders_bp.route("", methods=["GET"])
def list_folder() -> tuple[Response, int]:
    """List subfolders and media files of a folder.

    Query parameters:
        path: Folder path relative to the media root (default: root)

    Returns:
        JSON with folders, files and currentPath
    """
    store = FolderStore(get_settings().media_root)
    try:
        listing = store.list(request.args.get("path", ""))
    except MediaServerError as e:
        return jsonify({"error": e.message}), e.status_code
    except OSError as e:
        return jsonify({"error": str(e)}), 500
    return jsonify(listing.to_dict()), 200


@folders_bp.route("", methods=["POST"])
def create_folder() -> tuple[Response, int]:
    """Create a subfolder (idempotent).

    Request body:
        name: Name of the new folder
        parentPath: Parent folder path (default: root)

    Returns:
        JSON with success and the folder's relative path
    """
    if not request.is_json:
        return jsonify({"error": "JSON body required"}), 400

    data = request.get_json() or {}
    store = FolderStore(get_settings().media_root)
    try:
        path = store.create_folder(str(data.get("parentPath") or ""), str(data.get("name") or ""))
    except MediaServerError as e:
        return jsonify({"error": e.message}), e.status_code
    except OSError as e:
        return jsonify({"error": str(e)}), 500
    return jsonify({"success": True, "path": path}), 200
