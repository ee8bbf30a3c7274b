"""File deletion API routes for media_server"""

from typing import Any

from flask import Blueprint, Response, jsonify, request

from media_server.config import get_settings
from media_server.errors import MediaServerError
from media_server.routes.auth import require_token
from media_server.services.deletion_service import DeletionService

files_bp = Blueprint("files", __name__)
files_bp.before_request(require_token)


def _json_body() -> dict[str, Any] | None:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


@files_bp.route("", methods=["DELETE"])
def delete_file() -> tuple[Response, int]:
    """Delete a single file.

    Request body:
        filePath: File path relative to the media root
    """
    data = _json_body()
    if not data or not data.get("filePath"):
        return jsonify({"error": "filePath is required"}), 400

    service = DeletionService(get_settings().media_root)
    try:
        service.delete_one(str(data["filePath"]))
    except MediaServerError as e:
        return jsonify({"error": e.message}), e.status_code
    except OSError as e:
        return jsonify({"error": str(e)}), 500
    return jsonify({"success": True, "message": "File deleted successfully"}), 200


@files_bp.route("/bulk", methods=["DELETE"])
def delete_files() -> tuple[Response, int]:
    """Delete several files, reporting success per path.

    Request body:
        filePaths: List of file paths relative to the media root
    """
    data = _json_body()
    file_paths = data.get("filePaths") if data else None
    if not isinstance(file_paths, list):
        return jsonify({"error": "filePaths must be a list"}), 400

    service = DeletionService(get_settings().media_root)
    results = service.delete_many([str(p) for p in file_paths])
    return jsonify({"success": True, "results": [r.to_dict() for r in results]}), 200


@files_bp.route("/all", methods=["DELETE"])
def delete_all_files() -> tuple[Response, int]:
    """Delete every file directly inside a folder.

    Request body:
        folderPath: Folder path relative to the media root (default: root)
    """
    data = _json_body() or {}
    service = DeletionService(get_settings().media_root)
    try:
        results = service.delete_all(str(data.get("folderPath") or ""))
    except MediaServerError as e:
        return jsonify({"error": e.message}), e.status_code
    except OSError as e:
        return jsonify({"error": str(e)}), 500

    return jsonify(
        {
            "success": True,
            "results": [r.to_dict("name") for r in results],
            "deletedCount": sum(1 for r in results if r.success),
        }
    ), 200
