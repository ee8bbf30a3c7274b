"""Upload API routes for media_server"""

from flask import Blueprint, Response, jsonify, request

from media_server.config import get_settings
from media_server.errors import MediaServerError
from media_server.routes.auth import require_token
from media_server.services.upload_acceptor import UploadAcceptor

upload_bp = Blueprint("upload", __name__)
upload_bp.before_request(require_token)


@upload_bp.route("", methods=["POST"])
def upload_files() -> tuple[Response, int]:
    """Store uploaded media files in a folder.

    Accepts multipart/form-data with one or more ``files`` parts and a
    ``folderPath`` field. Each file is validated and written on its own;
    rejected files are listed under ``errors`` without failing the request.

    Returns:
        JSON with success, accepted files and per-file errors
    """
    uploaded = [f for f in request.files.getlist("files") if f.filename]
    if not uploaded:
        return jsonify({"error": "No files provided"}), 400

    settings = get_settings()
    acceptor = UploadAcceptor(settings.media_root, settings.max_upload_bytes)
    try:
        outcome = acceptor.accept(request.form.get("folderPath", ""), uploaded)
    except MediaServerError as e:
        return jsonify({"error": e.message}), e.status_code
    except OSError as e:
        return jsonify({"error": str(e)}), 500
    finally:
        for f in uploaded:
            f.close()

    return jsonify(outcome.to_dict()), 200
