"""Request class that enforces the per-file size cap while the body is parsed."""

from typing import IO

from flask import Request, current_app

from media_server.services.upload_acceptor import CappedUploadStream


class MediaRequest(Request):
    """Flask request whose multipart file parts stop spooling at the upload cap.

    Without this, werkzeug writes every part to a temporary file in full
    before the route runs, so an oversized upload would still fill the disk.
    """

    def _get_file_stream(
        self,
        total_content_length: int | None,
        content_type: str | None,
        filename: str | None = None,
        content_length: int | None = None,
    ) -> IO[bytes]:
        limit = current_app.config["SETTINGS"].max_upload_bytes
        return CappedUploadStream(limit)  # type: ignore[return-value]
