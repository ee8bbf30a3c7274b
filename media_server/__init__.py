"""Flask application factory for the personal media server."""

import os

from flask import Flask

from media_server.config import get_package_version, get_settings


def create_app() -> Flask:
    """Create and configure the Flask application."""
    from media_server.request import MediaRequest

    app = Flask(__name__)
    app.request_class = MediaRequest

    settings = get_settings()
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    # Whole-request ceiling; the per-file cap is enforced per part by MediaRequest
    app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024 * 1024
    app.config["SETTINGS"] = settings

    settings.media_root.mkdir(parents=True, exist_ok=True)

    from media_server.extensions import init_extensions

    limiter = init_extensions(app, settings)

    from media_server.routes.auth import auth_bp
    from media_server.routes.files import files_bp
    from media_server.routes.folders import folders_bp
    from media_server.routes.logs import logs_bp
    from media_server.routes.main import main_bp
    from media_server.routes.upload import upload_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(folders_bp, url_prefix="/api/folders")
    app.register_blueprint(upload_bp, url_prefix="/api/upload")
    app.register_blueprint(files_bp, url_prefix="/api/files")
    app.register_blueprint(logs_bp, url_prefix="/api/logs")

    # Stored media and the client bundle are not rate limited
    limiter.exempt(main_bp)

    from media_server.services.log_service import get_log_service

    get_log_service().info(
        "app",
        "app_started",
        f"{settings.display_name} started (v{get_package_version()})",
        {"version": get_package_version(), "media_root": str(settings.media_root)},
    )

    return app
