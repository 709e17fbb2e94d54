"""
Flask Document Archive Application

Main application module for the document archive: a gallery of
pre-converted document images, a per-document viewer, threaded comments,
likes and an analytics dashboard. Page visits are queued and drained into
permanent view records by a scheduled job.

Architecture:
- routes/: Blueprint modules (gallery, viewer, analytics, api)
- services/: Business logic (comments, stats, analytics, view tracking)
- utils/: Helpers shared by routes and services
- database.py: Data access layer; database_setup.py: schema
- manifest.py: The document list produced by the conversion tooling

Run with ``python -m doc_archive`` or under a WSGI server:
``gunicorn -w 4 -b 0.0.0.0:5000 doc_archive.app:app``
"""

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

# Import configuration FIRST (needed for logging setup)
from .config_manager import AppConfig, app_config

# Global flag to prevent duplicate logging setup
_logging_configured = False

APP_VERSION = '1.0.0'

def setup_logging(config: Optional[AppConfig] = None):
    """Configure logging with rotation based on app config."""
    global _logging_configured

    if _logging_configured:
        return logging.getLogger(__name__)

    config = config or app_config
    log_file_path = config.LOG_FILE_PATH
    if not os.path.isabs(log_file_path):
        # Relative paths are relative to this package
        log_file_path = os.path.join(os.path.dirname(__file__), log_file_path)

    os.makedirs(os.path.dirname(log_file_path), exist_ok=True)

    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    file_handler = RotatingFileHandler(
        log_file_path,
        maxBytes=config.LOG_MAX_BYTES,
        backupCount=config.LOG_BACKUP_COUNT
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    log_level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    # Clear any existing handlers to prevent duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Let werkzeug request logs flow through the root handlers
    werkzeug_logger = logging.getLogger('werkzeug')
    werkzeug_logger.propagate = True
    werkzeug_logger.setLevel(log_level)

    _logging_configured = True

    return logging.getLogger(__name__)

# Initialize logging FIRST, before importing modules that use logging
logger = setup_logging()
logger.info("Logging configuration initialized with rotation")

# Import all Blueprint modules (AFTER logging is configured)
from .routes import gallery, viewer, analytics, api
from .database import get_db_connection
from .database_setup import create_database
from .exceptions import ArchiveError, DocumentNotFoundError, ManifestError, ValidationError
from .manifest import Manifest
from .services.analytics_service import AnalyticsService
from .services.comment_service import CommentService
from .services.stats_service import StatsService
from .services.view_tracking import pending_view_count
from .utils.helpers import create_error_response

def create_app(config: Optional[AppConfig] = None, manifest: Optional[Manifest] = None):
    """
    Application factory pattern for creating Flask app.

    Args:
        config: Configuration to use. Defaults to the module-level app_config.
        manifest: Preloaded manifest. Defaults to reading config.MANIFEST_PATH.

    Returns:
        Flask: Configured Flask application instance
    """
    config = config or app_config
    app = Flask(__name__)

    app.config['SECRET_KEY'] = config.SECRET_KEY
    app.config['CRON_SECRET'] = config.CRON_SECRET
    app.config['GALLERY_PAGE_SIZE'] = config.GALLERY_PAGE_SIZE
    app.config['VIEWER_PAGE_WINDOW'] = config.VIEWER_PAGE_WINDOW
    app.config['STATIC_BUILD_COUNT'] = config.STATIC_BUILD_COUNT

    # Schema creation is idempotent, so every start can run it
    create_database(os.getenv("DATABASE_PATH") or config.DATABASE_PATH)

    app.manifest = manifest if manifest is not None else Manifest.load(config.MANIFEST_PATH)

    # Initialize services (singleton instances)
    app.comment_service = CommentService(
        cache_ttl=config.COMMENTS_CACHE_TTL,
        max_comment_length=config.MAX_COMMENT_LENGTH,
        max_username_length=config.MAX_USERNAME_LENGTH,
    )
    app.stats_service = StatsService(cache_ttl=config.STATS_CACHE_TTL)
    app.analytics_service = AnalyticsService(app.manifest)

    register_error_handlers(app)

    app.register_blueprint(gallery.bp)
    app.register_blueprint(viewer.bp)
    app.register_blueprint(analytics.bp)
    app.register_blueprint(api.bp)

    register_core_routes(app)

    logger.info(f"Flask application created with {len(app.manifest)} documents")
    return app

def register_core_routes(app):
    """
    Register core application routes that don't belong to specific blueprints.

    Args:
        app: Flask application instance
    """

    @app.route("/health")
    def health_check():
        """Health check endpoint for monitoring."""
        health_status = {
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'version': APP_VERSION,
            'components': {
                'database': 'up',
                'manifest': 'up' if len(app.manifest) else 'empty',
            },
            'documents': len(app.manifest),
            'queued_views': None,
        }

        try:
            conn = get_db_connection()
            try:
                conn.execute("SELECT 1")
            finally:
                conn.close()
            health_status['queued_views'] = pending_view_count()
        except Exception as e:
            logger.warning(f"Health check database probe failed: {e}")
            health_status['components']['database'] = 'down'
            health_status['status'] = 'degraded'

        return jsonify(health_status), 200 if health_status['status'] == 'healthy' else 503

def register_error_handlers(app):
    """
    Register error handlers for common HTTP errors and application exceptions.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify(create_error_response("Not found", 404)), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify(create_error_response("Method not allowed", 405)), 405

    @app.errorhandler(DocumentNotFoundError)
    def handle_document_not_found(error):
        return jsonify(create_error_response(error.message, 404)), 404

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return jsonify(create_error_response(error.message, 400)), 400

    @app.errorhandler(ManifestError)
    def handle_manifest_error(error):
        logger.error(f"Manifest error: {error.message} {error.details or ''}".rstrip())
        return jsonify(create_error_response(error.message, 500)), 500

    @app.errorhandler(ArchiveError)
    def handle_archive_error(error):
        logger.error(f"Archive error: {error.message}")
        return jsonify(create_error_response(error.message, 500)), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return jsonify(create_error_response(error.description or error.name, error.code)), error.code
        logger.error(f"Unexpected error: {error}", exc_info=True)
        return jsonify(create_error_response("An unexpected error occurred", 500)), 500

# Tests and WSGI servers import `doc_archive.app.app`
app = create_app()

if __name__ == '__main__':
    try:
        logger.info(f"Starting Flask development server on {app_config.HOST}:{app_config.PORT} (debug={app_config.DEBUG})")
        app.run(
            host=app_config.HOST,
            port=app_config.PORT,
            debug=app_config.DEBUG,
            threaded=True
        )
    except Exception as e:
        logger.error(f"Failed to start application: {e}")
        sys.exit(1)
