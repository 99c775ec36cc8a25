# certanchor/app.py

import os
import logging
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, NotFound

from certanchor.config import config
from certanchor.exceptions import CertAnchorError
from certanchor.models import db
from certanchor.seed import seed_command
from certanchor.cli import stamp_command, scan_command
from certanchor.routes.verify import verify_bp
from certanchor.routes.issue import issue_bp
from certanchor.services import chain_service, pdf_service


def create_app(config_name=None):
    if config_name is None:
        config_name = os.getenv('FLASK_CONFIG', 'default')

    PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
    INSTANCE_FOLDER_PATH = os.path.join(PROJECT_ROOT, 'instance')

    app = Flask(__name__, instance_path=INSTANCE_FOLDER_PATH)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    db.init_app(app)
    CORS(app)

    pdf_service.init_renderer(app.config.get('MAX_RENDER_PIXELS'))
    chain_service.init_app(app)

    app.register_blueprint(verify_bp)
    app.register_blueprint(issue_bp)

    if not app.debug and not app.testing:
        log_dir = os.path.join(PROJECT_ROOT, 'logs')
        if not os.path.exists(log_dir):
            os.mkdir(log_dir)
        file_handler = RotatingFileHandler(os.path.join(log_dir, 'certanchor.log'), maxBytes=10240, backupCount=10)
        file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'))
        file_handler.setLevel(logging.INFO)
        # Attach to the package logger so service modules and app.logger share it.
        package_logger = logging.getLogger('certanchor')
        package_logger.addHandler(file_handler)
        package_logger.setLevel(logging.INFO)
        app.logger.info('CertAnchor Application Startup')

    @app.errorhandler(CertAnchorError)
    def handle_document_error(e):
        app.logger.warning(f"Rejected request: {e}")
        return jsonify(status="error", error=type(e).__name__, message=str(e)), 400

    @app.errorhandler(NotFound)
    def handle_not_found(e):
        return jsonify(error="Not Found", message="The requested resource was not found."), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify(error=e.name, message=e.description), e.code

    @app.errorhandler(Exception)
    def handle_generic_error(e):
        app.logger.exception(f"An unhandled exception occurred: {e}")
        return jsonify(error="Internal Server Error", message="An unexpected error occurred."), 500

    app.cli.add_command(seed_command)
    app.cli.add_command(stamp_command)
    app.cli.add_command(scan_command)

    @app.route("/")
    def index():
        return "✅ CertAnchor - Verification Service is Running"

    return app
