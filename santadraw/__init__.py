"""Initialize the Flask app and its extensions."""

import json
import logging
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .auth.identity import Identity
from .constants import GROUPS_COLLECTION, JOIN_CODE_MIN_LENGTH, SESSION_IDENTITY
from .extensions import csrf


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from the best available credentials."""
    cred = None
    project_id = os.environ.get("FIREBASE_PROJECT_ID")

    # First, try to load from environment variable (for production)
    cred_json = app.config.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id") or project_id
            cred = credentials.Certificate(cred_info)
        except ValueError as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    project_id = json.load(f).get("project_id") or project_id
                cred = credentials.Certificate(cred_path)
            except ValueError as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        options = {"projectId": project_id} if project_id else None
        try:
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, static_folder="static", static_url_path="/static")

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        FIREBASE_CREDENTIALS_JSON=os.environ.get("FIREBASE_CREDENTIALS_JSON"),
        FIREBASE_API_KEY=os.environ.get("FIREBASE_API_KEY"),
        FIREBASE_AUTH_DOMAIN=os.environ.get("FIREBASE_AUTH_DOMAIN"),
        FIREBASE_PROJECT_ID=os.environ.get("FIREBASE_PROJECT_ID"),
        GROUPS_COLLECTION=os.environ.get("GROUPS_COLLECTION") or GROUPS_COLLECTION,
        JOIN_CODE_MIN_LENGTH=int(
            os.environ.get("JOIN_CODE_MIN_LENGTH") or JOIN_CODE_MIN_LENGTH
        ),
        LOG_LEVEL=os.environ.get("LOG_LEVEL") or "INFO",
    )

    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    logging.getLogger("santadraw").setLevel(app.config["LOG_LEVEL"])

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    # Initialize extensions
    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import group as group_bp

    app.register_blueprint(group_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    # The index is the login page, which forwards signed-in users onward.
    app.add_url_rule("/", endpoint="auth.login")

    @app.before_request
    def load_logged_in_user():
        """Expose the session identity as g.user."""
        g.user = Identity.from_session(session.get(SESSION_IDENTITY))

    @app.route("/health")
    def health_check():
        """Perform a simple health check."""
        return "OK", 200

    @app.template_filter("timestamp")
    def format_timestamp(value):
        """Render a Firestore timestamp, or nothing when it is unset."""
        if not value or not hasattr(value, "strftime"):
            return ""
        return value.strftime("%b %d, %Y %I:%M %p")

    @app.context_processor
    def inject_version():
        """Injects the application version into the template context."""
        return dict(app_version=os.environ.get("APP_VERSION", "dev"))

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
