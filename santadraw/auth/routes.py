"""Routes for the auth blueprint."""

import json

from flask import (
    Response,
    current_app,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from santadraw.errors import AuthFailure

from . import bp
from .identity import IdentityAdapter


@bp.route("/login", methods=["GET"])
def login():
    """
    Renders the login page.
    Sign-in itself runs in the browser with the Firebase SDK, which then posts
    the ID token to session_login.
    """
    if g.get("user") is not None:
        return redirect(url_for("group.dashboard"))
    return render_template("login.html")


@bp.route("/session_login", methods=["POST"])
def session_login():
    """
    Called from the client after a successful Firebase sign-in.
    It receives the ID token, verifies it, and creates a server-side session.
    """
    payload = request.get_json(silent=True) or {}
    try:
        identity = IdentityAdapter(session).sign_in(payload.get("idToken"))
    except AuthFailure as e:
        current_app.logger.warning(f"Session login failed: {e.__cause__ or e}")
        return jsonify({"status": "error", "message": e.message}), e.status_code

    current_app.logger.info(f"User {identity.uid} signed in")
    return jsonify({"status": "success", "redirect": url_for("group.dashboard")})


@bp.route("/logout")
def logout():
    """
    The browser also signs out of Firebase; this clears the server session.
    """
    IdentityAdapter(session).sign_out()
    flash("You have been logged out.", "success")
    return redirect(url_for("auth.login"))


@bp.route("/firebase-config.js")
def firebase_config():
    api_key = current_app.config.get("FIREBASE_API_KEY")
    if not api_key:
        current_app.logger.error(
            "FIREBASE_API_KEY is not set. Frontend will not be able to sign in."
        )
        error_script = 'console.error("Firebase API key is missing.");'
        return Response(error_script, mimetype="application/javascript")

    config = {
        "apiKey": api_key,
        "authDomain": current_app.config.get("FIREBASE_AUTH_DOMAIN"),
        "projectId": current_app.config.get("FIREBASE_PROJECT_ID"),
    }
    js_config = f"const firebaseConfig = {json.dumps(config)};"
    return Response(js_config, mimetype="application/javascript")
