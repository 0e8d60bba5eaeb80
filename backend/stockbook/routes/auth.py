# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..models.auth import ROLE_STAFF
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth
from ..http_errors import HANDLED_ERRORS, error_response
from stockbook.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, message: str) -> dict:
    session, token = session_service.create_session(user.id)
    return {
        "user": user.to_dict(),
        "token": token,
        "expires_at": to_utc_z(session.expires_at),
        "message": message,
    }


@auth_bp.post("/signup")
def signup_route():
    """
    Self-service registration. Always creates a STAFF account;
    elevated roles are granted through `flask users create`.

    Body: {"email", "password", "first_name", "last_name"}
    """
    try:
        data = request.get_json(silent=True) or {}
        role = data.get("role") or ROLE_STAFF
        if role != ROLE_STAFF:
            return jsonify({"error": "Only STAFF accounts can self-register"}), 403

        user = auth_service.create_user(
            data.get("email"),
            data.get("password"),
            data.get("first_name"),
            data.get("last_name"),
        )

        current_app.logger.info("User %s registered", user.id)
        return jsonify(_session_payload(user, "User registered successfully")), 201

    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email/password and create a session token.

    The token goes in `Authorization: Bearer <token>` on protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        current_app.logger.info("User %s logged in", user.id)
        return jsonify(_session_payload(user, "Login successful")), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.patch("/update-password")
@require_auth
def update_password_route():
    """
    Body: {"current_password", "new_password"}

    Revokes every session of the user, then returns a fresh token.
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.change_password(
            g.current_user, data.get("current_password"), data.get("new_password")
        )
        revoked = session_service.revoke_all_user_sessions(user.id)

        current_app.logger.info("User %s changed password; %d session(s) revoked", user.id, revoked)
        return jsonify(_session_payload(user, "Password updated successfully")), 200

    except HANDLED_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update password")
        return jsonify({"error": "Internal server error"}), 500
