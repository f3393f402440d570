# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/kioskpos/routes/auth.py
"""
Authentication API routes

Self sign-up is open for both roles; the manager role can be claimed once.
Every successful sign-up or sign-in returns a bearer token and the
dashboard route for the profile's role.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, require_role
from ..models import ROLE_MANAGER
from ..validation import ValidationError, ConflictError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
kiosks_bp = Blueprint("kiosks", __name__, url_prefix="/api/kiosks")


def _session_response(profile, status: int):
    session, token = session_service.create_session(
        profile_id=profile.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "profile": profile.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "dashboard": profile.dashboard,
    }), status


@auth_bp.post("/signup")
def signup_route():
    """
    Create an account.

    Body: {name, email, password, role, kiosk_name?}
    409 when the email is taken or a manager already exists.
    """
    data = request.get_json(silent=True) or {}

    try:
        profile = auth_service.sign_up(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role"),
            kiosk_name=data.get("kiosk_name"),
        )
        return _session_response(profile, 201)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to sign up")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        profile = auth_service.authenticate(email, password)
        if not profile:
            return jsonify({"error": "Invalid credentials"}), 401

        return _session_response(profile, 200)

    except Exception:
        current_app.logger.exception("Failed to login")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    profile = g.current_user
    return jsonify({"profile": profile.to_dict(), "dashboard": profile.dashboard}), 200


@kiosks_bp.get("")
@require_auth
@require_role(ROLE_MANAGER)
def list_kiosks_route():
    kiosks = auth_service.list_kiosks()
    return jsonify({"kiosks": [k.to_dict() for k in kiosks]}), 200
