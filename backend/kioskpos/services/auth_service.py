# Overview: Service-layer operations for sign-up and sign-in; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every row in the system is owned by a profile, and the profile's role
decides which dashboard and which rows a caller gets. Sign-up creates the
credential and the profile in one step.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- 6 to 72 characters (72 is bcrypt's input limit)
- Exactly one manager system-wide, enforced by a partial unique index
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Profile, ROLE_MANAGER, ROLE_KIOSK, ROLES
from ..validation import ValidationError, ConflictError, require_text, require_choice, validate_email
from .realtime_service import record_change, INSERT
from kioskpos.time_utils import utcnow


MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 72

MANAGER_EXISTS_MESSAGE = "A factory manager already exists. Only one manager allowed."


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet length requirements."""
    pass


def validate_password(password) -> None:
    if not isinstance(password, str) or not password:
        raise PasswordValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be less than {MAX_PASSWORD_LENGTH} characters")


def hash_password(password: str) -> str:
    """Hash password using bcrypt (BCRYPT_ROUNDS, default 12). Validates length first."""
    validate_password(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes simply fail."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def manager_exists() -> bool:
    return db.session.query(Profile.id).filter_by(role=ROLE_MANAGER).first() is not None


def sign_up(
    *,
    name: str,
    email: str,
    password: str,
    role: str,
    kiosk_name: str | None = None,
) -> Profile:
    """
    Create an account and its profile.

    Raises:
        ValidationError: bad field values
        ConflictError: email taken, or a manager already exists
    """
    name = require_text(name, "name", min_length=2, max_length=100)
    email = validate_email(email)
    role = require_choice(role, "role", ROLES)
    if role == ROLE_KIOSK:
        kiosk_name = require_text(kiosk_name, "kiosk_name", max_length=100)
    else:
        kiosk_name = None
    password_hash = hash_password(password)

    if role == ROLE_MANAGER and manager_exists():
        raise ConflictError(MANAGER_EXISTS_MESSAGE)
    if db.session.query(Profile.id).filter_by(email=email).first() is not None:
        raise ConflictError("An account with this email already exists")

    profile = Profile(
        email=email,
        name=name,
        role=role,
        kiosk_name=kiosk_name,
        password_hash=password_hash,
    )
    db.session.add(profile)
    try:
        db.session.flush()
    except IntegrityError:
        # Lost a race against a concurrent sign-up
        db.session.rollback()
        if role == ROLE_MANAGER and manager_exists():
            raise ConflictError(MANAGER_EXISTS_MESSAGE)
        raise ConflictError("An account with this email already exists")

    record_change(db.session, "profiles", INSERT, row_id=profile.id, kiosk_id=profile.id if role == ROLE_KIOSK else None)
    db.session.commit()
    return profile


def authenticate(email: str, password: str) -> Profile | None:
    """
    Check credentials. Returns the Profile, or None when the email is unknown
    or the password does not match. Updates last_login_at on success.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None
    profile = db.session.query(Profile).filter_by(email=email.strip().lower()).first()
    if not profile:
        return None

    if verify_password(password, profile.password_hash):
        profile.last_login_at = utcnow()
        db.session.commit()
        return profile

    return None


def list_kiosks() -> list[Profile]:
    return (
        db.session.query(Profile)
        .filter_by(role=ROLE_KIOSK)
        .order_by(Profile.kiosk_name.asc())
        .all()
    )
