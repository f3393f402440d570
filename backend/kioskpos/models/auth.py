from __future__ import annotations

import uuid

from ..extensions import db
from kioskpos.time_utils import to_utc_z


ROLE_MANAGER = "manager"
ROLE_KIOSK = "kiosk"
ROLES = (ROLE_MANAGER, ROLE_KIOSK)


def new_id() -> str:
    return str(uuid.uuid4())


class Profile(db.Model):
    """
    Account identity and profile.

    Every account is either the single factory manager or a kiosk storefront.
    Kiosk accounts own their catalog, orders, clock logs and wastage rows;
    everything else keys visibility off this table.

    SINGLE MANAGER: the partial unique index below allows at most one row with
    role='manager'. The sign-up pre-check only exists to produce a friendly
    error; the index is what makes concurrent sign-ups safe.
    """
    __tablename__ = "profiles"
    __table_args__ = (
        db.Index(
            "uq_profiles_single_manager",
            "role",
            unique=True,
            sqlite_where=db.text("role = 'manager'"),
            postgresql_where=db.text("role = 'manager'"),
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(100), nullable=False)

    # Immutable after sign-up
    role = db.Column(db.String(16), nullable=False, index=True)
    kiosk_name = db.Column(db.String(100), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER

    @property
    def dashboard(self) -> str:
        return "/manager-dashboard" if self.is_manager else "/kiosk-dashboard"

    def __repr__(self) -> str:
        return f"<Profile id={self.id} role={self.role} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "kiosk_name": self.kiosk_name,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session tokens.

    Only the SHA-256 hash of the token is stored; the plaintext goes to the
    client once, at login.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    profile = db.relationship("Profile", backref=db.backref("sessions", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
