# Overview: Row visibility rules; kiosks see their own rows, the manager sees all.

"""
Row visibility.

SECURITY INVARIANTS:
1. Every authenticated request has g.current_user set (see decorators.py)
2. A kiosk may only read or write rows whose kiosk_id is its own id
3. The manager may read every row and write any kiosk's rows
4. Rows outside the caller's scope behave exactly like missing rows (404),
   so their existence is never revealed

USAGE:
    query = kiosk_scope(db.session.query(Order), Order)
    kiosk = resolve_kiosk(data.get("kiosk_id"))
"""

from flask import g

from ..extensions import db
from ..models import Profile, ROLE_KIOSK
from ..validation import ValidationError


class AccessError(Exception):
    """Raised when the target row or kiosk is outside the caller's scope."""
    pass


def current_profile() -> Profile:
    profile = getattr(g, "current_user", None)
    if profile is None:
        raise AccessError("No authenticated profile")
    return profile


def kiosk_scope(query, model, kiosk_id: str | None = None):
    """
    Filter a query on a kiosk-owned model to the caller's visibility.

    kiosk_id narrows the manager's view to one kiosk; for a kiosk caller a
    foreign kiosk_id yields an empty result.
    """
    profile = current_profile()
    if not profile.is_manager:
        query = query.filter(model.kiosk_id == profile.id)
    if kiosk_id:
        query = query.filter(model.kiosk_id == kiosk_id)
    return query


def get_scoped(model, row_id: str):
    """Fetch one kiosk-owned row by id within the caller's scope, or raise AccessError."""
    row = kiosk_scope(db.session.query(model), model).filter(model.id == row_id).first()
    if row is None:
        raise AccessError(f"{model.__name__} not found")
    return row


def resolve_kiosk(kiosk_id: str | None) -> Profile:
    """
    Resolve the kiosk a write targets.

    Kiosk callers always target themselves (a foreign kiosk_id is denied).
    The manager must name an existing kiosk.
    """
    profile = current_profile()
    if not profile.is_manager:
        if kiosk_id and kiosk_id != profile.id:
            raise AccessError("Kiosk not found")
        return profile

    if not kiosk_id:
        raise ValidationError("kiosk_id is required")
    kiosk = db.session.query(Profile).filter_by(id=kiosk_id, role=ROLE_KIOSK).first()
    if kiosk is None:
        raise AccessError("Kiosk not found")
    return kiosk
