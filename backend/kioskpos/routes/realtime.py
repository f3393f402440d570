# Overview: Server-Sent Events stream of committed table changes.

"""
Realtime Routes

GET /api/realtime/stream?tables=orders,kiosk_inventory

Each SSE "change" event carries a de-duplicated batch of
{table, action, row_id, kiosk_id}; clients re-fetch the named tables.
Kiosk callers only receive changes to their own rows plus changes that no
single kiosk owns. The token may be passed as ?access_token= since
EventSource cannot set headers.
"""

import json

from flask import Blueprint, Response, request, jsonify, current_app, g, stream_with_context

from ..decorators import require_auth
from ..services import realtime_service


realtime_bp = Blueprint("realtime", __name__, url_prefix="/api/realtime")


def _format_event(name: str, payload: dict) -> str:
    return f"event: {name}\ndata: {json.dumps(payload)}\n\n"


@realtime_bp.get("/stream")
@require_auth
def stream_route():
    raw_tables = request.args.get("tables")
    tables = [t.strip() for t in raw_tables.split(",") if t.strip()] if raw_tables else None
    kiosk_id = None if g.current_user.is_manager else g.current_user.id

    try:
        subscription = realtime_service.subscribe(tables=tables, kiosk_id=kiosk_id)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    keepalive = current_app.config["REALTIME_KEEPALIVE_SECONDS"]

    def generate():
        with subscription:
            yield _format_event("ready", {"tables": sorted(subscription.tables) if subscription.tables else None})
            while True:
                batch = subscription.drain(timeout=keepalive)
                if not batch:
                    yield ": keep-alive\n\n"
                    continue
                tables_changed = sorted({change.table for change in batch})
                yield _format_event("change", {
                    "tables": tables_changed,
                    "changes": [change.to_dict() for change in batch],
                })

    response = Response(stream_with_context(generate()), mimetype="text/event-stream")
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response
