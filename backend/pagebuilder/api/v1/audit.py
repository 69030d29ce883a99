# pagebuilder/api/v1/audit.py
from flask import request, jsonify
from pagebuilder.models.audit_log import AuditLog
from pagebuilder.normalizers.audit import normalize_audit_log
from sqlalchemy import or_, and_
from datetime import datetime
from . import v1_bp

FILTERABLE = ("action", "entity_type", "entity_id")


def _encode_cursor(log):
    return f"{log.created_at.isoformat()}|{log.id}"


def _decode_cursor(cursor):
    ts_str, last_id = cursor.split("|")
    return datetime.fromisoformat(ts_str), last_id


@v1_bp.route("/pages/<page_id>/audit", methods=["GET"])
def list_audit_logs(page_id):
    """Change history of a page, newest first, with cursor pagination."""
    limit = min(request.args.get("limit", 20, type=int), 100)

    query = AuditLog.query.filter(AuditLog.page_id == page_id)
    for column in FILTERABLE:
        if value := request.args.get(column):
            query = query.filter(getattr(AuditLog, column) == value)

    if cursor := request.args.get("cursor"):
        try:
            cursor_ts, last_id = _decode_cursor(cursor)
        except ValueError:
            return jsonify({"error": "Invalid cursor format"}), 400

        query = query.filter(
            or_(
                AuditLog.created_at < cursor_ts,
                and_(AuditLog.created_at == cursor_ts, AuditLog.id < last_id),
            )
        )

    # one extra row tells whether another page exists
    logs = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit + 1)
        .all()
    )
    has_more = len(logs) > limit
    logs = logs[:limit]

    return jsonify({
        "data": [normalize_audit_log(log) for log in logs],
        "meta": {
            "next_cursor": _encode_cursor(logs[-1]) if has_more else None,
            "has_more": has_more,
        }
    }), 200
