from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from app.pmms.audit import record_event
from app.pmms.db import db_session
from app.pmms.modules.disciplinary.service import query_cases
from app.pmms.modules.members.service import query_members
from app.pmms.modules.reports.exports import (
    CONTENT_TYPES,
    DATE_RANGES,
    EXPORT_FORMATS,
    REPORTS,
    build_dataset,
    export_filename,
    get_report,
    render,
)
from app.pmms.rbac import require_permission, user_has_permission
from app.pmms.utils import current_user

bp = Blueprint("reports", __name__)


@bp.get("/reports")
@require_permission("generate_reports")
def reports_list():
    return jsonify(
        {
            "reports": [{"id": r.report_id, "title": r.title} for r in REPORTS.values()],
            "formats": list(EXPORT_FORMATS),
            "date_ranges": list(DATE_RANGES),
        }
    )


@bp.get("/reports/<report_id>/export")
@require_permission("export_data")
def reports_export(report_id: str):
    s = db_session()
    user = current_user()
    report = get_report(report_id)
    fmt = (request.args.get("format") or "csv").strip().lower()
    date_range = (request.args.get("date_range") or "all").strip()

    members = query_members(s, user).all() if report_id != "disciplinary-overview" else []
    cases = []
    if report_id == "disciplinary-overview" and user_has_permission(user, "manage_disciplinary"):
        cases = query_cases(s, user).all()

    ds = build_dataset(report.report_id, members, cases, date_range=date_range)
    body = render(ds, fmt)

    record_event(
        s,
        actor=user,
        action="report.export",
        entity_type="Report",
        entity_id=report.report_id,
        metadata={"format": fmt, "date_range": date_range, "records": len(ds.records)},
    )
    s.commit()

    return Response(
        body,
        mimetype=CONTENT_TYPES[fmt].split(";")[0],
        headers={"Content-Disposition": f'attachment; filename="{export_filename(report.report_id, fmt)}"'},
    )
