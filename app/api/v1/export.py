"""
Data export API (Teacher/Admin)

Downloads student, group, skill, goal, survey and analytics data as CSV or
JSON. ``filters`` is a JSON object whose keys depend on the export type.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, ensure_class_scope, require_staff
from app.config import settings
from app.core.exceptions import ValidationError
from app.core.security import Role
from app.db.session import atomic, get_db
from app.services import data_export
from app.services.activity_log import log_activity

logger = structlog.get_logger(__name__)

router = APIRouter()

CONTENT_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json; charset=utf-8",
}


async def build_export(
    db: AsyncSession, caller: CurrentUser, export_type: str, filters: Dict[str, Any]
) -> Dict[str, Any]:
    """JSON document and CSV rows for one export type."""
    owner_id = None if caller.role == Role.ADMIN else caller.id

    if export_type == "comprehensive":
        sections = {}
        for name in ("students", "groups", "analytics"):
            section_filters = filters.get(name) or {}
            if not isinstance(section_filters, dict):
                raise ValidationError(message="Invalid filters format")
            sections[name] = (await build_export(db, caller, name, section_filters))["document"]
        sections["metadata"] = {
            "export_type": "comprehensive",
            "export_date": sections["students"]["export_date"],
            "exported_by": caller.email,
            "total_students": sections["students"]["total_records"],
            "total_groups": sections["groups"]["total_records"],
            "app_version": settings.APP_VERSION,
        }
        summary = [
            {"section": "students", "total_records": sections["students"]["total_records"]},
            {"section": "groups", "total_records": sections["groups"]["total_records"]},
            {"section": "skills", "total_records": len(sections["analytics"]["data"]["top_skills"])},
            {"section": "goals", "total_records": len(sections["analytics"]["data"]["goals_breakdown"])},
        ]
        return {"document": sections, "rows": summary, "columns": data_export.COMPREHENSIVE_COLUMNS}

    await ensure_class_scope(db, caller, data_export.class_filter(filters))

    if export_type == "analytics":
        report = await data_export.analytics_report(db, filters)
        return {
            "document": data_export.export_document(export_type, report, filters),
            "rows": data_export.flatten_analytics(report),
            "columns": data_export.ANALYTICS_COLUMNS,
        }

    if export_type == "students":
        rows, columns = await data_export.student_rows(db, filters), data_export.STUDENT_COLUMNS
    elif export_type == "groups":
        rows, columns = await data_export.group_rows(db, filters), data_export.GROUP_COLUMNS
    elif export_type == "skills":
        rows, columns = await data_export.skill_rows(db, filters), data_export.SKILL_COLUMNS
    elif export_type == "goals":
        rows, columns = await data_export.goal_rows(db, filters), data_export.GOAL_COLUMNS
    else:
        rows, columns = await data_export.survey_rows(db, owner_id, filters), data_export.SURVEY_COLUMNS
    return {
        "document": data_export.export_document(export_type, rows, filters),
        "rows": rows,
        "columns": columns,
    }


@router.get("")
async def export_data(
    request: Request,
    export_type: str = Query(
        ..., alias="type", description="students, groups, analytics, skills, goals, surveys or comprehensive"
    ),
    fmt: str = Query("csv", alias="format", description="csv or json"),
    filters: Optional[str] = Query(None, description="JSON object of filters"),
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Download data as a CSV or JSON attachment

    **RBAC**: Teacher, Admin

    Teachers may only filter by ``class_id`` on classes they own.
    """
    if export_type not in data_export.EXPORT_TYPES:
        raise ValidationError(message="Invalid export type")
    if fmt not in data_export.EXPORT_FORMATS:
        raise ValidationError(message="Invalid export format")
    parsed = data_export.parse_filters(filters)

    export = await build_export(db, caller, export_type, parsed)
    if fmt == "json":
        body = data_export.to_json(export["document"])
    else:
        body = data_export.to_csv(export["rows"], export["columns"])

    async with atomic(db):
        log_activity(db, caller.id, "data_export", resource_type=export_type,
                     details={"format": fmt, "filters": parsed, "records": len(export["rows"])},
                     request=request)
    logger.info("data_exported", export_type=export_type, format=fmt, user_id=str(caller.id))

    filename = data_export.export_filename(export_type, fmt)
    return StreamingResponse(
        iter([body]),
        media_type=CONTENT_TYPES[fmt],
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )
