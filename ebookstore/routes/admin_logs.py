import csv
import io
from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlmodel import Session, select

from ebookstore.constants.log_types import LogAction, LogResource
from ebookstore.database import get_session
from ebookstore.models.activity_log import ActivityLog
from ebookstore.models.user import User
from ebookstore.services.audit_service import create_log
from ebookstore.utils.pagination import paginate
from ebookstore.dependencies.admin import require_permission

router = APIRouter()

EXPORT_LIMIT = 10000

CSV_COLUMNS = [
    "id", "created_at", "user_id", "action", "resource", "resource_id",
    "description", "method", "endpoint", "status_code", "ip", "error_message",
]


def _filtered_logs(
    action: Optional[LogAction],
    resource: Optional[LogResource],
    user_id: Optional[int],
    start_date: Optional[date],
    end_date: Optional[date],
    search: Optional[str],
):
    query = select(ActivityLog)

    if action:
        query = query.where(ActivityLog.action == action)
    if resource:
        query = query.where(ActivityLog.resource == resource)
    if user_id:
        query = query.where(ActivityLog.user_id == user_id)
    if start_date:
        query = query.where(ActivityLog.created_at >= datetime.combine(start_date, time.min))
    if end_date:
        query = query.where(ActivityLog.created_at <= datetime.combine(end_date, time.max))
    if search:
        s = f"%{search}%"
        query = query.where(
            (ActivityLog.description.ilike(s)) |
            (ActivityLog.endpoint.ilike(s)) |
            (ActivityLog.resource_id.ilike(s))
        )

    return query.order_by(ActivityLog.created_at.desc())


@router.get("")
def list_logs(
    action: Optional[LogAction] = Query(None),
    resource: Optional[LogResource] = Query(None),
    user_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    session: Session = Depends(get_session),
    admin: User = Depends(require_permission("log", "view")),
):
    return paginate(
        session=session,
        query=_filtered_logs(action, resource, user_id, start_date, end_date, search),
        page=page,
        limit=limit,
    )


def _csv_value(value):
    if value is None:
        return ""
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@router.get("/export")
def export_logs(
    request: Request,
    action: Optional[LogAction] = Query(None),
    resource: Optional[LogResource] = Query(None),
    user_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    session: Session = Depends(get_session),
    admin: User = Depends(require_permission("log", "export")),
):
    logs = session.exec(
        _filtered_logs(action, resource, user_id, start_date, end_date, search).limit(EXPORT_LIMIT)
    ).all()

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for entry in logs:
        writer.writerow([_csv_value(getattr(entry, col)) for col in CSV_COLUMNS])
    buffer.seek(0)

    create_log(
        session,
        action=LogAction.EXPORT,
        resource=LogResource.LOG,
        user_id=admin.id,
        description=f"Exportou {len(logs)} registros de log",
        request=request,
    )

    filename = f"logs-{datetime.utcnow().strftime('%Y%m%d-%H%M%S')}.csv"
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
