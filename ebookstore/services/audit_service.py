import logging
import traceback
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ebookstore.constants.log_types import LogAction, LogResource
from ebookstore.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.headers.get("x-real-ip") or None


def create_log(
    session: Session,
    *,
    action: LogAction,
    resource: LogResource,
    user_id: Optional[int] = None,
    resource_id: Any = None,
    description: Optional[str] = None,
    metadata: Optional[dict] = None,
    changed_fields: Optional[list[str]] = None,
    error_message: Optional[str] = None,
    request: Optional[Request] = None,
    endpoint: Optional[str] = None,
    status_code: Optional[int] = None,
    duration: Optional[int] = None,
) -> Optional[ActivityLog]:
    """
    Fire-and-forget activity log writer.

    Uses its own session on the caller's engine so a failed audit insert
    never rolls back (or commits) the caller's unit of work. Failures are
    logged and swallowed.
    """
    ip = user_agent = method = None
    if request is not None:
        ip = _client_ip(request)
        user_agent = request.headers.get("user-agent")
        method = request.method
        endpoint = endpoint or request.url.path

    entry = ActivityLog(
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=str(resource_id) if resource_id is not None else None,
        description=description,
        ip=ip,
        user_agent=user_agent,
        method=method,
        endpoint=endpoint,
        status_code=status_code,
        meta=metadata,
        changed_fields=changed_fields or [],
        error_message=error_message,
        duration=duration,
    )

    try:
        with Session(session.get_bind()) as log_session:
            log_session.add(entry)
            log_session.commit()
            log_session.refresh(entry)
        return entry
    except SQLAlchemyError:
        logger.exception(f"Failed to write activity log: {action.value} {resource.value}")
        return None


def track_error(
    session: Session,
    error: BaseException,
    *,
    user_id: Optional[int] = None,
    context: Optional[dict] = None,
    request: Optional[Request] = None,
):
    """Record an unexpected failure as an ERROR/SYSTEM activity entry."""
    message = str(error) or error.__class__.__name__
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))

    logger.error(f"[Error Tracked] {message} {context or {}}")

    return create_log(
        session,
        action=LogAction.ERROR,
        resource=LogResource.SYSTEM,
        user_id=user_id,
        description=message,
        error_message=stack,
        metadata=context,
        request=request,
        status_code=500,
    )
