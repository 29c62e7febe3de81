from datetime import datetime
from typing import List, Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON

from ebookstore.constants.log_types import LogAction, LogResource


class ActivityLog(SQLModel, table=True):
    __tablename__ = "activity_log"

    id: Optional[int] = Field(default=None, primary_key=True)

    # no user for system-level events (webhooks, unattributed errors)
    user_id: Optional[int] = Field(default=None, index=True)
    action: LogAction = Field(index=True)
    resource: LogResource = Field(index=True)
    resource_id: Optional[str] = None
    description: Optional[str] = None

    ip: Optional[str] = None
    user_agent: Optional[str] = None
    method: Optional[str] = None
    endpoint: Optional[str] = None
    status_code: Optional[int] = None

    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    changed_fields: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    error_message: Optional[str] = None
    duration: Optional[int] = None

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
