from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class NotificationType(str, Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="user.id", index=True)

    title: str
    message: str
    type: NotificationType = NotificationType.info
    link: Optional[str] = None
    read: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
