from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class EbookStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class Ebook(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(index=True, unique=True)
    price: float
    status: EbookStatus = Field(default=EbookStatus.DRAFT, index=True)

    sales_count: int = Field(default=0)

    # object key prefix in storage, one file per format
    file_key: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
