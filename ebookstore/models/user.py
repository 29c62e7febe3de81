from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from ebookstore.constants.roles import Role


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    password: Optional[str] = None
    cpf: Optional[str] = None
    role: Role = Field(default=Role.USER)
    referral_code: str = Field(index=True, unique=True)
    can_login: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
