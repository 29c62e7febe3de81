from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ebookstore.config import settings
from ebookstore.database import get_session

router = APIRouter()


@router.get("/check")
def health_check(session: Session = Depends(get_session)):
    try:
        session.exec(select(1)).one()
        db_status = "ok"
    except SQLAlchemyError:
        db_status = "failed"

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "service": settings.store_name,
        "env": settings.env,
        "database": db_status,
        "timestamp": datetime.utcnow().isoformat(),
    }
