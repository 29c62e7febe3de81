from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlmodel import Session, select

from ebookstore.config import settings
from ebookstore.constants.log_types import LogAction, LogResource
from ebookstore.constants.order_status import OrderStatus
from ebookstore.database import get_session
from ebookstore.models.ebook import Ebook
from ebookstore.models.order import Order
from ebookstore.models.order_item import OrderItem
from ebookstore.services.audit_service import create_log
from ebookstore.utils.download_token import verify_download_token

router = APIRouter()


@router.get("/{token}")
def download_ebook(
    token: str,
    request: Request,
    session: Session = Depends(get_session),
):
    grant = verify_download_token(token)
    if grant is None:
        raise HTTPException(403, "Download link is invalid or expired")

    ebook = session.get(Ebook, grant["ebook_id"])
    if ebook is None or not ebook.file_key:
        raise HTTPException(404, "eBook not available")

    # a refunded purchase loses access even if the grant is still in date
    owned = session.exec(
        select(OrderItem.id)
        .join(Order, Order.id == OrderItem.order_id)
        .where(Order.user_id == grant["user_id"])
        .where(Order.status == OrderStatus.PAID)
        .where(OrderItem.ebook_id == ebook.id)
    ).first()
    if owned is None:
        raise HTTPException(403, "This e-book is not in your library")

    create_log(
        session,
        action=LogAction.VIEW,
        resource=LogResource.EBOOK,
        user_id=grant["user_id"],
        resource_id=ebook.id,
        description=f"Download {grant['format'].upper()} de {ebook.title}",
        request=request,
    )

    return RedirectResponse(
        url=f"{settings.storage_base_url}/{ebook.file_key}.{grant['format']}",
        status_code=307,
    )
