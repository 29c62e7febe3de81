from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlmodel import Session, select

from ebookstore.constants.log_types import LogAction, LogResource
from ebookstore.database import get_session
from ebookstore.models.notifications import Notification
from ebookstore.models.order import Order
from ebookstore.models.referral import Referral
from ebookstore.models.user import User
from ebookstore.schemas.orders_schemas import OrderOut
from ebookstore.services.audit_service import create_log
from ebookstore.utils.token import get_current_user

router = APIRouter()


@router.get("/me/data-export")
def export_my_data(
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Everything stored about the current user, as a downloadable JSON file.
    The password hash is never included.
    """
    orders = session.exec(
        select(Order)
        .where(Order.user_id == current_user.id)
        .order_by(Order.created_at.desc())
    ).all()
    notifications = session.exec(
        select(Notification)
        .where(Notification.user_id == current_user.id)
        .order_by(Notification.created_at.desc())
    ).all()
    referrals = session.exec(
        select(Referral).where(Referral.referrer_id == current_user.id)
    ).all()

    data = {
        "user": current_user.model_dump(exclude={"password"}),
        "orders": [OrderOut.from_order(o) for o in orders],
        "notifications": notifications,
        "referrals": [
            {"referred_id": r.referred_id, "status": r.status, "created_at": r.created_at}
            for r in referrals
        ],
    }

    create_log(
        session,
        action=LogAction.EXPORT,
        resource=LogResource.USER,
        user_id=current_user.id,
        resource_id=current_user.id,
        description="Exportação de dados pessoais",
        request=request,
    )

    return JSONResponse(
        content=jsonable_encoder(data),
        headers={"Content-Disposition": 'attachment; filename="meus-dados.json"'},
    )
