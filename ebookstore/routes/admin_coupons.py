from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session, select

from ebookstore.constants.log_types import LogAction, LogResource
from ebookstore.database import get_session
from ebookstore.models.coupon import Coupon, normalize_coupon_code
from ebookstore.models.user import User
from ebookstore.schemas.coupon_schemas import CouponCreate, CouponUpdate
from ebookstore.services.audit_service import create_log
from ebookstore.services.coupon_service import get_coupon_by_code, validate_coupon_values
from ebookstore.utils.pagination import paginate
from ebookstore.dependencies.admin import require_permission

router = APIRouter()


@router.get("")
def list_coupons(
    active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    admin: User = Depends(require_permission("coupon", "view")),
):
    query = select(Coupon)
    if active is not None:
        query = query.where(Coupon.active == active)
    if search:
        query = query.where(Coupon.code.ilike(f"%{search}%"))

    return paginate(
        session=session,
        query=query.order_by(Coupon.created_at.desc()),
        page=page,
        limit=limit,
    )


@router.post("", status_code=201)
def create_coupon(
    data: CouponCreate,
    request: Request,
    session: Session = Depends(get_session),
    admin: User = Depends(require_permission("coupon", "create")),
):
    code = normalize_coupon_code(data.code)
    if get_coupon_by_code(session, code):
        raise HTTPException(400, "Coupon code already exists")

    try:
        validate_coupon_values(data.discount_type, data.discount_value)
    except ValueError as e:
        raise HTTPException(400, str(e))

    coupon = Coupon(**data.model_dump(exclude={"code"}), code=code)
    session.add(coupon)
    session.commit()
    session.refresh(coupon)

    create_log(
        session,
        action=LogAction.CREATE,
        resource=LogResource.COUPON,
        user_id=admin.id,
        resource_id=coupon.id,
        description=f"Cupom {coupon.code} criado",
        request=request,
    )
    return coupon


@router.patch("/{coupon_id}")
def update_coupon(
    coupon_id: int,
    data: CouponUpdate,
    request: Request,
    session: Session = Depends(get_session),
    admin: User = Depends(require_permission("coupon", "update")),
):
    coupon = session.get(Coupon, coupon_id)
    if not coupon:
        raise HTTPException(404, "Coupon not found")

    changes = data.model_dump(exclude_unset=True)

    if "discount_value" in changes:
        try:
            validate_coupon_values(coupon.discount_type, changes["discount_value"])
        except ValueError as e:
            raise HTTPException(400, str(e))

    for field, value in changes.items():
        setattr(coupon, field, value)

    session.add(coupon)
    session.commit()
    session.refresh(coupon)

    create_log(
        session,
        action=LogAction.UPDATE,
        resource=LogResource.COUPON,
        user_id=admin.id,
        resource_id=coupon.id,
        description=f"Cupom {coupon.code} atualizado",
        changed_fields=sorted(changes),
        request=request,
    )
    return coupon
