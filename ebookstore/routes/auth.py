import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ebookstore.config import settings
from ebookstore.constants.log_types import LogAction, LogResource
from ebookstore.database import get_session
from ebookstore.models.user import User
from ebookstore.schemas.user_schemas import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    Token,
    UserLogin,
    UserRegister,
    UserResponse,
)
from ebookstore.services.audit_service import create_log
from ebookstore.services.coupon_service import create_welcome_coupon
from ebookstore.services.email_service import get_mailer, send_password_reset_email, send_welcome_email
from ebookstore.services.referral_service import register_referral
from ebookstore.utils.hash import hash_password, verify_password
from ebookstore.utils.token import RESET_PASSWORD_ACTION, create_access_token, decode_access_token

logger = logging.getLogger(__name__)

RESET_TOKEN_TTL = timedelta(hours=1)
FORGOT_PASSWORD_MESSAGE = "If the email is registered, a reset link has been sent."

router = APIRouter()


def _new_referral_code(session: Session) -> str:
    while True:
        code = secrets.token_hex(4)
        if not session.exec(select(User.id).where(User.referral_code == code)).first():
            return code


@router.post("/register", response_model=UserResponse, status_code=201)
def register_user(
    payload: UserRegister,
    request: Request,
    session: Session = Depends(get_session),
    mailer=Depends(get_mailer),
):
    existing_user = session.exec(select(User).where(User.email == payload.email)).first()
    if existing_user:
        raise HTTPException(400, "Email already registered")

    user = User(
        name=payload.name,
        email=payload.email,
        password=hash_password(payload.password),
        cpf=payload.cpf,
        referral_code=_new_referral_code(session),
    )
    session.add(user)
    session.commit()
    session.refresh(user)

    # welcome coupon: 10% off, single use, 30 days
    coupon_code = None
    try:
        coupon_code = create_welcome_coupon(session, user).code
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.exception(f"Welcome coupon not created for user {user.id}")
        coupon_code = None

    if payload.ref:
        try:
            register_referral(session, user, payload.ref)
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.exception(f"Referral '{payload.ref}' not recorded for user {user.id}")

    if not send_welcome_email(user, coupon_code, mailer=mailer):
        logger.warning(f"Welcome email not sent to {user.email}")

    create_log(
        session,
        action=LogAction.CREATE,
        resource=LogResource.USER,
        user_id=user.id,
        resource_id=user.id,
        description=f"Cadastro de {user.email}",
        request=request,
    )

    return UserResponse(
        message="Registration successful.",
        user_id=user.id,
        email=user.email,
        referral_code=user.referral_code,
        welcome_coupon=coupon_code,
    )


@router.post("/login", response_model=Token)
def login(payload: UserLogin, request: Request, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == payload.email)).first()

    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(401, "Invalid email or password")

    if not user.can_login:
        raise HTTPException(403, "User account is disabled")

    create_log(
        session,
        action=LogAction.LOGIN,
        resource=LogResource.USER,
        user_id=user.id,
        resource_id=user.id,
        request=request,
    )

    token = create_access_token({"user_id": user.id})
    return Token(access_token=token, token_type="bearer")


def _password_fingerprint(user: User) -> str:
    # changes with every new hash, so a reset link works only once
    return (user.password or "")[-10:]


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    session: Session = Depends(get_session),
    mailer=Depends(get_mailer),
):
    user = session.exec(select(User).where(User.email == payload.email)).first()
    if not user or not user.can_login:
        return {"message": FORGOT_PASSWORD_MESSAGE}

    reset_token = create_access_token(
        {
            "user_id": user.id,
            "action": RESET_PASSWORD_ACTION,
            "pwd": _password_fingerprint(user),
        },
        expires_delta=RESET_TOKEN_TTL,
    )
    reset_url = f"{settings.app_url}/redefinir-senha?token={reset_token}"

    if not send_password_reset_email(user, reset_url, mailer=mailer):
        logger.warning(f"Password reset email not sent to {user.email}")

    create_log(
        session,
        action=LogAction.UPDATE,
        resource=LogResource.USER,
        user_id=user.id,
        resource_id=user.id,
        description="Pedido de redefinição de senha",
        request=request,
    )

    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password")
def reset_password(
    payload: ResetPasswordRequest,
    request: Request,
    session: Session = Depends(get_session),
):
    claims = decode_access_token(payload.token)
    if not claims or claims.get("action") != RESET_PASSWORD_ACTION or not claims.get("user_id"):
        raise HTTPException(400, "Invalid or expired token")

    user = session.get(User, int(claims["user_id"]))
    if not user or claims.get("pwd") != _password_fingerprint(user):
        raise HTTPException(400, "Invalid or expired token")

    user.password = hash_password(payload.new_password)
    session.add(user)
    session.commit()

    create_log(
        session,
        action=LogAction.UPDATE,
        resource=LogResource.USER,
        user_id=user.id,
        resource_id=user.id,
        description="Senha redefinida",
        request=request,
    )

    return {"message": "Password updated successfully"}
