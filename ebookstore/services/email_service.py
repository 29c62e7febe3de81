import base64
import logging
from typing import List, Optional, Tuple, Union

import requests
from email_validator import EmailNotValidError, validate_email

from ebookstore.config import settings
from ebookstore.utils.template import render_template

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"

# (filename, content, mime type)
Attachment = Tuple[str, bytes, str]


def _valid_recipients(to: Union[str, List[str], None]) -> List[str]:
    candidates = to if isinstance(to, list) else [to]
    valid = []
    for address in candidates:
        if not address:
            continue
        try:
            valid.append(validate_email(address, check_deliverability=False).normalized)
        except EmailNotValidError:
            logger.warning(f"Skipping invalid email address: {address}")
    return valid


def send_email(
    to: Union[str, List[str]],
    subject: str,
    html: str,
    attachments: Optional[List[Attachment]] = None,
) -> bool:
    """
    Send a transactional email through Brevo.

    Returns False instead of raising when nothing could be sent; callers
    treat email as best effort.
    """
    recipients = _valid_recipients(to)
    if not recipients:
        logger.warning(f"No valid recipients for '{subject}': {to}")
        return False

    if not settings.brevo_api_key:
        logger.warning(f"BREVO_API_KEY not configured, email '{subject}' not sent")
        return False

    payload = {
        "sender": {"email": settings.mail_from, "name": settings.store_name},
        "to": [{"email": address} for address in recipients],
        "subject": subject,
        "htmlContent": html,
    }
    if attachments:
        payload["attachment"] = [
            {"name": filename, "content": base64.b64encode(content).decode("utf-8")}
            for filename, content, _mime in attachments
        ]

    try:
        response = requests.post(
            BREVO_API_URL,
            json=payload,
            headers={"api-key": settings.brevo_api_key, "Content-Type": "application/json"},
            timeout=10,
        )
    except requests.RequestException:
        logger.exception(f"Brevo request failed for '{subject}'")
        return False

    if response.status_code >= 400:
        logger.error(f"Brevo rejected '{subject}' ({response.status_code}): {response.text}")
        return False

    logger.info(f"Email '{subject}' sent to {recipients}")
    return True


def send_delivery_email(order, download_links: list[dict], mailer=send_email) -> bool:
    """Email the buyer every download grant of a paid order."""
    recipient = order.customer_email or (order.user.email if order.user else None)
    if not recipient:
        logger.warning(f"No recipient for delivery email of order {order.id}")
        return False

    html = render_template(
        "user_emails/delivery.html",
        customer_name=order.customer_name or (order.user.name if order.user else None) or "Leitor",
        order_id=order.short_id,
        items=download_links,
    )
    return mailer(
        to=recipient,
        subject=f"Seus e-books estão prontos! Pedido #{order.short_id}",
        html=html,
    )


def send_welcome_email(user, coupon_code: Optional[str], mailer=send_email) -> bool:
    html = render_template(
        "user_emails/welcome.html",
        name=user.name,
        coupon_code=coupon_code,
    )
    return mailer(
        to=user.email,
        subject=f"Bem-vindo à {settings.store_name}!",
        html=html,
    )


def send_password_reset_email(user, reset_url: str, mailer=send_email) -> bool:
    html = render_template(
        "user_emails/password_reset.html",
        name=user.name,
        reset_url=reset_url,
    )
    return mailer(to=user.email, subject="Redefinir sua senha", html=html)


def get_mailer():
    return send_email
