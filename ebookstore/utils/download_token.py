"""
Download grants.

A grant is a signed JWT scoped to one (user, ebook, format) triple. Nothing
is stored: verification is the signature plus the ``exp`` claim.
"""
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError

from ebookstore.config import settings

DOWNLOAD_FORMATS = ("pdf", "epub", "mobi")


def generate_download_token(
    *,
    user_id: int,
    ebook_id: int,
    format: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    if format not in DOWNLOAD_FORMATS:
        raise ValueError(f"Unsupported format: {format}")

    expire = datetime.utcnow() + (
        expires_delta or timedelta(hours=settings.download_token_expire_hours)
    )
    claims = {
        "typ": "download",
        "user_id": user_id,
        "ebook_id": ebook_id,
        "format": format,
        "exp": expire,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def verify_download_token(token: str) -> Optional[dict]:
    """Return the grant claims, or None when forged, expired or not a grant."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
    except JWTError:
        return None

    if payload.get("typ") != "download":
        return None
    if payload.get("format") not in DOWNLOAD_FORMATS:
        return None

    return {
        "user_id": payload["user_id"],
        "ebook_id": payload["ebook_id"],
        "format": payload["format"],
    }


def build_download_links(user_id: int, ebook_id: int) -> list[dict]:
    return [
        {
            "format": fmt,
            "token": generate_download_token(user_id=user_id, ebook_id=ebook_id, format=fmt),
        }
        for fmt in DOWNLOAD_FORMATS
    ]
