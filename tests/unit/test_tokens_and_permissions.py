from datetime import timedelta

import pytest

from ebookstore.constants.roles import Role
from ebookstore.utils.download_token import (
    DOWNLOAD_FORMATS,
    build_download_links,
    generate_download_token,
    verify_download_token,
)
from ebookstore.utils.hash import hash_password, verify_password
from ebookstore.utils.permissions import can_manage_role, has_permission, is_staff
from ebookstore.utils.token import create_access_token


def test_download_grant_round_trip():
    token = generate_download_token(user_id=7, ebook_id=3, format="epub")
    assert verify_download_token(token) == {"user_id": 7, "ebook_id": 3, "format": "epub"}


def test_expired_or_foreign_tokens_are_rejected():
    expired = generate_download_token(
        user_id=1, ebook_id=1, format="pdf", expires_delta=timedelta(seconds=-5)
    )
    assert verify_download_token(expired) is None
    assert verify_download_token(create_access_token({"user_id": 1})) is None
    assert verify_download_token("not-a-token") is None


def test_unknown_format_is_refused():
    with pytest.raises(ValueError):
        generate_download_token(user_id=1, ebook_id=1, format="docx")


def test_build_download_links_covers_every_format():
    links = build_download_links(1, 2)
    assert [link["format"] for link in links] == list(DOWNLOAD_FORMATS)
    assert all(verify_download_token(link["token"])["ebook_id"] == 2 for link in links)


def test_permission_matrix():
    assert has_permission(Role.ADMIN, "log", "export")
    assert has_permission(Role.FINANCE, "order", "update")
    assert not has_permission(Role.SUPPORT, "order", "update")
    assert not has_permission(Role.MARKETING, "log", "view")
    assert not has_permission(Role.USER, "order", "view")
    assert not has_permission(None, "order", "view")


def test_staff_and_role_levels():
    assert not is_staff(Role.USER)
    assert is_staff(Role.INTERN)
    assert can_manage_role(Role.ADMIN, Role.EDITOR)
    assert not can_manage_role(Role.EDITOR, Role.ADMIN)


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret123", None)
