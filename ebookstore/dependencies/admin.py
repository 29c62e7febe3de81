from fastapi import Depends, HTTPException

from ebookstore.models.user import User
from ebookstore.utils.permissions import has_permission
from ebookstore.utils.token import get_current_user


def require_permission(resource: str, action: str):
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not has_permission(current_user.role, resource, action):
            raise HTTPException(status_code=403, detail="Forbidden")
        return current_user

    return dependency
