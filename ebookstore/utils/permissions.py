from ebookstore.constants.roles import Role, ROLE_LEVELS, STAFF_ROLES

VIEW, CREATE, UPDATE, DELETE, EXPORT = "view", "create", "update", "delete", "export"

# role -> resource -> allowed actions (only the resources this service serves)
PERMISSION_MATRIX = {
    Role.SUPER_ADMIN: {
        "order": [VIEW, UPDATE],
        "coupon": [VIEW, CREATE, UPDATE, DELETE],
        "log": [VIEW, EXPORT],
    },
    Role.ADMIN: {
        "order": [VIEW, UPDATE],
        "coupon": [VIEW, CREATE, UPDATE, DELETE],
        "log": [VIEW, EXPORT],
    },
    Role.MANAGER: {
        "order": [VIEW, UPDATE],
        "coupon": [VIEW, CREATE, UPDATE, DELETE],
        "log": [VIEW, EXPORT],
    },
    Role.EDITOR: {
        "order": [VIEW],
    },
    Role.MODERATOR: {
        "log": [VIEW],
    },
    Role.MARKETING: {
        "coupon": [VIEW, CREATE, UPDATE, DELETE],
    },
    Role.FINANCE: {
        "order": [VIEW, UPDATE],
        "coupon": [VIEW],
        "log": [VIEW],
    },
    Role.SUPPORT: {
        "order": [VIEW],
    },
    Role.LOGISTICS: {
        "order": [VIEW, UPDATE],
    },
    Role.ANALYST: {
        "order": [VIEW],
        "log": [VIEW],
    },
    Role.INTERN: {
        "order": [VIEW],
    },
}


def is_staff(role) -> bool:
    return role in STAFF_ROLES


def get_role_level(role) -> int:
    return ROLE_LEVELS.get(role, 0)


def has_permission(role, resource: str, action: str) -> bool:
    if not role:
        return False
    return action in PERMISSION_MATRIX.get(role, {}).get(resource, [])


def can_manage_role(role_a, role_b) -> bool:
    """Higher level manages lower."""
    return get_role_level(role_a) > get_role_level(role_b)
