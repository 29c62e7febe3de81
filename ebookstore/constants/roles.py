from enum import Enum


class Role(str, Enum):
    USER = "USER"
    INTERN = "INTERN"
    ANALYST = "ANALYST"
    SUPPORT = "SUPPORT"
    LOGISTICS = "LOGISTICS"
    MARKETING = "MARKETING"
    FINANCE = "FINANCE"
    MODERATOR = "MODERATOR"
    EDITOR = "EDITOR"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


# Higher level = more access
ROLE_LEVELS = {
    Role.USER: 0,
    Role.INTERN: 10,
    Role.ANALYST: 20,
    Role.SUPPORT: 30,
    Role.LOGISTICS: 40,
    Role.MARKETING: 50,
    Role.FINANCE: 60,
    Role.MODERATOR: 70,
    Role.EDITOR: 80,
    Role.MANAGER: 90,
    Role.ADMIN: 95,
    Role.SUPER_ADMIN: 100,
}

STAFF_ROLES = frozenset(role for role, level in ROLE_LEVELS.items() if level > 0)
