from enum import Enum


class LogAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    VIEW = "VIEW"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    EXPORT = "EXPORT"
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    ERROR = "ERROR"


class LogResource(str, Enum):
    USER = "USER"
    EBOOK = "EBOOK"
    ORDER = "ORDER"
    COUPON = "COUPON"
    REFERRAL = "REFERRAL"
    NOTIFICATION = "NOTIFICATION"
    LOG = "LOG"
    PAGE = "PAGE"
    SYSTEM = "SYSTEM"
