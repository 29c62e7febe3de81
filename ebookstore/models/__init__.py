from ebookstore.models.user import User
from ebookstore.models.ebook import Ebook
from ebookstore.models.order import Order
from ebookstore.models.order_item import OrderItem
from ebookstore.models.coupon import Coupon, CouponUsage
from ebookstore.models.referral import Referral
from ebookstore.models.notifications import Notification
from ebookstore.models.activity_log import ActivityLog

# add ALL models here
