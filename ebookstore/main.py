import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ebookstore.config import settings
from ebookstore.database import create_db_and_tables
from ebookstore.exception_handlers import register_exception_handlers
from ebookstore.routes import (
    admin_coupons,
    admin_logs,
    admin_orders,
    auth,
    checkout,
    downloads,
    health,
    notifications,
    orders,
    users,
    webhooks,
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title=f"{settings.store_name} Checkout API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
app.include_router(downloads.router, prefix="/downloads", tags=["Downloads"])
app.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(admin_orders.router, prefix="/admin/orders", tags=["Admin Orders"])
app.include_router(admin_coupons.router, prefix="/admin/coupons", tags=["Admin Coupons"])
app.include_router(admin_logs.router, prefix="/admin/logs", tags=["Admin Logs"])
app.include_router(health.router, prefix="/health", tags=["Health"])
