import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ebookstore.exceptions import (
    CheckoutFailedError,
    CheckoutValidationError,
    InvalidTransitionError,
    OrderNotRefundableError,
)

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Domain errors are answered as ``{"error": "..."}`` bodies."""

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request data", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(CheckoutValidationError)
    async def checkout_rejected(request: Request, exc: CheckoutValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(OrderNotRefundableError)
    async def not_refundable(request: Request, exc: OrderNotRefundableError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition(request: Request, exc: InvalidTransitionError):
        return JSONResponse(status_code=409, content={"error": str(exc)})

    @app.exception_handler(CheckoutFailedError)
    async def checkout_failed(request: Request, exc: CheckoutFailedError):
        # gateway details stay in the logs
        return JSONResponse(status_code=500, content={"error": "Checkout failed"})
