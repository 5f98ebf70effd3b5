import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from . import checkout, crud, errors, ledger, models, schemas
from .billing import BillBreakdown
from .config import Settings
from .db import Database, get_db
from .order_state import PaymentState
from .tenancy import get_tenant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def payment_summary(breakdown: BillBreakdown, state: PaymentState) -> schemas.PaymentSummary:
    return schemas.PaymentSummary(
        **breakdown.summary(),
        total_paid_so_far=float(state.total_paid),
        remaining_balance=float(state.remaining_balance),
        payment_status=state.status.value,
        is_fully_paid=state.is_fully_paid,
    )


@router.post("", status_code=201, response_model=schemas.PaymentResponse)
async def pay_order(
    payment_in: schemas.PaymentCreate,
    db: AsyncSession = Depends(get_db),
    tenant: models.Tenant = Depends(get_tenant),
):
    result = await checkout.process_payment(
        db,
        tenant.id,
        payment_in.order_id,
        payment_in.amount,
        payment_in.payment_mode,
        transaction_id=payment_in.transaction_id,
        discount_id=payment_in.discount_id,
        promo_id=payment_in.promo_id,
    )
    if result.state.is_fully_paid:
        message = "Payment processed successfully. Order closed."
    else:
        message = f"Payment processed. Order status: {result.state.status.value}"
    return schemas.PaymentResponse(
        message=message,
        data=schemas.PaymentData(
            payment=schemas.PaymentOut.model_validate(result.payment),
            order=schemas.OrderOut.model_validate(result.order),
            payment_summary=payment_summary(result.breakdown, result.state),
        ),
    )


@router.post("/checkout/{order_id}", response_model=schemas.CheckoutResponse)
async def checkout_order(
    order_id: int,
    checkout_in: Optional[schemas.CheckoutRequest] = Body(default=None),
    db: AsyncSession = Depends(get_db),
    tenant: models.Tenant = Depends(get_tenant),
):
    checkout_in = checkout_in or schemas.CheckoutRequest()
    breakdown = await checkout.checkout_preview(
        db,
        order_id,
        tenant.id,
        discount_id=checkout_in.discount_id,
        promo_id=checkout_in.promo_id,
    )
    return schemas.CheckoutResponse(
        message="Checkout bill calculated successfully.",
        data=schemas.CheckoutSummary(order_id=order_id, **breakdown.summary()),
    )


@router.get("/order/{order_id}", response_model=schemas.PaymentHistoryResponse)
async def order_payments(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    tenant: models.Tenant = Depends(get_tenant),
):
    await checkout.load_order(db, order_id, tenant.id)
    payments = await ledger.payments_for_order(db, order_id, tenant.id)
    paid = await ledger.total_paid(db, order_id, tenant.id)
    return schemas.PaymentHistoryResponse(
        data=schemas.PaymentHistory(
            order_id=order_id,
            total_paid=float(paid),
            payments=[schemas.PaymentOut.model_validate(p) for p in payments],
        )
    )


def _error_body(message: str, settings: Settings, exc: Exception = None) -> dict:
    body = {"status": "error", "message": message}
    if exc is not None and settings.is_development:
        cause = exc.__cause__ or exc
        body["error"] = str(cause)
    return body


def install_error_handlers(app: FastAPI, settings: Settings):
    @app.exception_handler(errors.PosError)
    async def handle_pos_error(request: Request, exc: errors.PosError):
        if exc.status_code >= 500:
            return JSONResponse(
                status_code=exc.status_code,
                content=_error_body("Failed to process request", settings, exc),
            )
        content = {"status": "error", "message": exc.message}
        content.update(exc.payload())
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        return JSONResponse(status_code=400, content={"status": "error", "message": message})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500, content=_error_body("Something went wrong!", settings, exc)
        )


def create_app(settings: Settings = None, database: Database = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.database is None
        if owned:
            app.state.database = Database(
                settings.database_url, echo=settings.db_echo, pool_size=settings.db_pool_size
            )
            await app.state.database.create_all()
        if settings.seed_demo:
            async with app.state.database.session() as db:
                if await crud.seed_demo(db):
                    logger.info("Seeded demo tenant")
        yield
        if owned:
            await app.state.database.dispose()
            app.state.database = None

    app = FastAPI(title="POS Checkout", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    install_error_handlers(app, settings)
    app.include_router(router)

    @app.get("/")
    async def index():
        return {"message": "Welcome to POS API"}

    return app


app = create_app()
