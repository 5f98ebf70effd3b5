import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, errors, ledger, lookups, models, order_state, promotions
from .billing import BillBreakdown, compute_bill

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    payment: models.Payment
    order: models.Order
    breakdown: BillBreakdown
    state: order_state.PaymentState


async def load_order(db: AsyncSession, order_id: int, tenant_id: int) -> models.Order:
    order = await crud.get_order(db, order_id)
    if order is None:
        raise errors.OrderNotFoundError(order_id)
    if order.tenant_id != tenant_id:
        raise errors.TenantMismatchError(order_id)
    return order


async def build_bill(
    db: AsyncSession,
    order: models.Order,
    tenant_id: int,
    discount_id: Optional[int] = None,
    promo_id: Optional[int] = None,
    today: Optional[date] = None,
) -> BillBreakdown:
    """Gather the bill inputs for an order and run the calculator.

    Checkout preview and payment both go through here so they always see
    the same inputs.
    """
    items = await crud.find_active_line_items(db, order.id, tenant_id)
    if not items:
        raise errors.NoActiveItemsError()
    discount = await lookups.get_discount(db, discount_id, tenant_id)
    promo = await promotions.resolve_promo_terms(db, tenant_id, promo_id, today)
    tax_rate, service_rate = await lookups.resolve_rates(db, tenant_id)
    return compute_bill(items, discount, promo, tax_rate, service_rate)


async def checkout_preview(
    db: AsyncSession,
    order_id: int,
    tenant_id: int,
    discount_id: Optional[int] = None,
    promo_id: Optional[int] = None,
    today: Optional[date] = None,
) -> BillBreakdown:
    """Read-only bill for display before paying."""
    order = await load_order(db, order_id, tenant_id)
    return await build_bill(db, order, tenant_id, discount_id, promo_id, today)


async def process_payment(
    db: AsyncSession,
    tenant_id: int,
    order_id: int,
    amount,
    payment_mode: str,
    transaction_id: Optional[str] = None,
    discount_id: Optional[int] = None,
    promo_id: Optional[int] = None,
    today: Optional[date] = None,
) -> PaymentResult:
    """Validate and record a payment, then advance the order.

    Bill computation, the payment insert and the order update share one
    transaction: any failure rolls everything back and is re-raised.
    """
    amount = ledger.check_payment_request(amount, payment_mode)
    try:
        order = await load_order(db, order_id, tenant_id)
        breakdown = await build_bill(db, order, tenant_id, discount_id, promo_id, today)
        payment = await ledger.record_payment(
            db,
            order,
            amount,
            payment_mode,
            breakdown,
            tenant_id,
            transaction_id=transaction_id,
            discount_id=discount_id,
            promo_id=breakdown.promo.id if breakdown.promo else None,
        )
        paid = await ledger.total_paid(db, order.id, tenant_id)
        state = await order_state.advance(db, order, breakdown, paid, tenant_id)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception(f"Payment for order {order_id} failed in the database")
        raise errors.PersistenceError() from exc
    except Exception:
        await db.rollback()
        raise

    await db.refresh(order)
    await db.refresh(payment)
    logger.info(
        f"Payment {payment.id} recorded on order {order.id}: {payment.amount} "
        f"via {payment.payment_mode}, status {state.status.value}"
    )
    return PaymentResult(payment=payment, order=order, breakdown=breakdown, state=state)
