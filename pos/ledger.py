import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, errors, models
from .billing import BillBreakdown, q2, to_decimal, within_tolerance

logger = logging.getLogger(__name__)

# largest amount a Numeric(12, 2) column holds
MAX_PAYMENT_AMOUNT = Decimal("9999999999.99")


def check_payment_request(amount, payment_mode) -> Decimal:
    """Validate the raw amount and mode, returning the amount as Decimal."""
    if amount is None:
        raise errors.InvalidAmountError()
    try:
        amount = to_decimal(amount)
    except (InvalidOperation, ValueError):
        raise errors.InvalidAmountError()
    if not amount.is_finite() or amount <= 0 or amount > MAX_PAYMENT_AMOUNT:
        raise errors.InvalidAmountError()
    if payment_mode is None or not str(payment_mode).strip():
        raise errors.MissingPaymentModeError()
    return amount


async def record_payment(
    db: AsyncSession,
    order: models.Order,
    amount,
    payment_mode: str,
    breakdown: BillBreakdown,
    tenant_id: int,
    transaction_id: Optional[str] = None,
    discount_id: Optional[int] = None,
    promo_id: Optional[int] = None,
) -> models.Payment:
    """Append one payment after checking it against the freshly computed bill.

    Raises ``AmountMismatchError`` when ``amount`` is more than the tolerance
    away from the bill's charged amount. Does not commit.
    """
    amount = check_payment_request(amount, payment_mode)
    if order.tenant_id != tenant_id:
        raise errors.TenantMismatchError(order.id)
    if not within_tolerance(amount, breakdown.charged_amount):
        logger.warning(
            f"Payment mismatch on order {order.id}: expected {breakdown.amount_due}, "
            f"received {amount}"
        )
        raise errors.AmountMismatchError(breakdown.amount_due, amount, breakdown)

    return await crud.insert_payment(
        db,
        {
            "tenant_id": tenant_id,
            "order_id": order.id,
            "amount": q2(amount),
            "payment_mode": str(payment_mode).strip(),
            "transaction_id": transaction_id,
            "discount_id": discount_id,
            "promo_id": promo_id,
        },
    )


async def total_paid(db: AsyncSession, order_id: int, tenant_id: int) -> Decimal:
    return to_decimal(await crud.sum_payments(db, order_id, tenant_id))


async def payments_for_order(db: AsyncSession, order_id: int, tenant_id: int):
    return await crud.list_payments(db, order_id, tenant_id)
