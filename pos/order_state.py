import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, models
from .billing import PAYMENT_TOLERANCE, ZERO, BillBreakdown, q2, to_decimal

logger = logging.getLogger(__name__)


class OrderStatus(str, Enum):
    OPEN = "open"
    PARTIALLY_PAID = "partially_paid"
    CLOSED = "closed"


@dataclass(frozen=True)
class PaymentState:
    status: OrderStatus
    total_paid: Decimal
    charged_amount: Decimal

    @property
    def is_open(self) -> bool:
        return self.status != OrderStatus.CLOSED

    @property
    def is_fully_paid(self) -> bool:
        return self.status == OrderStatus.CLOSED

    @property
    def remaining_balance(self) -> Decimal:
        return max(ZERO, self.charged_amount - self.total_paid)

    @property
    def overpaid_by(self) -> Decimal:
        return max(ZERO, self.total_paid - self.charged_amount)


def decide_status(
    total_paid, charged_amount, current: Optional[str] = None
) -> PaymentState:
    """Order status for the cumulative amount paid against the bill.

    Closed is terminal: an order already closed stays closed whatever the
    totals say.
    """
    total_paid = to_decimal(total_paid)
    charged_amount = q2(charged_amount)

    if current == OrderStatus.CLOSED.value:
        status = OrderStatus.CLOSED
    elif abs(total_paid - charged_amount) <= PAYMENT_TOLERANCE:
        status = OrderStatus.CLOSED
    elif total_paid > charged_amount + PAYMENT_TOLERANCE:
        status = OrderStatus.CLOSED
    elif total_paid > 0:
        status = OrderStatus.PARTIALLY_PAID
    else:
        status = OrderStatus.OPEN
    return PaymentState(status=status, total_paid=total_paid, charged_amount=charged_amount)


def bill_fields(breakdown: BillBreakdown, state: PaymentState) -> dict:
    rounded = breakdown.rounded()
    return {
        "subtotal": rounded["subtotal"],
        "discount_amount": rounded["discount_amount"],
        "promo_amount": rounded["promo_amount"],
        "tax_amount": rounded["tax_amount"],
        "service_charge": rounded["service_charge"],
        "charged_amount": rounded["charged_amount"],
        "order_status": state.status.value,
        "is_open": state.is_open,
        "discount_id": breakdown.discount.id if breakdown.discount else None,
        "promo_id": breakdown.promo.id if breakdown.promo else None,
    }


async def advance(
    db: AsyncSession,
    order: models.Order,
    breakdown: BillBreakdown,
    total_paid,
    tenant_id: int,
) -> PaymentState:
    """Decide the new status and stage the bill cache on the order.

    The caller owns the transaction; nothing here commits.
    """
    state = decide_status(total_paid, breakdown.charged_amount, order.order_status)
    if state.overpaid_by > PAYMENT_TOLERANCE:
        logger.warning(f"Order {order.id} overpaid by {q2(state.overpaid_by)}")
    await crud.update_order_bill_fields(db, order, bill_fields(breakdown, state), tenant_id)
    return state
