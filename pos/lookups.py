from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, errors, models
from .billing import (
    DEFAULT_SERVICE_CHARGE_RATE,
    DEFAULT_TAX_RATE,
    HUNDRED,
    DiscountTerms,
    to_decimal,
)


async def get_sales_tax_rate(db: AsyncSession, tenant_id: int) -> Optional[Decimal]:
    """Configured sales tax in percent, or None."""
    row = await crud.get_tax_rate_row(db, tenant_id, models.Tax.SALES_TAX)
    return to_decimal(row.amount) if row else None


async def get_service_charge_rate(db: AsyncSession, tenant_id: int) -> Optional[Decimal]:
    """Configured service charge in percent, or None."""
    row = await crud.get_tax_rate_row(db, tenant_id, models.Tax.SERVICE_CHARGE)
    return to_decimal(row.amount) if row else None


def percent_to_rate(percent: Optional[Decimal], default: Decimal) -> Decimal:
    if percent is None:
        return default
    return percent / HUNDRED


async def resolve_rates(db: AsyncSession, tenant_id: int) -> Tuple[Decimal, Decimal]:
    """(tax_rate, service_charge_rate) as fractions, defaults filled in."""
    tax_rate = percent_to_rate(await get_sales_tax_rate(db, tenant_id), DEFAULT_TAX_RATE)
    service_rate = percent_to_rate(
        await get_service_charge_rate(db, tenant_id), DEFAULT_SERVICE_CHARGE_RATE
    )
    return tax_rate, service_rate


async def get_discount(db: AsyncSession, discount_id: Optional[int], tenant_id: int):
    if discount_id is None:
        return None
    row = await crud.get_discount(db, discount_id, tenant_id)
    if row is None:
        raise errors.DiscountNotFoundError(discount_id)
    return DiscountTerms.from_row(row)
