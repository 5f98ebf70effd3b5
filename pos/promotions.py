import logging
from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, models
from .billing import PromoTerms

logger = logging.getLogger(__name__)


def is_applicable(promo: models.Promo, tenant_id: int, today: date) -> bool:
    """Active, owned by the tenant, and today within [start_date, end_date]."""
    return (
        promo.tenant_id == tenant_id
        and bool(promo.is_active)
        and promo.start_date <= today <= promo.end_date
    )


async def find_requested_promo(
    db: AsyncSession, promo_id: int, tenant_id: int, today: date
) -> Optional[models.Promo]:
    promo = await crud.get_promo(db, promo_id)
    if promo is None or not is_applicable(promo, tenant_id, today):
        return None
    return promo


async def find_automatic_promo(
    db: AsyncSession, tenant_id: int, today: date
) -> Optional[models.Promo]:
    return await crud.first_applicable_promo(db, tenant_id, today)


async def resolve_promo(
    db: AsyncSession,
    tenant_id: int,
    requested_promo_id: Optional[int] = None,
    today: Optional[date] = None,
) -> Optional[models.Promo]:
    """Pick the promo for a bill.

    A requested promo is used when it is currently applicable. Otherwise,
    including when the requested one is stale or foreign, the automatic
    promo (lowest id among applicable ones) is used, if any.
    """
    # server local date, promo boundaries are calendar days
    today = today or date.today()
    if requested_promo_id is not None:
        promo = await find_requested_promo(db, requested_promo_id, tenant_id, today)
        if promo is not None:
            return promo
        logger.info(
            f"Promo {requested_promo_id} not applicable for tenant {tenant_id}, "
            "falling back to automatic promo"
        )
    return await find_automatic_promo(db, tenant_id, today)


async def resolve_eligible_items(db: AsyncSession, promo_id: int, tenant_id: int):
    """Menu item ids a promo is limited to; empty means the whole order."""
    return frozenset(await crud.get_promo_item_ids(db, promo_id, tenant_id))


async def resolve_promo_terms(
    db: AsyncSession,
    tenant_id: int,
    requested_promo_id: Optional[int] = None,
    today: Optional[date] = None,
) -> Optional[PromoTerms]:
    promo = await resolve_promo(db, tenant_id, requested_promo_id, today)
    if promo is None:
        return None
    eligible = await resolve_eligible_items(db, promo.id, tenant_id)
    return PromoTerms.from_row(promo, eligible)
