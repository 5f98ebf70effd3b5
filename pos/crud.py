from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from . import errors, models

BILL_FIELDS = (
    "subtotal",
    "discount_amount",
    "promo_amount",
    "tax_amount",
    "service_charge",
    "charged_amount",
    "order_status",
    "is_open",
    "discount_id",
    "promo_id",
)


async def get_tenant_by_code(db: AsyncSession, code: str):
    result = await db.execute(select(models.Tenant).where(models.Tenant.code == code))
    return result.scalars().first()


async def create_tenant(db: AsyncSession, code: str, name: str):
    tenant = models.Tenant(code=code, name=name)
    db.add(tenant)
    await db.flush()
    return tenant


async def get_order(db: AsyncSession, order_id: int):
    """Fetch an order by id regardless of tenant; callers check ownership."""
    return await db.get(models.Order, order_id)


async def create_order(db: AsyncSession, tenant_id: int, table_number: str = None):
    order = models.Order(tenant_id=tenant_id, table_number=table_number)
    db.add(order)
    await db.flush()
    return order


async def find_active_line_items(db: AsyncSession, order_id: int, tenant_id: int):
    result = await db.execute(
        select(models.OrderItem)
        .where(
            models.OrderItem.order_id == order_id,
            models.OrderItem.tenant_id == tenant_id,
            models.OrderItem.status != "cancelled",
        )
        .order_by(models.OrderItem.id)
    )
    return result.scalars().all()


async def add_line_item(
    db: AsyncSession,
    order: models.Order,
    menu_item: models.MenuItem,
    quantity: int = 1,
    status: str = "new",
    notes: str = None,
):
    unit_price = Decimal(str(menu_item.price))
    item = models.OrderItem(
        tenant_id=order.tenant_id,
        order_id=order.id,
        menu_item_id=menu_item.id,
        quantity=quantity,
        unit_price=unit_price,
        total_price=unit_price * quantity,
        status=status,
        notes=notes,
    )
    db.add(item)
    await db.flush()
    return item


async def update_order_bill_fields(
    db: AsyncSession, order: models.Order, fields: dict, tenant_id: int
):
    if order.tenant_id != tenant_id:
        raise errors.TenantMismatchError(order.id)
    for key in BILL_FIELDS:
        if key in fields:
            setattr(order, key, fields[key])
    await db.flush()
    return order


async def create_menu_item(db: AsyncSession, tenant_id: int, item_data):
    item = models.MenuItem(
        tenant_id=tenant_id,
        name=item_data["name"],
        price=item_data["price"],
        category=item_data.get("category"),
    )
    db.add(item)
    await db.flush()
    return item


async def get_tax_rate_row(db: AsyncSession, tenant_id: int, tax_type: int):
    result = await db.execute(
        select(models.Tax)
        .where(models.Tax.tenant_id == tenant_id, models.Tax.tax_type == tax_type)
        .order_by(models.Tax.id)
        .limit(1)
    )
    return result.scalars().first()


async def create_tax(db: AsyncSession, tenant_id: int, name: str, tax_type: int, amount):
    tax = models.Tax(tenant_id=tenant_id, name=name, tax_type=tax_type, amount=amount)
    db.add(tax)
    await db.flush()
    return tax


async def get_discount(db: AsyncSession, discount_id: int, tenant_id: int):
    result = await db.execute(
        select(models.Discount).where(
            models.Discount.id == discount_id, models.Discount.tenant_id == tenant_id
        )
    )
    return result.scalars().first()


async def create_discount(db: AsyncSession, tenant_id: int, name: str, amount, description=None):
    discount = models.Discount(
        tenant_id=tenant_id, name=name, amount=amount, description=description
    )
    db.add(discount)
    await db.flush()
    return discount


async def get_promo(db: AsyncSession, promo_id: int):
    return await db.get(models.Promo, promo_id)


async def first_applicable_promo(db: AsyncSession, tenant_id: int, today: date):
    result = await db.execute(
        select(models.Promo)
        .where(
            models.Promo.tenant_id == tenant_id,
            models.Promo.is_active.is_(True),
            models.Promo.start_date <= today,
            models.Promo.end_date >= today,
        )
        .order_by(models.Promo.id)
        .limit(1)
    )
    return result.scalars().first()


async def get_promo_item_ids(db: AsyncSession, promo_id: int, tenant_id: int):
    result = await db.execute(
        select(models.PromoItem.menu_item_id).where(
            models.PromoItem.promo_id == promo_id,
            models.PromoItem.tenant_id == tenant_id,
        )
    )
    return set(result.scalars().all())


async def create_promo(db: AsyncSession, tenant_id: int, promo_data, item_ids=()):
    promo = models.Promo(
        tenant_id=tenant_id,
        name=promo_data["name"],
        description=promo_data.get("description"),
        start_date=promo_data["start_date"],
        end_date=promo_data["end_date"],
        discount_type=promo_data["discount_type"],
        discount_amount=promo_data["discount_amount"],
        is_active=promo_data.get("is_active", False),
    )
    db.add(promo)
    await db.flush()
    for item_id in item_ids:
        db.add(models.PromoItem(tenant_id=tenant_id, promo_id=promo.id, menu_item_id=item_id))
    await db.flush()
    return promo


async def insert_payment(db: AsyncSession, payment_data):
    payment = models.Payment(**payment_data)
    db.add(payment)
    await db.flush()
    return payment


async def list_payments(db: AsyncSession, order_id: int, tenant_id: int):
    result = await db.execute(
        select(models.Payment)
        .where(models.Payment.order_id == order_id, models.Payment.tenant_id == tenant_id)
        .order_by(models.Payment.id)
    )
    return result.scalars().all()


async def sum_payments(db: AsyncSession, order_id: int, tenant_id: int):
    result = await db.execute(
        select(func.coalesce(func.sum(models.Payment.amount), 0)).where(
            models.Payment.order_id == order_id, models.Payment.tenant_id == tenant_id
        )
    )
    return result.scalar_one()


async def seed_demo(db: AsyncSession):
    if await get_tenant_by_code(db, "demo"):
        return None
    tenant = await create_tenant(db, "demo", "Demo Cafe")
    samples = [
        {"name": "Flat White", "price": Decimal("4.50"), "category": "Coffee"},
        {"name": "Iced Latte", "price": Decimal("5.00"), "category": "Coffee"},
        {"name": "Croissant", "price": Decimal("3.25"), "category": "Bakery"},
        {"name": "Club Sandwich", "price": Decimal("9.75"), "category": "Kitchen"},
    ]
    for item in samples:
        await create_menu_item(db, tenant.id, item)
    await create_tax(db, tenant.id, "Sales Tax", models.Tax.SALES_TAX, Decimal("8"))
    await create_tax(db, tenant.id, "Service Charge", models.Tax.SERVICE_CHARGE, Decimal("10"))
    await create_discount(db, tenant.id, "Staff", Decimal("20"), "Staff meal discount")
    year = date.today().year
    await create_promo(
        db,
        tenant.id,
        {
            "name": "House Promo",
            "start_date": date(year, 1, 1),
            "end_date": date(year, 12, 31),
            "discount_type": "percentage",
            "discount_amount": Decimal("5"),
            "is_active": True,
        },
    )
    await db.commit()
    return tenant
