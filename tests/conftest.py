from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from pos import crud, models
from pos.config import Settings
from pos.db import Database
from pos.main import create_app


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def world(database):
    """Two tenants; acme has 8% tax, 10% service and a 100.00 order."""
    async with database.session() as db:
        acme = await crud.create_tenant(db, "acme", "Acme Diner")
        other = await crud.create_tenant(db, "other", "Other Bistro")

        burger = await crud.create_menu_item(db, acme.id, {"name": "Burger", "price": Decimal("25.00")})
        fries = await crud.create_menu_item(db, acme.id, {"name": "Fries", "price": Decimal("10.00")})
        cola = await crud.create_menu_item(db, acme.id, {"name": "Cola", "price": Decimal("5.00")})
        steak = await crud.create_menu_item(db, acme.id, {"name": "Steak", "price": Decimal("60.00")})
        await crud.create_tax(db, acme.id, "Sales Tax", models.Tax.SALES_TAX, Decimal("8"))
        await crud.create_tax(db, acme.id, "Service Charge", models.Tax.SERVICE_CHARGE, Decimal("10"))

        order = await crud.create_order(db, acme.id, "T1")
        await crud.add_line_item(db, order, burger, 2)
        await crud.add_line_item(db, order, fries, 3)
        await crud.add_line_item(db, order, cola, 4)
        await crud.add_line_item(db, order, steak, 1, status="cancelled")

        voided = await crud.create_order(db, acme.id, "T2")
        await crud.add_line_item(db, voided, steak, 1, status="cancelled")

        soup = await crud.create_menu_item(db, other.id, {"name": "Soup", "price": Decimal("7.00")})
        other_order = await crud.create_order(db, other.id, "A1")
        await crud.add_line_item(db, other_order, soup, 1)

        await db.commit()
        return SimpleNamespace(
            acme=acme.id,
            other=other.id,
            order=order.id,
            voided_order=voided.id,
            other_order=other_order.id,
            burger=burger.id,
            fries=fries.id,
            cola=cola.id,
            steak=steak.id,
        )


@pytest.fixture
def settings():
    return Settings(app_env="production")


@pytest.fixture
async def client(database, settings):
    app = create_app(settings=settings, database=database)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Tenant-Id": "acme"},
    ) as ac:
        yield ac
