from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from .db import Base

MONEY = Numeric(12, 2)


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(120), nullable=False)


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String(120), nullable=False)
    price = Column(MONEY, nullable=False)
    category = Column(String(80), nullable=True)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    table_number = Column(String(20), nullable=True)
    discount_id = Column(Integer, ForeignKey("discounts.id"), nullable=True)
    promo_id = Column(Integer, ForeignKey("promos.id"), nullable=True)
    # cache of the last bill computation, rewritten on every payment
    subtotal = Column(MONEY, default=0, nullable=False)
    discount_amount = Column(MONEY, default=0, nullable=False)
    promo_amount = Column(MONEY, default=0, nullable=False)
    tax_amount = Column(MONEY, default=0, nullable=False)
    service_charge = Column(MONEY, default=0, nullable=False)
    charged_amount = Column(MONEY, nullable=True)
    order_status = Column(String(20), default="open", nullable=False)
    is_open = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(MONEY, nullable=False)
    total_price = Column(MONEY, nullable=False)
    status = Column(String(20), default="new", nullable=False)
    notes = Column(String(500), nullable=True)


class Discount(Base):
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String(120), nullable=False)
    description = Column(String(500), nullable=True)
    amount = Column(Numeric(5, 2), nullable=False)


class Promo(Base):
    __tablename__ = "promos"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String(120), nullable=False)
    description = Column(String(500), nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    discount_type = Column(String(20), nullable=False)
    discount_amount = Column(MONEY, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)


class PromoItem(Base):
    __tablename__ = "promo_items"
    __table_args__ = (UniqueConstraint("promo_id", "menu_item_id"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    promo_id = Column(Integer, ForeignKey("promos.id"), index=True, nullable=False)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)


class Tax(Base):
    __tablename__ = "taxes"

    SERVICE_CHARGE = 1
    SALES_TAX = 2

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String(120), nullable=False)
    tax_type = Column(Integer, nullable=False)
    amount = Column(Numeric(5, 2), nullable=False)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    amount = Column(MONEY, nullable=False)
    payment_mode = Column(String(40), nullable=False)
    transaction_id = Column(String(120), nullable=True)
    discount_id = Column(Integer, ForeignKey("discounts.id"), nullable=True)
    promo_id = Column(Integer, ForeignKey("promos.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
