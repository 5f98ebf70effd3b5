"""Bill calculation for an order.

``compute_bill`` is a pure function: the same line items, discount, promo
and rates always give the same ``BillBreakdown``, whether the caller is
previewing a checkout or validating a payment.

Arithmetic is exact ``Decimal``. Values are rounded half-up to cents only
when compared against the payment tolerance, displayed or persisted.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional

from . import errors

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

PAYMENT_TOLERANCE = Decimal("0.01")
DEFAULT_TAX_RATE = Decimal("0.08")
DEFAULT_SERVICE_CHARGE_RATE = Decimal("0.10")

CANCELLED = "cancelled"


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def q2(value) -> Decimal:
    """Round to cents, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def within_tolerance(amount, expected) -> bool:
    return abs(to_decimal(amount) - q2(expected)) <= PAYMENT_TOLERANCE


class PromoDiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


@dataclass(frozen=True)
class LineItem:
    menu_item_id: int
    total_price: Decimal
    status: str = "active"


@dataclass(frozen=True)
class DiscountTerms:
    id: int
    name: str
    percentage: Decimal

    @classmethod
    def from_row(cls, row) -> "DiscountTerms":
        return cls(id=row.id, name=row.name, percentage=to_decimal(row.amount))

    def info(self) -> dict:
        return {"id": self.id, "name": self.name, "percentage": float(self.percentage)}


@dataclass(frozen=True)
class PromoTerms:
    id: int
    name: str
    discount_type: str
    discount_amount: Decimal
    eligible_item_ids: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_row(cls, row, eligible_item_ids: Iterable[int] = ()) -> "PromoTerms":
        return cls(
            id=row.id,
            name=row.name,
            discount_type=row.discount_type,
            discount_amount=to_decimal(row.discount_amount),
            eligible_item_ids=frozenset(eligible_item_ids),
        )

    @property
    def applies_to_whole_order(self) -> bool:
        return not self.eligible_item_ids

    def describe(self) -> str:
        if self.discount_type == PromoDiscountType.PERCENTAGE.value:
            return f"{self.discount_amount}%"
        return f"{self.discount_amount} (fixed)"

    def info(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "discount_type": self.discount_type,
            "discount_amount": float(self.discount_amount),
            "eligible_item_ids": sorted(self.eligible_item_ids),
        }


@dataclass(frozen=True)
class BillBreakdown:
    subtotal: Decimal
    discount_amount: Decimal
    promo_eligible_base: Decimal
    promo_amount: Decimal
    total_reduction: Decimal
    adjusted_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    service_charge_rate: Decimal
    service_charge_base: Decimal
    service_charge: Decimal
    charged_amount: Decimal
    discount: Optional[DiscountTerms] = None
    promo: Optional[PromoTerms] = None

    MONEY_FIELDS = (
        "subtotal",
        "discount_amount",
        "promo_eligible_base",
        "promo_amount",
        "total_reduction",
        "adjusted_amount",
        "tax_amount",
        "service_charge_base",
        "service_charge",
        "charged_amount",
    )

    @property
    def amount_due(self) -> Decimal:
        return q2(self.charged_amount)

    def rounded(self) -> dict:
        return {name: q2(getattr(self, name)) for name in self.MONEY_FIELDS}

    def calculation_steps(self) -> List[str]:
        r = self.rounded()
        discount_pct = f"{self.discount.percentage}%" if self.discount else "0%"
        promo_terms = self.promo.describe() if self.promo else "0%"
        return [
            f"1. subtotal = {r['subtotal']} (sum of active order items)",
            f"2. discount_amount = {r['discount_amount']} ({discount_pct} of subtotal)",
            f"3. promo_eligible_base = {r['promo_eligible_base']} "
            "(base for promo calculation, specific items or all)",
            f"4. promo_amount = {r['promo_amount']} ({promo_terms} applied)",
            f"5. total_reduction = {r['total_reduction']} (discount + promo)",
            f"6. adjusted_amount = {r['adjusted_amount']} (subtotal - total_reduction)",
            f"7. tax_amount = {r['tax_amount']} "
            f"({self.tax_rate * HUNDRED:.1f}% of adjusted amount)",
            f"8. service_charge_base = {r['service_charge_base']} (adjusted amount + tax)",
            f"9. service_charge = {r['service_charge']} "
            f"({self.service_charge_rate * HUNDRED:.1f}% of base)",
            f"10. charged_amount = {r['charged_amount']} "
            "(adjusted + tax + service_charge)",
        ]

    def summary(self) -> dict:
        out = {name: float(value) for name, value in self.rounded().items()}
        out.update(
            tax_rate=float(self.tax_rate),
            service_charge_rate=float(self.service_charge_rate),
            promo_id_applied=self.promo.id if self.promo else None,
            discount_info=self.discount.info() if self.discount else None,
            promo_info=self.promo.info() if self.promo else None,
            calculation_steps=self.calculation_steps(),
        )
        return out


def _promo_eligible_base(items, promo: PromoTerms, subtotal: Decimal) -> Decimal:
    if promo.applies_to_whole_order:
        return subtotal
    return sum(
        (to_decimal(item.total_price) for item in items
         if item.menu_item_id in promo.eligible_item_ids),
        ZERO,
    )


def _promo_amount(promo: PromoTerms, eligible_base: Decimal) -> Decimal:
    if eligible_base <= 0:
        return ZERO
    if promo.discount_type == PromoDiscountType.PERCENTAGE.value:
        amount = eligible_base * (promo.discount_amount / HUNDRED)
    elif promo.discount_type == PromoDiscountType.FIXED_AMOUNT.value:
        amount = promo.discount_amount
    else:
        amount = ZERO
    return min(amount, eligible_base)


def compute_bill(
    line_items,
    discount: Optional[DiscountTerms] = None,
    promo: Optional[PromoTerms] = None,
    tax_rate=None,
    service_charge_rate=None,
) -> BillBreakdown:
    """Itemize the bill for the active line items of one order.

    ``tax_rate`` and ``service_charge_rate`` are fractions (0.08 for 8%);
    ``None`` falls back to the default rates. Raises ``NoActiveItemsError``
    when nothing billable is left after dropping cancelled items.
    """
    items = [item for item in line_items if item.status != CANCELLED]
    if not items:
        raise errors.NoActiveItemsError()

    tax_rate = DEFAULT_TAX_RATE if tax_rate is None else to_decimal(tax_rate)
    if service_charge_rate is None:
        service_charge_rate = DEFAULT_SERVICE_CHARGE_RATE
    else:
        service_charge_rate = to_decimal(service_charge_rate)

    subtotal = sum((to_decimal(item.total_price) for item in items), ZERO)

    discount_amount = ZERO
    if discount is not None:
        discount_amount = min(subtotal * (discount.percentage / HUNDRED), subtotal)

    promo_eligible_base = ZERO
    promo_amount = ZERO
    if promo is not None:
        promo_eligible_base = _promo_eligible_base(items, promo, subtotal)
        promo_amount = _promo_amount(promo, promo_eligible_base)
        promo_amount = min(promo_amount, subtotal - discount_amount)

    total_reduction = discount_amount + promo_amount
    adjusted_amount = subtotal - total_reduction
    tax_amount = adjusted_amount * tax_rate
    service_charge_base = adjusted_amount + tax_amount
    service_charge = service_charge_base * service_charge_rate
    charged_amount = adjusted_amount + tax_amount + service_charge

    return BillBreakdown(
        subtotal=subtotal,
        discount_amount=discount_amount,
        promo_eligible_base=promo_eligible_base,
        promo_amount=promo_amount,
        total_reduction=total_reduction,
        adjusted_amount=adjusted_amount,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        service_charge_rate=service_charge_rate,
        service_charge_base=service_charge_base,
        service_charge=service_charge,
        charged_amount=charged_amount,
        discount=discount,
        promo=promo,
    )
