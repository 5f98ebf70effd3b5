from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    discount_id: Optional[int] = None
    promo_id: Optional[int] = None


class PaymentCreate(CheckoutRequest):
    order_id: int
    # amount and mode are checked by the ledger so the error names the field
    amount: Any = None
    payment_mode: Optional[Union[str, int]] = None
    transaction_id: Optional[str] = Field(default=None, max_length=120)


class PaymentOut(BaseModel):
    id: int
    order_id: int
    amount: float
    payment_mode: str
    transaction_id: Optional[str] = None
    discount_id: Optional[int] = None
    promo_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: int
    table_number: Optional[str] = None
    discount_id: Optional[int] = None
    promo_id: Optional[int] = None
    subtotal: float
    discount_amount: float
    promo_amount: float
    tax_amount: float
    service_charge: float
    charged_amount: Optional[float] = None
    order_status: str
    is_open: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class BillBreakdownOut(BaseModel):
    subtotal: float
    discount_amount: float
    promo_eligible_base: float
    promo_amount: float
    total_reduction: float
    adjusted_amount: float
    tax_rate: float
    tax_amount: float
    service_charge_rate: float
    service_charge_base: float
    service_charge: float
    charged_amount: float
    promo_id_applied: Optional[int] = None
    discount_info: Optional[Dict[str, Any]] = None
    promo_info: Optional[Dict[str, Any]] = None
    calculation_steps: List[str] = []


class CheckoutSummary(BillBreakdownOut):
    order_id: int


class PaymentSummary(BillBreakdownOut):
    total_paid_so_far: float
    remaining_balance: float
    payment_status: str
    is_fully_paid: bool


class PaymentData(BaseModel):
    payment: PaymentOut
    order: OrderOut
    payment_summary: PaymentSummary


class PaymentResponse(BaseModel):
    status: str = "success"
    message: str
    data: PaymentData


class CheckoutResponse(BaseModel):
    status: str = "success"
    message: str
    data: CheckoutSummary


class PaymentHistory(BaseModel):
    order_id: int
    total_paid: float
    payments: List[PaymentOut]


class PaymentHistoryResponse(BaseModel):
    status: str = "success"
    data: PaymentHistory
