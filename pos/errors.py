class PosError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload(self) -> dict:
        return {}


class ValidationError(PosError):
    status_code = 400


class InvalidAmountError(ValidationError):
    def __init__(self, message: str = "Payment amount is invalid"):
        super().__init__(message)


class MissingPaymentModeError(ValidationError):
    def __init__(self, message: str = "Payment mode is required"):
        super().__init__(message)


class NotFoundError(PosError):
    status_code = 404


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id):
        super().__init__("Order not found")
        self.order_id = order_id


class TenantNotFoundError(NotFoundError):
    def __init__(self, tenant_code):
        super().__init__("Tenant not found")
        self.tenant_code = tenant_code


class DiscountNotFoundError(NotFoundError):
    def __init__(self, discount_id):
        super().__init__("Discount not found")
        self.discount_id = discount_id


class TenantMismatchError(NotFoundError):
    status_code = 403

    def __init__(self, order_id):
        super().__init__("Order belongs to a different tenant")
        self.order_id = order_id


class NoActiveItemsError(PosError):
    status_code = 400

    def __init__(self, message: str = "No active items in order"):
        super().__init__(message)


class AmountMismatchError(PosError):
    status_code = 400

    def __init__(self, expected_amount, received_amount, breakdown):
        super().__init__(
            f"Payment amount mismatch. Expected: {expected_amount:.2f}, "
            f"Received: {received_amount:.2f}"
        )
        self.expected_amount = expected_amount
        self.received_amount = received_amount
        self.breakdown = breakdown

    def payload(self) -> dict:
        return {
            "expected_amount": float(self.expected_amount),
            "received_amount": float(self.received_amount),
            "calculation_breakdown": self.breakdown.summary(),
        }


class PersistenceError(PosError):
    status_code = 500

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)
