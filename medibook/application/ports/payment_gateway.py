from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


class GatewayError(Exception):
    """The payment provider rejected a call or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class GatewayOrder:
    order_id: str
    amount: int
    currency: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GatewayRefund:
    refund_id: str
    amount: int
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)


class PaymentGateway(Protocol):
    name: str
    key_id: str

    def create_order(self, amount: int, currency: str, receipt: str, notes: Dict[str, str]) -> GatewayOrder:
        ...

    def refund(self, payment_id: str, amount: int, notes: Dict[str, str]) -> GatewayRefund:
        ...

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        ...
