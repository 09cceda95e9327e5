# medibook/db/models/health/payment.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ...clock import utc_now

class Payment(SQLModel, table=True):
    __tablename__ = "payments"
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    status: str = Field(default="pending")  # pending, completed, refund_pending, refunded
    method: Optional[str] = None  # online, offline, card, gpay, paytm, phonepe
    amount: int = Field(default=0)  # minor units
    currency: str = Field(default="INR")
    gateway: Optional[str] = None
    gateway_order_id: Optional[str] = Field(default=None, index=True)
    gateway_payment_id: Optional[str] = None
    gateway_signature: Optional[str] = None
    initiated_at: Optional[datetime] = None
    captured_at: Optional[datetime] = None
    meta: Optional[str] = None  # JSON text
    refund_id: Optional[str] = None
    refund_amount: Optional[int] = None
    refunded_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
