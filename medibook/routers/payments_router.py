from fastapi import APIRouter, Depends

from ..exceptions import create_success_response
from ..application.ports.identity import Actor
from ..application.services.payment_service import PaymentService
from ..schemas.payments.payment import CreateOrderRequest, PaymentResponse, RefundRequest
from .deps import get_current_actor, get_payment_service, require_admin

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/create-order")
def create_order(body: CreateOrderRequest, actor: Actor = Depends(get_current_actor), svc: PaymentService = Depends(get_payment_service)):
    # already camelCase: {orderId, amount, currency, key}
    return create_success_response(svc.create_order(actor, body.appointment_id, body.amount))


@router.post("/refund")
def refund_payment(body: RefundRequest, actor: Actor = Depends(require_admin), svc: PaymentService = Depends(get_payment_service)):
    result = svc.refund(actor, body.appointment_id)
    return create_success_response(PaymentResponse.from_dto(result.appointment).to_wire(), result.message)
