"""Payment correction endpoint."""

from fastapi import APIRouter, Depends

from fieldops.domain.payment import Payment
from fieldops.domain.update_models import PaymentUpdate
from fieldops.domain.user import Actor
from fieldops.interface.auth import get_current_actor
from fieldops.services import payment_service


router = APIRouter(prefix="/v1/payments", tags=["payments"])


@router.patch("/{payment_id}")
async def update_payment(payment_id: int, data: PaymentUpdate, actor: Actor = Depends(get_current_actor)) -> Payment:
    return await payment_service.update_payment(actor=actor, payment_id=payment_id, data=data)
