# campus_market/api/routers/payments.py
from fastapi import APIRouter, Depends

from campus_market.api.deps import get_payment_service
from campus_market.api.errors import to_http
from campus_market.domain.errors import MarketplaceError
from campus_market.domain.schemas import OrderOut, PaymentConfirmIn
from campus_market.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/{order_id}/confirm", response_model=OrderOut)
def confirm_payment(
    order_id: int,
    payload: PaymentConfirmIn,
    svc: PaymentService = Depends(get_payment_service),
):
    """Gateway callback: settles the order when the reference matches its intent."""
    try:
        return svc.confirm_payment(order_id, payload.reference)
    except MarketplaceError as e:
        raise to_http(e)
