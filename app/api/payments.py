from fastapi import APIRouter, Depends
from uuid import UUID
from app.exceptions import FinanceError
from app.logging import get_logger
from app.models.schemas.payment import PaymentCreate, PaymentOut
from app.services import ledger
from app.services.accrual import validate_and_apply_payment
from app.services.auth import get_current_user, passcode_header, verify_passcode
from app.services.dates import utc_today
from app.services.storage import log_action

logger = get_logger(__name__)

router = APIRouter()


@router.post("/{finance_id}/payments")
def create_payment(
    finance_id: UUID,
    payload: PaymentCreate,
    user=Depends(get_current_user),
    x_passcode: str | None = Depends(passcode_header),
):
    verify_passcode(payload.passcode or x_passcode)

    # Validate against the ledger and append under one lock
    with ledger.finance_lock(finance_id):
        finance = ledger.find_finance_by_id(finance_id)
        sums = ledger.ledger_sums(finance_id)
        try:
            payment = validate_and_apply_payment(finance, sums, payload, utc_today())
        except FinanceError as e:
            logger.warning("Rejected %s payment on %s: %s", payload.type.value, finance_id, e.message)
            raise
        ledger.create_payment(payment)

    log_action(user["user_id"], "payment", "payments", str(payment.payment_id), {
        "finance_id": finance_id,
        "type": payment.type,
        "amount": payment.amount,
        "note": payment.note,
    })
    return {"ok": True, "payment_id": str(payment.payment_id), "amount": payment.amount}


@router.get("/{finance_id}/payments")
def list_payments(finance_id: UUID, user=Depends(get_current_user)):
    ledger.find_finance_by_id(finance_id)
    payments = ledger.find_payments_by_finance_id(finance_id)

    items = [
        PaymentOut(
            id=str(p.payment_id),
            type=p.type,
            amount=p.amount,
            note=p.note or "",
            date=p.paid_at.date().isoformat(),
        )
        for p in payments
    ]
    return {"items": items}
