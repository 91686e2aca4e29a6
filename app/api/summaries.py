from fastapi import APIRouter, Depends
from app.models.enums import PaymentType
from app.models.schemas.finance import SummaryOut
from app.services import ledger
from app.services.accrual import portfolio_summary
from app.services.auth import get_current_user

router = APIRouter()


@router.get("", response_model=SummaryOut)
def get_summary(user=Depends(get_current_user)):
    finances = ledger.list_finances()
    sums = ledger.sum_payments_by_type_for_finance_ids([f.finance_id for f in finances])
    principal_paid = {fid: by_type.get(PaymentType.principal.value, 0.0) for fid, by_type in sums.items()}
    return portfolio_summary(finances, principal_paid)
