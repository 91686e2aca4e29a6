from fastapi import APIRouter, Depends
from uuid import UUID
from app.models.schemas.finance import FinanceCreate, FinanceEdit, FinanceOut, TopUpRequest
from app.services import ledger
from app.services.accrual import (
    LedgerSums,
    apply_edit,
    apply_top_up,
    ensure_cleared,
    seed_finance,
    summarize_finance,
)
from app.services.auth import get_current_user, passcode_header, verify_passcode
from app.services.dates import utc_today
from app.services.storage import log_action

router = APIRouter()


@router.post("")
def create_finance(payload: FinanceCreate, user=Depends(get_current_user)):
    finance = seed_finance(payload, utc_today())
    ledger.create_finance(finance)
    log_action(user["user_id"], "create", "finances", str(finance.finance_id), payload.model_dump())

    return {"ok": True, "id": str(finance.finance_id)}


@router.get("")
def list_finances(user=Depends(get_current_user)):
    finances = ledger.list_finances()
    sums = ledger.sum_payments_by_type_for_finance_ids([f.finance_id for f in finances])
    today = utc_today()

    items = [
        summarize_finance(f, LedgerSums.from_mapping(sums.get(str(f.finance_id))), today)
        for f in finances
    ]
    return {"items": items}


@router.get("/{finance_id}", response_model=FinanceOut)
def get_finance(finance_id: UUID, user=Depends(get_current_user)):
    finance = ledger.find_finance_by_id(finance_id)
    return summarize_finance(finance, ledger.ledger_sums(finance_id), utc_today())


@router.patch("/{finance_id}")
def edit_finance(finance_id: UUID, payload: FinanceEdit, user=Depends(get_current_user)):
    with ledger.finance_lock(finance_id):
        finance = ledger.find_finance_by_id(finance_id)
        apply_edit(finance, payload)
        ledger.save_finance(finance)

    log_action(user["user_id"], "edit", "finances", str(finance_id), payload.model_dump(exclude_unset=True))
    return {"ok": True, "id": str(finance_id)}


@router.patch("/{finance_id}/topup")
def top_up_finance(
    finance_id: UUID,
    payload: TopUpRequest,
    user=Depends(get_current_user),
    x_passcode: str | None = Depends(passcode_header),
):
    verify_passcode(payload.passcode or x_passcode)

    with ledger.finance_lock(finance_id):
        finance = ledger.find_finance_by_id(finance_id)
        due = apply_top_up(finance, payload.amount, payload.start_date, payload.note, today=utc_today())
        ledger.save_finance(finance)

    log_action(user["user_id"], "topup", "finances", str(finance_id), payload.model_dump())
    return {
        "ok": True,
        "id": str(finance_id),
        "due_id": str(due.due_id),
        "principal": finance.principal,
        "interest_per_month": finance.interest_per_month,
        "interest_rate": finance.interest_rate,
    }


@router.delete("/{finance_id}")
def delete_finance(
    finance_id: UUID,
    user=Depends(get_current_user),
    x_passcode: str | None = Depends(passcode_header),
):
    verify_passcode(x_passcode)

    with ledger.finance_lock(finance_id):
        finance = ledger.find_finance_by_id(finance_id)
        ensure_cleared(finance, ledger.ledger_sums(finance_id))
        ledger.delete_finance(finance_id, user=user)

    return {"ok": True, "id": str(finance_id)}
