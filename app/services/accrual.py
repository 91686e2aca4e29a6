"""Interest accrual and principal allocation for finance records.

Everything in here is a pure computation over an already-loaded
:class:`Finance` and the sums of its payment ledger. Handlers load, call into
this module, and persist whatever it returns. Principal reduction is never
stored: it is re-derived from the payments on every read.

Amounts are kept at full precision; :func:`round_currency` is applied only
when building API responses.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping

from app.config import settings
from app.exceptions import (
    BelowMinimumError,
    ExceedsOutstandingError,
    InvalidAmountError,
    NotClearedError,
    ValidationError,
)
from app.logging import get_logger
from app.models.enums import PaymentType
from app.models.schemas.finance import (
    Due,
    DueOut,
    Finance,
    FinanceCreate,
    FinanceEdit,
    FinanceOut,
    FlatMonthlyMode,
    RateMode,
    SummaryOut,
)
from app.models.schemas.payment import Payment, PaymentCreate
from app.services.dates import months_between, utc_today

logger = get_logger(__name__)

MIN_INTEREST_PAYMENT = 1
INITIAL_DUE_NOTE = "Initial"
TOP_UP_NOTE = "Top-up"
CENT = Decimal("0.01")


@dataclass(frozen=True)
class DueState:
    due: Due
    original: float
    remaining: float


@dataclass(frozen=True)
class LedgerSums:
    paid_principal: float = 0.0
    paid_interest: float = 0.0

    @classmethod
    def from_mapping(cls, sums: Mapping[str, float] | None) -> "LedgerSums":
        sums = sums or {}
        return cls(
            paid_principal=float(sums.get(PaymentType.principal.value, 0.0)),
            paid_interest=float(sums.get(PaymentType.interest.value, 0.0)),
        )


def round_currency(value: float) -> int:
    """Round half-up to whole currency units."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(value: float) -> Decimal:
    """Half-up to the smallest currency unit, for bound checks on ledger sums."""
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_interest(amount: float, percent: float) -> float:
    return amount * percent / 100 / 12


def _midnight(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def resolve_due_state(dues: Iterable[Due], total_principal_paid: float) -> list[DueState]:
    """Allocate principal paid over dues, oldest start date first.

    Ties keep insertion order. Each due absorbs as much of what is left as
    its original amount allows before the next one is touched.
    """
    ordered = sorted(dues, key=lambda d: d.start_date)
    remaining_paid = float(total_principal_paid or 0)

    states = []
    for due in ordered:
        original = float(due.amount or 0)
        reduce = min(original, max(0.0, remaining_paid))
        remaining_paid -= reduce
        remaining = original - reduce
        # Sub-cent residue from summing fractional payments counts as retired
        if to_cents(remaining) == 0:
            remaining = 0.0
        states.append(DueState(due=due, original=original, remaining=remaining))
    return states


def current_principal(states: Iterable[DueState]) -> float:
    return sum(s.remaining for s in states)


def due_current_ipm(mode, state: DueState) -> float:
    # Rate mode ignores the stored baseline and works off what is still owed
    if isinstance(mode, RateMode):
        return monthly_interest(state.remaining, mode.percent)
    if state.original > 0:
        return state.due.interest_per_month * state.remaining / state.original
    return 0.0


def compute_current_ipm(finance: Finance, states: Iterable[DueState]) -> float:
    return sum(due_current_ipm(finance.interest_mode, s) for s in states)


def accrued_interest(dues: Iterable[Due], as_of: date) -> float:
    return sum(months_between(d.start_date, as_of) * d.interest_per_month for d in dues)


def outstanding_interest(dues: Iterable[Due], paid_interest: float, as_of: date) -> float:
    return max(0.0, accrued_interest(dues, as_of) - float(paid_interest or 0))


def ensure_dues(finance: Finance) -> Finance:
    """Seed a single initial due on records stored without any."""
    if finance.dues:
        return finance

    ipm = finance.interest_per_month or monthly_interest(finance.principal, finance.interest_rate or 0)
    finance.dues = [
        Due(
            amount=finance.principal,
            start_date=finance.start_date,
            interest_per_month=ipm,
            note=INITIAL_DUE_NOTE,
            added_at=_midnight(finance.start_date),
        )
    ]
    return finance


def seed_finance(payload: FinanceCreate, today: date | None = None) -> Finance:
    start = payload.start_date or today or utc_today()

    if payload.interest_rate is not None and payload.interest_per_month is not None:
        raise ValidationError("Use either interest_rate OR interest_per_month", field="interest_rate")
    if payload.interest_rate is not None:
        mode = RateMode(percent=payload.interest_rate)
        ipm = max(0.0, monthly_interest(payload.amount, payload.interest_rate))
    elif payload.interest_per_month is not None:
        mode = FlatMonthlyMode(amount=payload.interest_per_month)
        ipm = payload.interest_per_month
    else:
        raise ValidationError("Provide interest_per_month or interest_rate", field="interest_per_month")

    return Finance(
        name=payload.name,
        contact=payload.contact,
        principal=payload.amount,
        interest_mode=mode,
        interest_per_month=ipm,
        start_date=start,
        dues=[
            Due(
                amount=payload.amount,
                start_date=start,
                interest_per_month=ipm,
                note=INITIAL_DUE_NOTE,
                added_at=_midnight(start),
            )
        ],
    )


def validate_payment(
    finance: Finance,
    sums: LedgerSums,
    payment_type: PaymentType,
    amount: float | None,
    as_of: date,
) -> float:
    """Check a payment against what is owed and return the amount to record.

    An interest payment without an amount settles all outstanding interest.
    """
    ensure_dues(finance)
    symbol = settings.currency_symbol

    if payment_type == PaymentType.principal:
        outstanding = current_principal(resolve_due_state(finance.dues, sums.paid_principal))
        if amount is None or amount <= 0:
            raise InvalidAmountError("Invalid amount")
        if to_cents(amount) > to_cents(outstanding):
            raise ExceedsOutstandingError("Amount exceeds outstanding principal")
        return amount

    max_outstanding = outstanding_interest(finance.dues, sums.paid_interest, as_of)
    if amount is None or amount <= 0:
        amount = max_outstanding
    if amount < MIN_INTEREST_PAYMENT:
        raise BelowMinimumError(f"Interest amount must be at least {symbol}{MIN_INTEREST_PAYMENT}")
    if to_cents(amount) > to_cents(max_outstanding):
        raise ExceedsOutstandingError(f"Max interest due is {symbol}{round_currency(max_outstanding)}")
    return amount


def validate_and_apply_payment(
    finance: Finance,
    sums: LedgerSums,
    request: PaymentCreate,
    as_of: date | None = None,
) -> Payment:
    """Validate ``request`` and build the ledger row to append.

    The finance itself is left untouched; the caller persists the payment.
    """
    amount = validate_payment(finance, sums, request.type, request.amount, as_of or utc_today())
    return Payment(
        finance_id=finance.finance_id,
        type=request.type,
        amount=amount,
        note=request.note or "",
    )


def reallocate_on_edit(finance: Finance, new_mode: RateMode | FlatMonthlyMode | None) -> Finance:
    """Re-derive every due's stored interest-per-month for a new interest mode.

    Only the ``interest_per_month`` baselines change; amounts and start dates
    stay as they are. ``None`` clears interest entirely.
    """
    dues = finance.dues
    principal_total = sum(float(d.amount or 0) for d in dues)

    if new_mode is None:
        for d in dues:
            d.interest_per_month = 0.0
        finance.interest_per_month = 0.0
    elif isinstance(new_mode, FlatMonthlyMode):
        # Split the flat total by each due's share of the original principal
        for d in dues:
            share = float(d.amount or 0) / principal_total if principal_total > 0 else 0.0
            d.interest_per_month = new_mode.amount * share
        finance.interest_per_month = new_mode.amount
    else:
        for d in dues:
            d.interest_per_month = monthly_interest(float(d.amount or 0), new_mode.percent)
        finance.interest_per_month = sum(d.interest_per_month for d in dues)

    finance.interest_mode = new_mode
    return finance


def shift_start_date(finance: Finance, new_start: date) -> Finance:
    """Move the finance start date together with its earliest due."""
    finance.start_date = new_start
    if finance.dues:
        earliest = min(range(len(finance.dues)), key=lambda i: finance.dues[i].start_date)
        finance.dues[earliest].start_date = new_start
    return finance


def apply_edit(finance: Finance, edit: FinanceEdit) -> Finance:
    ensure_dues(finance)
    fields = edit.model_fields_set

    if edit.interest_rate is not None and edit.interest_per_month is not None:
        raise ValidationError(
            "Use either interest_rate OR interest_per_month (or clear one with null)",
            field="interest_rate",
        )

    if edit.name is not None:
        finance.name = edit.name
    if edit.contact is not None:
        finance.contact = edit.contact
    if edit.start_date is not None:
        shift_start_date(finance, edit.start_date)

    # A flat amount in the edit wins over the rate field
    if "interest_per_month" in fields:
        new_mode = None if edit.interest_per_month is None else FlatMonthlyMode(amount=edit.interest_per_month)
        reallocate_on_edit(finance, new_mode)
    elif "interest_rate" in fields:
        new_mode = None if edit.interest_rate is None else RateMode(percent=edit.interest_rate)
        reallocate_on_edit(finance, new_mode)

    finance.updated_at = datetime.now(timezone.utc)
    return finance


def apply_top_up(
    finance: Finance,
    amount: float,
    start_date: date | None = None,
    note: str | None = None,
    today: date | None = None,
) -> Due:
    """Append a new due for extra capital and return it.

    In rate mode the new due gets the annual rate. Otherwise it gets the
    blended rate implied by the existing dues, so the loan keeps its current
    interest intensity.
    """
    if amount is None or amount <= 0:
        raise InvalidAmountError("Invalid amount")
    ensure_dues(finance)

    mode = finance.interest_mode
    if isinstance(mode, RateMode):
        ipm_for_new = monthly_interest(amount, mode.percent)
    else:
        total_principal = sum(float(d.amount or 0) for d in finance.dues)
        total_ipm = sum(float(d.interest_per_month or 0) for d in finance.dues)
        eff_rate = (total_ipm * 12 * 100) / total_principal if total_principal > 0 else 0.0
        ipm_for_new = eff_rate * amount / 100 / 12
        logger.debug("Top-up on %s at blended rate %.4f%%", finance.finance_id, eff_rate)

    due = Due(
        amount=amount,
        start_date=start_date or today or utc_today(),
        interest_per_month=ipm_for_new,
        note=note or TOP_UP_NOTE,
    )
    finance.dues.append(due)
    finance.principal = float(finance.principal or 0) + amount
    finance.interest_per_month = sum(float(d.interest_per_month or 0) for d in finance.dues)
    if isinstance(mode, FlatMonthlyMode):
        finance.interest_mode = FlatMonthlyMode(amount=finance.interest_per_month)
    finance.updated_at = datetime.now(timezone.utc)
    return due


def summarize_finance(finance: Finance, sums: LedgerSums, as_of: date) -> FinanceOut:
    ensure_dues(finance)
    states = resolve_due_state(finance.dues, sums.paid_principal)
    mode = finance.interest_mode
    principal_left = current_principal(states)

    dues = [
        DueOut(
            id=str(s.due.due_id),
            amount=s.original,
            start_date=s.due.start_date,
            interest_per_month=round_currency(s.due.interest_per_month),
            outstanding=round_currency(s.remaining),
            current_ipm=round_currency(due_current_ipm(mode, s)),
            note=s.due.note or "",
        )
        for s in states
    ]

    return FinanceOut(
        id=str(finance.finance_id),
        name=finance.name,
        contact=finance.contact or "",
        amount=finance.principal,
        interest_mode=mode.kind if mode is not None else None,
        interest_rate=finance.interest_rate,
        interest_per_month=finance.interest_per_month,
        start_date=finance.start_date,
        paid_principal=sums.paid_principal,
        paid_interest=sums.paid_interest,
        current_principal=principal_left,
        current_ipm=round_currency(compute_current_ipm(finance, states)),
        months_elapsed=months_between(finance.start_date, as_of),
        outstanding_interest=round_currency(outstanding_interest(finance.dues, sums.paid_interest, as_of)),
        outstanding=principal_left,
        dues=dues,
    )


def portfolio_summary(finances: Iterable[Finance], principal_paid: Mapping[str, float]) -> SummaryOut:
    finances = list(finances)
    total_principal = sum(float(f.principal or 0) for f in finances)
    total_paid = sum(float(principal_paid.get(str(f.finance_id), 0.0)) for f in finances)
    return SummaryOut(
        total_principal=total_principal,
        total_outstanding=max(0.0, total_principal - total_paid),
    )


def ensure_cleared(finance: Finance, sums: LedgerSums) -> None:
    ensure_dues(finance)
    left = current_principal(resolve_due_state(finance.dues, sums.paid_principal))
    if to_cents(left) > 0:
        raise NotClearedError("Delete only when principal is 0")
