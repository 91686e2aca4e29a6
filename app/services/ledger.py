"""Finance and payment persistence on top of the versioned record store.

Finances are whole-document records (dues embedded); payments are an
append-only ledger keyed by ``finance_id``.
"""

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable
from uuid import UUID

from app.exceptions import NotFoundError
from app.logging import get_logger
from app.models.schemas.finance import Finance
from app.models.schemas.payment import Payment
from app.services.accrual import LedgerSums
from app.services.storage import (
    current_rows,
    load_versions,
    mark_old_version_as_stale,
    save_version,
    soft_delete_record,
    to_records,
)

logger = get_logger(__name__)

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


@contextmanager
def finance_lock(finance_id: UUID | str):
    """Serialize read-validate-write sequences on a single finance.

    Covers concurrent requests within this process only.
    """
    key = str(finance_id)
    with _locks_guard:
        lock = _locks.setdefault(key, threading.Lock())
    with lock:
        yield


def _drop_lock(finance_id: UUID | str) -> None:
    # Holders keep their reference; later callers get a fresh lock
    with _locks_guard:
        _locks.pop(str(finance_id), None)


def find_finance_by_id(finance_id: UUID | str) -> Finance:
    df = load_versions("finances", Finance, record_id=str(finance_id))
    rows = to_records(current_rows(df))
    if not rows:
        raise NotFoundError("Finance not found")
    return Finance(**rows[0])


def list_finances() -> list[Finance]:
    df = current_rows(load_versions("finances", Finance))
    if df.empty:
        return []
    df = df.sort_values(by="created_at", ascending=False)
    return [Finance(**row) for row in to_records(df)]


def create_finance(finance: Finance) -> Finance:
    save_version(finance, "finances", "finance_id")
    logger.info("Created finance %s (%s) principal=%s", finance.finance_id, finance.name, finance.principal)
    return finance


def save_finance(finance: Finance) -> Finance:
    """Whole-document upsert: stale the current version, write the new one."""
    mark_old_version_as_stale("finances", str(finance.finance_id), "finance_id")
    finance.updated_at = datetime.now(timezone.utc)
    finance.is_current = True
    finance.is_deleted = False
    save_version(finance, "finances", "finance_id")
    return finance


def delete_finance(finance_id: UUID | str, user: dict | None = None) -> dict:
    result = soft_delete_record("finances", str(finance_id), "finance_id", Finance, user=user)
    _drop_lock(finance_id)
    logger.info("Deleted finance %s", finance_id)
    return result


def find_payments_by_finance_id(finance_id: UUID | str) -> list[Payment]:
    df = current_rows(load_versions("payments", Payment))
    if df.empty:
        return []
    df = df[df["finance_id"].astype(str) == str(finance_id)]
    df = df.sort_values(by="paid_at", ascending=False)
    return [Payment(**row) for row in to_records(df)]


def create_payment(payment: Payment) -> Payment:
    save_version(payment, "payments", "payment_id")
    logger.info(
        "Recorded %s payment %s of %s on finance %s",
        payment.type.value, payment.payment_id, payment.amount, payment.finance_id,
    )
    return payment


def sum_payments_by_type_for_finance_ids(finance_ids: Iterable[UUID | str]) -> dict[str, dict[str, float]]:
    """Payment totals grouped as ``{finance_id: {type: total}}``."""
    ids = {str(i) for i in finance_ids}
    df = current_rows(load_versions("payments", Payment))
    if df.empty or not ids:
        return {}

    df = df[df["finance_id"].astype(str).isin(ids)]
    grouped = df.groupby([df["finance_id"].astype(str), df["type"].astype(str)])["amount"].sum()

    sums: dict[str, dict[str, float]] = {}
    for (fid, ptype), total in grouped.items():
        sums.setdefault(fid, {})[ptype] = float(total)
    return sums


def ledger_sums(finance_id: UUID | str) -> LedgerSums:
    return LedgerSums.from_mapping(sum_payments_by_type_for_finance_ids([finance_id]).get(str(finance_id)))
