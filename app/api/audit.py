from fastapi import APIRouter, Depends, Query
from app.services.storage import load_versions, current_rows, to_records
from app.models.schemas.audit import AuditLog, AuditLogOut
from app.services.auth import get_current_user
from app.services.utils import page_params

router = APIRouter()


@router.get("/logs", response_model=list[AuditLogOut])
def list_audit_logs(
    user_id: str | None = Query(None),
    resource_type: str | None = Query(None),
    resource_id: str | None = Query(None),
    action: str | None = Query(None),
    user=Depends(get_current_user),
    page=Depends(page_params),
):
    df = current_rows(load_versions("audit_logs", AuditLog))
    if df.empty:
        return []

    if user_id:
        df = df[df["user_id"] == user_id]
    if resource_type:
        df = df[df["resource_type"] == resource_type]
    if resource_id:
        df = df[df["resource_id"] == resource_id]
    if action:
        df = df[df["action"] == action]

    df = df.sort_values(by="timestamp", ascending=False)
    df = df.iloc[page["offset"]: page["offset"] + page["limit"]]

    return to_records(df)
