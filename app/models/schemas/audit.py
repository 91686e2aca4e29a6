from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, timezone


class AuditLog(BaseModel):
    log_id: UUID = Field(default_factory=uuid4)
    user_id: str | None = None  # None for system tasks such as admin seeding
    action: str  # "create", "edit", "topup", "payment", "delete", "login"
    resource_type: str  # "finances", "payments", "users"
    resource_id: str | None = None
    details: str | None = None  # JSON payload, sensitive keys redacted
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False


class AuditLogOut(BaseModel):
    log_id: str
    user_id: str | None = None
    action: str
    resource_type: str
    resource_id: str | None = None
    details: str | None = None
    timestamp: datetime
