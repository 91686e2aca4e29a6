from pydantic import BaseModel, Field, model_validator
from uuid import UUID, uuid4
from datetime import datetime, timezone
from app.models.enums import PaymentType


class Payment(BaseModel):
    payment_id: UUID = Field(default_factory=uuid4)
    finance_id: UUID
    type: PaymentType
    amount: float
    note: str = ""
    paid_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False


class PaymentCreate(BaseModel):
    type: PaymentType
    amount: float | None = Field(default=None, gt=0)  # omitted interest amount pays in full
    passcode: str | None = None
    note: str = Field(default="", max_length=200)

    @model_validator(mode="after")
    def _principal_needs_amount(self):
        if self.type == PaymentType.principal and self.amount is None:
            raise ValueError("Principal payments require an amount")
        return self


class PaymentOut(BaseModel):
    id: str
    type: PaymentType
    amount: float
    note: str = ""
    date: str  # YYYY-MM-DD
