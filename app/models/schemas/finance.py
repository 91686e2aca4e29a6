import json
from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field, field_validator
from uuid import UUID, uuid4
from datetime import datetime, timezone, date
from app.models.enums import InterestKind


class RateMode(BaseModel):
    kind: Literal["rate"] = "rate"
    percent: float = Field(ge=0, le=100)  # annual %


class FlatMonthlyMode(BaseModel):
    kind: Literal["flat"] = "flat"
    amount: float = Field(ge=0)  # total interest per month


InterestMode = Annotated[Union[RateMode, FlatMonthlyMode], Field(discriminator="kind")]


class Due(BaseModel):
    due_id: UUID = Field(default_factory=uuid4)
    amount: float
    start_date: date
    interest_per_month: float = 0.0
    note: str = ""
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Finance(BaseModel):
    finance_id: UUID = Field(default_factory=uuid4)
    name: str
    contact: str = ""
    principal: float
    interest_mode: InterestMode | None = None
    interest_per_month: float = 0.0
    start_date: date
    dues: list[Due] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_current: bool = True
    is_deleted: bool = False

    # Nested fields come back from parquet as JSON text
    @field_validator("dues", mode="before")
    @classmethod
    def _decode_dues(cls, v):
        if isinstance(v, str):
            v = json.loads(v) if v else None
        return [] if v is None else v

    @field_validator("interest_mode", mode="before")
    @classmethod
    def _decode_mode(cls, v):
        if isinstance(v, str):
            return json.loads(v) if v else None
        return v

    @property
    def interest_rate(self) -> float | None:
        if isinstance(self.interest_mode, RateMode):
            return self.interest_mode.percent
        return None


class FinanceCreate(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    contact: str = Field(default="", max_length=120)
    amount: float = Field(gt=0)
    start_date: date | None = None
    interest_per_month: float | None = Field(default=None, ge=0)
    interest_rate: float | None = Field(default=None, ge=0, le=100)  # annual %


class FinanceEdit(BaseModel):
    """Partial edit. An explicit null on an interest field clears it."""

    name: str | None = Field(default=None, min_length=2, max_length=120)
    contact: str | None = Field(default=None, max_length=120)
    start_date: date | None = None
    interest_rate: float | None = Field(default=None, ge=0, le=100)
    interest_per_month: float | None = Field(default=None, ge=0)


class TopUpRequest(BaseModel):
    amount: float = Field(gt=0)
    start_date: date | None = None
    note: str | None = Field(default=None, max_length=200)
    passcode: str | None = None


class DueOut(BaseModel):
    id: str
    amount: float
    start_date: date
    interest_per_month: int
    outstanding: int
    current_ipm: int
    note: str = ""


class FinanceOut(BaseModel):
    id: str
    name: str
    contact: str
    amount: float
    interest_mode: InterestKind | None = None
    interest_rate: float | None = None
    interest_per_month: float
    start_date: date
    paid_principal: float
    paid_interest: float
    current_principal: float
    current_ipm: int
    months_elapsed: int
    outstanding_interest: int
    outstanding: float
    dues: list[DueOut]


class SummaryOut(BaseModel):
    total_principal: float
    total_outstanding: float
