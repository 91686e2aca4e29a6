from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, timezone


class User(BaseModel):
    user_id: UUID = Field(default_factory=uuid4)
    username: str
    hashed_password: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_active: bool = True
    is_deleted: bool = False
    is_current: bool = True


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class TokenOut(BaseModel):
    token: str
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    user_id: str
    username: str
    is_active: bool = True
