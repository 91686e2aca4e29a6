import hmac
import jwt
import bcrypt
from fastapi import HTTPException, Depends, Header
from datetime import datetime, timedelta, timezone
from uuid import UUID
from app.services.storage import load_versions, current_rows, to_records
from app.models.schemas.user import User
from fastapi.security import OAuth2PasswordBearer
from app.config import settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
ALGORITHM = settings.encoding_algorithm


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def find_user_by_username(username: str) -> dict | None:
    users = current_rows(load_versions("users", User))
    if users.empty:
        return None
    match = users[users["username"] == username]
    if match.empty:
        return None
    return to_records(match)[0]


def get_current_user(token: str = Depends(oauth2_scheme)):
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        user_id: UUID = payload.get("sub")
        if user_id is None:
            raise HTTPException(status_code=401, detail="Invalid credentials")
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    match = to_records(current_rows(load_versions("users", User, record_id=user_id)))
    if not match:
        raise HTTPException(status_code=401, detail="User not found")

    user = match[0]
    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="User is inactive")

    return user


def verify_passcode(code: str | None) -> None:
    """Gate for money-moving requests; raises unless ``code`` matches TX_PASSCODE."""
    if not settings.tx_passcode:
        raise HTTPException(status_code=500, detail="TX_PASSCODE not set")
    if not code or not hmac.compare_digest(code.encode("utf-8"), settings.tx_passcode.encode("utf-8")):
        raise HTTPException(status_code=403, detail="Invalid passcode")


def passcode_header(x_passcode: str | None = Header(default=None)) -> str | None:
    return x_passcode
