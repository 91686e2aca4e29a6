from fastapi import APIRouter, HTTPException, Depends
from app.models.schemas.user import LoginRequest, TokenOut, UserOut
from app.services.auth import get_current_user, create_access_token, find_user_by_username, check_password
from app.services.storage import log_action
from app.services.utils import normalize_username
from app.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/login", response_model=TokenOut)
def login(request: LoginRequest):
    user = find_user_by_username(normalize_username(request.username))

    if user is None or not check_password(request.password, user["hashed_password"]):
        logger.warning("Failed login for %s", request.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="User is inactive")

    token = create_access_token({"sub": user["user_id"], "username": user["username"]})

    log_action(user["user_id"], "login", "users", str(user["user_id"]))
    return {"token": token, "access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=UserOut)
def me(user=Depends(get_current_user)):
    return {
        "user_id": str(user["user_id"]),
        "username": user["username"],
        "is_active": user.get("is_active", True),
    }
