from datetime import datetime, timezone
from app.config import settings
from app.logging import get_logger
from app.models.enums import SeedMode
from app.models.schemas.user import User
from app.services.auth import find_user_by_username, hash_password
from app.services.storage import load_versions, current_rows, save_version, mark_old_version_as_stale, log_action

logger = get_logger(__name__)


def seed_admin(mode: SeedMode | str, username: str | None = None, password: str | None = None) -> str | None:
    """
    Make sure an admin user can log in.

    - bootstrap: create the admin only while no users exist at all
    - upsert: create the admin, or reset its password if it already exists

    Returns the admin's user_id when something was written, else None.
    """
    mode = SeedMode(mode)
    username = username or settings.admin_user
    password = password or settings.admin_pass

    if mode == SeedMode.bootstrap:
        if not current_rows(load_versions("users", User)).empty:
            logger.info("Users already present, skipping admin bootstrap")
            return None
        existing = None
    else:
        existing = find_user_by_username(username)

    now = datetime.now(timezone.utc)
    if existing:
        mark_old_version_as_stale("users", existing["user_id"], "user_id")
        user = User(**{**existing, "hashed_password": hash_password(password), "updated_at": now})
    else:
        user = User(username=username, hashed_password=hash_password(password), created_at=now, updated_at=now)

    save_version(user, "users", "user_id")
    log_action(None, f"seed_admin_{mode.value}", "users", str(user.user_id), {"username": username})
    logger.info("Admin user %s seeded (%s)", username, mode.value)
    return str(user.user_id)


def maybe_seed_admin() -> str | None:
    mode = settings.seed_mode
    if not mode:
        return None
    return seed_admin(mode)
