from fastapi import Query

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 500


def page_params(
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
) -> dict:
    return {"limit": limit, "offset": offset}


def normalize_username(username: str) -> str:
    return username.strip()
