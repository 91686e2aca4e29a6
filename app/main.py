from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.api import auth, finances, payments, summaries, audit
from app.config import settings
from app.exceptions import FinanceError, ValidationError
from app.logging import setup_logging, get_logger
from app.services.bootstrap import maybe_seed_admin

setup_logging(settings.log_level, settings.log_format)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    maybe_seed_admin()
    logger.info("Finance API started (env=%s)", settings.app_env)
    yield


app = FastAPI(title="Finance Tracker API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=r"^https://[a-z0-9-]+\.vercel\.app$",
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Passcode"],
)


@app.exception_handler(FinanceError)
async def finance_error_handler(_request: Request, exc: FinanceError):
    body = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=body)


@app.get("/health")
def health():
    return {"ok": True}


app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(finances.router, prefix="/api/finance", tags=["Finance"])
app.include_router(payments.router, prefix="/api/finance", tags=["Payments"])
app.include_router(summaries.router, prefix="/api/summary", tags=["Summary"])
app.include_router(audit.router, prefix="/api/audit", tags=["Audit"])
